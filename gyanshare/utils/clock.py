"""Naive UTC timestamps, matching the DateTime columns (no tzinfo stored)."""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
