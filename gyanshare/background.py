"""Background task: periodic expiry / auto-review sweep for note requests."""
import asyncio
import logging
from typing import Callable
from sqlalchemy.orm import Session
from gyanshare.config import get_settings
from gyanshare.database import SessionLocal
from gyanshare.services.workflow import RequestWorkflow
from gyanshare.utils.clock import utcnow

logger = logging.getLogger(__name__)


def run_sweep(session_factory: Callable[[], Session] = SessionLocal) -> dict[str, int]:
    """One sweep pass in its own session (runs in a worker thread)."""
    db = session_factory()
    try:
        return RequestWorkflow(db).sweep()
    finally:
        db.close()


async def request_sweeper(state: dict, session_factory: Callable[[], Session] = SessionLocal):
    """
    state["last_sweep"] = {"at": iso timestamp, "expired": n, "auto_resolved": n, "escalated": n}
    """
    interval = get_settings().sweep_interval_seconds

    while True:
        try:
            counts = await asyncio.to_thread(run_sweep, session_factory)
            state["last_sweep"] = {"at": utcnow().isoformat(), **counts}
        except Exception:
            logger.exception("Request sweep failed")
        await asyncio.sleep(interval)
