"""
Object storage on local disk. Files are addressed by a relative key
(e.g. "fulfillments/<user>/<ts>.pdf") and served through a short-lived
signed token, so the URL works without a Bearer header.
"""
import logging
from datetime import timedelta
from pathlib import Path
from jose import JWTError, jwt

from gyanshare.config import get_settings
from gyanshare.errors import NotFound, StorageFailure
from gyanshare.utils.clock import utcnow

logger = logging.getLogger(__name__)

TOKEN_TYPE = "file"


def storage_dir() -> Path:
    settings = get_settings()
    if settings.storage_dir:
        return Path(settings.storage_dir)
    return Path(__file__).resolve().parent.parent.parent / "uploads"


def _resolve(key: str) -> Path:
    root = storage_dir().resolve()
    path = (root / key).resolve()
    if root != path and root not in path.parents:
        raise NotFound("File not found")
    return path


def create_file_token(key: str, expires_seconds: int | None = None) -> str:
    settings = get_settings()
    seconds = expires_seconds if expires_seconds is not None else settings.signed_url_expire_seconds
    payload = {"key": key, "exp": utcnow() + timedelta(seconds=seconds), "type": TOKEN_TYPE}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_file_token(token: str) -> str | None:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type") != TOKEN_TYPE:
        return None
    return payload.get("key")


def signed_url(key: str, expires_seconds: int | None = None) -> str:
    return f"/files/{key}?token={create_file_token(key, expires_seconds)}"


def store(data: bytes, key: str) -> str:
    """Write data under key and return a signed URL for it."""
    path = _resolve(key)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("xb") as f:
            f.write(data)
    except OSError as e:
        logger.error("Storing %s failed: %s", key, e)
        raise StorageFailure() from e
    return signed_url(key)


def remove(key: str) -> None:
    """Best-effort cleanup after a failed transaction."""
    try:
        _resolve(key).unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Removing %s failed: %s", key, e)


def open_path(key: str) -> Path:
    path = _resolve(key)
    if not path.is_file():
        raise NotFound("File not found")
    return path
