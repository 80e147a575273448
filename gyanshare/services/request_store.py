"""
Note requests. Creating one escrows points_offered from the requester; the
escrow leaves either as the fulfiller's reward or as a refund, exactly once.
Status changes out of OPEN are compare-and-set updates so a request can only
be closed, cancelled or expired by one caller.
"""
import logging
import uuid
from datetime import datetime, timedelta
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from gyanshare.config import get_settings
from gyanshare.errors import AlreadyResolved, InvalidInput, NotFound
from gyanshare.models.note_request import EducationCategory, NoteRequest, RequestStatus
from gyanshare.models.points import PointsReason
from gyanshare.services import points_ledger
from gyanshare.utils.clock import utcnow

logger = logging.getLogger(__name__)

LEVEL_MAX = 50
SUBJECT_MAX = 100
TOPIC_MAX = 200
DESCRIPTION_MIN = 10
DESCRIPTION_MAX = 1000


def clean_text(value: str | None, field: str, max_len: int, min_len: int = 1) -> str:
    value = (value or "").strip()
    if len(value) < min_len:
        if min_len == 1:
            raise InvalidInput(f"{field} is required")
        raise InvalidInput(f"{field} must be at least {min_len} characters")
    if len(value) > max_len:
        raise InvalidInput(f"{field} must be less than {max_len} characters")
    return value


def contains_pattern(text: str) -> str:
    """LIKE pattern for a literal substring (use with escape="\\")."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def validate_category(category: str) -> EducationCategory:
    try:
        return EducationCategory(category)
    except ValueError:
        raise InvalidInput("Please select a valid category") from None


def validate_points_offered(points: int) -> int:
    settings = get_settings()
    if isinstance(points, bool) or not isinstance(points, int):
        raise InvalidInput("Points offered must be a whole number")
    if points < settings.min_points_offered:
        raise InvalidInput(f"Points must be at least {settings.min_points_offered}")
    if points > settings.max_points_offered:
        raise InvalidInput(f"Points must be at most {settings.max_points_offered}")
    return points


def create_request(
    db: Session,
    requester_id: str,
    category: str,
    level: str,
    subject: str,
    topic: str,
    description: str | None,
    points_offered: int,
    *,
    now: datetime | None = None,
) -> NoteRequest:
    """Validate, escrow points_offered and insert an OPEN request. Caller commits."""
    cat = validate_category(category)
    level = clean_text(level, "Level", LEVEL_MAX)
    subject = clean_text(subject, "Subject", SUBJECT_MAX)
    topic = clean_text(topic, "Topic", TOPIC_MAX)
    description = clean_text(description, "Description", DESCRIPTION_MAX, DESCRIPTION_MIN)
    points = validate_points_offered(points_offered)

    now = now or utcnow()
    request_id = str(uuid.uuid4())
    points_ledger.spend(db, requester_id, points, PointsReason.REQUEST_ESCROW, request_id)

    req = NoteRequest(
        id=request_id,
        requester_id=requester_id,
        category=cat.value,
        level=level,
        subject=subject,
        topic=topic,
        description=description,
        points_offered=points,
        status=RequestStatus.OPEN.value,
        created_at=now,
        expires_at=now + timedelta(days=get_settings().request_expiry_days),
    )
    db.add(req)
    db.flush()
    logger.info("Request %s created by %s (%s points escrowed)", req.id, requester_id, points)
    return req


def get_request(db: Session, request_id: str) -> NoteRequest:
    req = db.query(NoteRequest).filter(NoteRequest.id == request_id).first()
    if req is None:
        raise NotFound("Request not found")
    return req


def list_open(
    db: Session,
    category: str | None = None,
    subject: str | None = None,
    search_text: str | None = None,
) -> list[NoteRequest]:
    """Open requests, newest first. search_text matches subject or topic, case-insensitive."""
    q = db.query(NoteRequest).filter(NoteRequest.status == RequestStatus.OPEN.value)
    if category:
        q = q.filter(NoteRequest.category == validate_category(category).value)
    if subject:
        q = q.filter(NoteRequest.subject == subject)
    text = (search_text or "").strip().lower()
    if text:
        pattern = contains_pattern(text)
        q = q.filter(or_(
            func.lower(NoteRequest.subject).like(pattern, escape="\\"),
            func.lower(NoteRequest.topic).like(pattern, escape="\\"),
        ))
    return q.order_by(NoteRequest.created_at.desc()).all()


def list_for_requester(db: Session, requester_id: str) -> list[NoteRequest]:
    return (
        db.query(NoteRequest)
        .filter(NoteRequest.requester_id == requester_id)
        .order_by(NoteRequest.created_at.desc())
        .all()
    )


def close_as_fulfilled(
    db: Session,
    request_id: str,
    fulfiller_id: str,
    *,
    now: datetime | None = None,
) -> bool:
    """OPEN -> FULFILLED. False if the request was already out of OPEN."""
    updated = (
        db.query(NoteRequest)
        .filter(NoteRequest.id == request_id, NoteRequest.status == RequestStatus.OPEN.value)
        .update(
            {
                NoteRequest.status: RequestStatus.FULFILLED.value,
                NoteRequest.fulfilled_by: fulfiller_id,
                NoteRequest.fulfilled_at: now or utcnow(),
            },
            synchronize_session="fetch",
        )
    )
    if updated:
        logger.info("Request %s fulfilled by %s", request_id, fulfiller_id)
    return updated == 1


def cancel_or_expire(db: Session, request_id: str, status: RequestStatus) -> NoteRequest:
    """OPEN -> CANCELLED/EXPIRED and refund the escrow to the requester."""
    if status not in (RequestStatus.CANCELLED, RequestStatus.EXPIRED):
        raise ValueError(f"cancel_or_expire cannot set status {status}")
    req = get_request(db, request_id)
    updated = (
        db.query(NoteRequest)
        .filter(NoteRequest.id == request_id, NoteRequest.status == RequestStatus.OPEN.value)
        .update({NoteRequest.status: status.value}, synchronize_session="fetch")
    )
    if not updated:
        raise AlreadyResolved(f"Request is already {req.status}.")
    points_ledger.credit(db, req.requester_id, req.points_offered, PointsReason.REQUEST_REFUND, req.id)
    logger.info("Request %s %s; refunded %s points", request_id, status.value, req.points_offered)
    return req
