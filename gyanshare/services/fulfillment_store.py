"""
Fulfillment records, votes and vote activity.
- File policy for fulfillments: PDF only, size within [fulfillment_min_bytes, fulfillment_max_bytes].
- One vote per (fulfillment, voter); voting again updates vote_type. Counters are
  always recomputed from vote rows, never incremented.
- Vote spam: sliding window over vote_activity rows (like the daily AI usage limit,
  but counted over the last N seconds).
"""
import logging
from datetime import datetime, timedelta
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gyanshare.config import get_settings
from gyanshare.errors import NotFound, VoteRateExceeded
from gyanshare.models.fulfillment import (
    FulfillmentStatus,
    FulfillmentVote,
    RequestFulfillment,
    VoteActivity,
    VoteType,
)
from gyanshare.models.note_request import NoteRequest
from gyanshare.utils.clock import utcnow

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
UNVOTE = "unvote"


def _human_size(n: int) -> str:
    if n >= 1024 * 1024 and n % (1024 * 1024) == 0:
        return f"{n // (1024 * 1024)}MB"
    return f"{n // 1024}KB"


def check_file(content_type: str | None, size: int) -> list[str]:
    """Return every violated fulfillment file rule (empty list = valid)."""
    settings = get_settings()
    errors = []
    ct = (content_type or "").split(";")[0].strip().lower()
    if ct != PDF_CONTENT_TYPE:
        errors.append("Only PDF files are allowed")
    if size < settings.fulfillment_min_bytes:
        errors.append(f"File must be at least {_human_size(settings.fulfillment_min_bytes)}")
    if size > settings.fulfillment_max_bytes:
        errors.append(f"File must be less than {_human_size(settings.fulfillment_max_bytes)}")
    return errors


def submit(
    db: Session,
    request: NoteRequest,
    uploader_id: str,
    file_url: str,
    file_type: str,
    file_size: int,
    *,
    now: datetime | None = None,
) -> RequestFulfillment:
    """Insert a SUBMITTED fulfillment with the automated check result. Caller commits."""
    now = now or utcnow()
    errors = check_file(file_type, file_size)
    fulfillment = RequestFulfillment(
        request_id=request.id,
        uploader_id=uploader_id,
        file_url=file_url,
        file_type=file_type,
        file_size=file_size,
        status=FulfillmentStatus.SUBMITTED.value,
        validation_passed=not errors,
        validation_errors=errors,
        upvotes=0,
        downvotes=0,
        auto_review_at=now + timedelta(hours=get_settings().auto_review_hours),
        created_at=now,
    )
    db.add(fulfillment)
    db.flush()
    return fulfillment


def get_fulfillment(db: Session, fulfillment_id: str) -> RequestFulfillment:
    f = db.query(RequestFulfillment).filter(RequestFulfillment.id == fulfillment_id).first()
    if f is None:
        raise NotFound("Fulfillment not found")
    return f


def list_pending_for_requester(db: Session, requester_id: str) -> list[tuple[RequestFulfillment, NoteRequest]]:
    """Fulfillments awaiting the requester or the community, newest first."""
    return (
        db.query(RequestFulfillment, NoteRequest)
        .join(NoteRequest, RequestFulfillment.request_id == NoteRequest.id)
        .filter(
            NoteRequest.requester_id == requester_id,
            RequestFulfillment.status.in_([
                FulfillmentStatus.AWAITING_APPROVAL.value,
                FulfillmentStatus.COMMUNITY_REVIEW.value,
            ]),
        )
        .order_by(RequestFulfillment.created_at.desc())
        .all()
    )


def list_in_community_review(db: Session) -> list[RequestFulfillment]:
    return (
        db.query(RequestFulfillment)
        .filter(RequestFulfillment.status == FulfillmentStatus.COMMUNITY_REVIEW.value)
        .order_by(RequestFulfillment.created_at.desc())
        .all()
    )


def recount_votes(db: Session, fulfillment: RequestFulfillment) -> tuple[int, int]:
    rows = (
        db.query(FulfillmentVote.vote_type, func.count(FulfillmentVote.id))
        .filter(FulfillmentVote.fulfillment_id == fulfillment.id)
        .group_by(FulfillmentVote.vote_type)
        .all()
    )
    counts = dict(rows)
    fulfillment.upvotes = counts.get(VoteType.UPVOTE.value, 0)
    fulfillment.downvotes = counts.get(VoteType.DOWNVOTE.value, 0)
    db.flush()
    return fulfillment.upvotes, fulfillment.downvotes


def vote(db: Session, fulfillment: RequestFulfillment, voter_id: str, vote_type: VoteType) -> FulfillmentVote:
    """Upsert the voter's vote and recount."""
    existing = (
        db.query(FulfillmentVote)
        .filter(FulfillmentVote.fulfillment_id == fulfillment.id, FulfillmentVote.user_id == voter_id)
        .first()
    )
    if existing is None:
        row = FulfillmentVote(fulfillment_id=fulfillment.id, user_id=voter_id, vote_type=vote_type.value)
        try:
            with db.begin_nested():
                db.add(row)
        except IntegrityError:
            # Concurrent insert by the same voter won the unique constraint
            existing = (
                db.query(FulfillmentVote)
                .filter(FulfillmentVote.fulfillment_id == fulfillment.id, FulfillmentVote.user_id == voter_id)
                .one()
            )
        else:
            existing = row
    existing.vote_type = vote_type.value
    db.flush()
    recount_votes(db, fulfillment)
    return existing


def unvote(db: Session, fulfillment: RequestFulfillment, voter_id: str) -> bool:
    deleted = (
        db.query(FulfillmentVote)
        .filter(FulfillmentVote.fulfillment_id == fulfillment.id, FulfillmentVote.user_id == voter_id)
        .delete(synchronize_session="fetch")
    )
    recount_votes(db, fulfillment)
    return deleted > 0


def record_activity(
    db: Session,
    user_id: str,
    fulfillment_id: str,
    vote_type: str,
    *,
    now: datetime | None = None,
) -> None:
    db.add(VoteActivity(
        user_id=user_id,
        fulfillment_id=fulfillment_id,
        vote_type=vote_type,
        vote_timestamp=now or utcnow(),
    ))
    db.flush()


def count_recent_votes(db: Session, user_id: str, *, now: datetime | None = None) -> int:
    since = (now or utcnow()) - timedelta(seconds=get_settings().vote_rate_window_seconds)
    return db.query(func.count(VoteActivity.id)).filter(
        VoteActivity.user_id == user_id,
        VoteActivity.vote_timestamp > since,
    ).scalar() or 0


def check_vote_rate(db: Session, user_id: str, *, now: datetime | None = None) -> None:
    settings = get_settings()
    if count_recent_votes(db, user_id, now=now) >= settings.vote_rate_limit:
        logger.warning("Vote rate exceeded for user %s", user_id)
        raise VoteRateExceeded(
            f"Too many votes ({settings.vote_rate_limit} per "
            f"{settings.vote_rate_window_seconds}s). Please slow down."
        )
