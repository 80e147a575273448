"""
General note uploads (not tied to a request).
- PDF or image, at most note_max_bytes
- daily_upload_limit uploads per user per calendar day (UTC)
- every upload earns upload_bonus_points; the first one completes a pending referral
- votes give each note a trust_score (upvotes - downvotes), which sets its download cost
- downloads are paid in Gyan Points (the uploader downloads free)
upload_note commits itself so the stored file can be removed if the commit fails;
the other writers flush only and the caller commits.
"""
import logging
import uuid
from datetime import datetime
from pathlib import Path
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gyanshare.config import get_settings
from gyanshare.database import transaction
from gyanshare.errors import InvalidFile, InvalidInput, NotFound, UploadLimitReached
from gyanshare.models.fulfillment import VoteType
from gyanshare.models.note import Note, NoteReport, NoteVote, SavedNote
from gyanshare.models.points import PointsReason
from gyanshare.services import points_ledger, rewards, storage
from gyanshare.services.request_store import (
    LEVEL_MAX,
    SUBJECT_MAX,
    TOPIC_MAX,
    clean_text,
    contains_pattern,
    validate_category,
)
from gyanshare.utils.clock import utcnow

logger = logging.getLogger(__name__)

NOTE_CONTENT_TYPES = {"application/pdf", "image/jpeg", "image/png", "image/gif", "image/webp"}
TAGS_MAX_CHARS = 500
TAGS_MAX_COUNT = 10
REPORT_REASON_MAX = 500
# Downloads hand out a short-lived link; uploads keep the long one
DOWNLOAD_URL_EXPIRE_SECONDS = 3600


def _start_of_today_utc(now: datetime | None = None) -> datetime:
    return (now or utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)


def check_note_file(content_type: str | None, size: int) -> list[str]:
    errors = []
    ct = (content_type or "").split(";")[0].strip().lower()
    if ct not in NOTE_CONTENT_TYPES:
        errors.append("File must be a PDF or image (JPG, PNG, GIF, WEBP)")
    if size <= 0:
        errors.append("File is empty")
    if size > get_settings().note_max_bytes:
        errors.append(f"File size must be less than {get_settings().note_max_bytes // (1024 * 1024)}MB")
    return errors


def parse_tags(raw: str | None) -> list[str]:
    """'a, b,,c' -> ['a', 'b', 'c'], at most TAGS_MAX_COUNT."""
    raw = raw or ""
    if len(raw) > TAGS_MAX_CHARS:
        raise InvalidInput(f"Tags must be less than {TAGS_MAX_CHARS} characters")
    return [t.strip() for t in raw.split(",") if t.strip()][:TAGS_MAX_COUNT]


def count_uploads_today(db: Session, user_id: str, *, now: datetime | None = None) -> int:
    return db.query(func.count(Note.id)).filter(
        Note.uploader_id == user_id,
        Note.created_at >= _start_of_today_utc(now),
    ).scalar() or 0


def upload_note(
    db: Session,
    uploader_id: str,
    category: str,
    level: str,
    subject: str,
    topic: str,
    tags: str | None,
    filename: str | None,
    content_type: str | None,
    data: bytes,
    *,
    now: datetime | None = None,
) -> Note:
    """Validate, store the file and commit the note with its bonuses. Nothing is kept on failure."""
    now = now or utcnow()
    cat = validate_category(category)
    level = clean_text(level, "Level", LEVEL_MAX)
    subject = clean_text(subject, "Subject", SUBJECT_MAX)
    topic = clean_text(topic, "Topic", TOPIC_MAX)
    tag_list = parse_tags(tags)
    errors = check_note_file(content_type, len(data))
    if errors:
        raise InvalidFile(errors)

    limit = get_settings().daily_upload_limit
    if count_uploads_today(db, uploader_id, now=now) >= limit:
        raise UploadLimitReached(
            f"Daily upload limit reached! You can upload a maximum of {limit} files per day."
        )
    first_upload = not db.query(Note.id).filter(Note.uploader_id == uploader_id).first()

    ext = (Path(filename or "").suffix or ".bin").lower()
    if len(ext) > 10:
        ext = ".bin"
    key = f"{uploader_id}/{uuid.uuid4().hex}{ext}"
    file_url = storage.store(data, key)
    try:
        with transaction(db):
            note = Note(
                uploader_id=uploader_id,
                category=cat.value,
                level=level,
                subject=subject,
                topic=topic,
                tags=tag_list,
                file_key=key,
                file_url=file_url,
                file_type=(content_type or "").split(";")[0].strip().lower(),
                file_size=len(data),
                upvotes=0,
                downvotes=0,
                trust_score=0,
                created_at=now,
            )
            db.add(note)
            db.flush()
            points_ledger.credit(
                db, uploader_id, get_settings().upload_bonus_points, PointsReason.UPLOAD_BONUS, note.id,
            )
            if first_upload:
                rewards.complete_referral(db, uploader_id, now=now)
    except Exception:
        storage.remove(key)
        raise
    logger.info("Note %s uploaded by %s", note.id, uploader_id)
    return note


def get_note(db: Session, note_id: str) -> Note:
    note = db.query(Note).filter(Note.id == note_id).first()
    if note is None:
        raise NotFound("Note not found")
    return note


def list_notes(
    db: Session,
    category: str | None = None,
    level: str | None = None,
    search_text: str | None = None,
    limit: int = 50,
) -> list[Note]:
    q = db.query(Note)
    if category:
        q = q.filter(Note.category == validate_category(category).value)
    if level:
        q = q.filter(Note.level == level)
    text = (search_text or "").strip().lower()
    if text:
        pattern = contains_pattern(text)
        q = q.filter(or_(
            func.lower(Note.subject).like(pattern, escape="\\"),
            func.lower(Note.topic).like(pattern, escape="\\"),
        ))
    return q.order_by(Note.created_at.desc()).limit(limit).all()


# ---------- Votes ----------

def recount_note_votes(db: Session, note: Note) -> None:
    rows = (
        db.query(NoteVote.vote_type, func.count(NoteVote.id))
        .filter(NoteVote.note_id == note.id)
        .group_by(NoteVote.vote_type)
        .all()
    )
    counts = dict(rows)
    note.upvotes = counts.get(VoteType.UPVOTE.value, 0)
    note.downvotes = counts.get(VoteType.DOWNVOTE.value, 0)
    note.trust_score = note.upvotes - note.downvotes
    db.flush()


def get_user_vote(db: Session, note_id: str, user_id: str) -> str | None:
    vote = db.query(NoteVote).filter(NoteVote.note_id == note_id, NoteVote.user_id == user_id).first()
    return vote.vote_type if vote else None


def vote_note(db: Session, note: Note, user_id: str, vote_type: VoteType) -> str | None:
    """
    Toggle a vote: the same vote again removes it, a different one replaces it.
    Returns the user's vote afterwards (None when removed).
    """
    existing = db.query(NoteVote).filter(NoteVote.note_id == note.id, NoteVote.user_id == user_id).first()
    if existing is not None and existing.vote_type == vote_type.value:
        db.delete(existing)
        current = None
    elif existing is not None:
        existing.vote_type = vote_type.value
        current = vote_type.value
    else:
        db.add(NoteVote(note_id=note.id, user_id=user_id, vote_type=vote_type.value))
        current = vote_type.value
    db.flush()
    recount_note_votes(db, note)
    return current


# ---------- Downloads ----------

def download_cost(note: Note) -> int:
    """base + step for every full trust_step of trust score; low-trust notes cost the base."""
    settings = get_settings()
    steps = max(note.trust_score or 0, 0) // settings.download_trust_step
    return settings.download_base_cost + steps * settings.download_cost_step


def purchase_download(db: Session, note: Note, user_id: str) -> tuple[str, int]:
    """Charge the download cost (free for the uploader) and return (signed url, points charged)."""
    key = note.file_key
    if not key:
        raise NotFound("File not found")
    cost = 0 if note.uploader_id == user_id else download_cost(note)
    if cost:
        points_ledger.spend(db, user_id, cost, PointsReason.NOTE_DOWNLOAD, note.id)
        logger.info("Note %s downloaded by %s for %s points", note.id, user_id, cost)
    return storage.signed_url(key, DOWNLOAD_URL_EXPIRE_SECONDS), cost


# ---------- Reports ----------

def report_note(db: Session, note: Note, reporter_id: str, reason: str | None) -> NoteReport:
    reason = clean_text(reason, "Reason", REPORT_REASON_MAX)
    if db.query(NoteReport.id).filter(
        NoteReport.note_id == note.id,
        NoteReport.reporter_id == reporter_id,
    ).first():
        raise InvalidInput("You have already reported this note")
    report = NoteReport(note_id=note.id, reporter_id=reporter_id, reason=reason)
    db.add(report)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise InvalidInput("You have already reported this note") from None
    logger.warning("Note %s reported by %s", note.id, reporter_id)
    return report


# ---------- Library ----------

def save_note(db: Session, note: Note, user_id: str) -> SavedNote:
    """Add to the user's library; saving twice keeps one entry."""
    saved = db.query(SavedNote).filter(SavedNote.user_id == user_id, SavedNote.note_id == note.id).first()
    if saved is None:
        saved = SavedNote(user_id=user_id, note_id=note.id)
        db.add(saved)
        db.flush()
    return saved


def unsave_note(db: Session, note_id: str, user_id: str) -> bool:
    deleted = (
        db.query(SavedNote)
        .filter(SavedNote.user_id == user_id, SavedNote.note_id == note_id)
        .delete(synchronize_session="fetch")
    )
    return deleted > 0


def list_saved(db: Session, user_id: str) -> list[tuple[SavedNote, Note]]:
    """Saved notes, most recently saved first."""
    return (
        db.query(SavedNote, Note)
        .join(Note, SavedNote.note_id == Note.id)
        .filter(SavedNote.user_id == user_id)
        .order_by(SavedNote.created_at.desc())
        .all()
    )
