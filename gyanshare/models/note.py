"""Shared study note (general upload, not tied to a request), its votes, reports and saves."""
import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, UniqueConstraint
from gyanshare.database import Base
from gyanshare.utils.clock import utcnow


class Note(Base):
    __tablename__ = "notes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    uploader_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    category = Column(String(20), nullable=False)
    level = Column(String(50), nullable=False)
    subject = Column(String(100), nullable=False)
    topic = Column(String(200), nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    file_key = Column(String(512), nullable=True)  # storage key; downloads get a fresh signed URL
    file_url = Column(String(1024), nullable=False)
    file_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)
    upvotes = Column(Integer, nullable=False, default=0)
    downvotes = Column(Integer, nullable=False, default=0)
    trust_score = Column(Integer, nullable=False, default=0)  # upvotes - downvotes
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)


class NoteVote(Base):
    __tablename__ = "note_votes"
    __table_args__ = (UniqueConstraint("note_id", "user_id", name="uq_note_votes_note_user"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    note_id = Column(String(36), ForeignKey("notes.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    vote_type = Column(String(10), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class NoteReport(Base):
    """One report per (reporter, note)."""
    __tablename__ = "note_reports"
    __table_args__ = (UniqueConstraint("note_id", "reporter_id", name="uq_note_reports_note_reporter"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    note_id = Column(String(36), ForeignKey("notes.id"), nullable=False, index=True)
    reporter_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    reason = Column(String(500), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class SavedNote(Base):
    """User's library."""
    __tablename__ = "saved_notes"
    __table_args__ = (UniqueConstraint("user_id", "note_id", name="uq_saved_notes_user_note"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    note_id = Column(String(36), ForeignKey("notes.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
