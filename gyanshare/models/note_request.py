import uuid
import enum
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey
from gyanshare.database import Base
from gyanshare.utils.clock import utcnow


class EducationCategory(str, enum.Enum):
    PROGRAMMING = "programming"
    SCHOOL = "school"
    UNIVERSITY = "university"


class RequestStatus(str, enum.Enum):
    OPEN = "open"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class NoteRequest(Base):
    """A user's ask for notes on a topic. points_offered is escrowed at creation."""
    __tablename__ = "note_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    requester_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    category = Column(String(20), nullable=False)
    level = Column(String(50), nullable=False)
    subject = Column(String(100), nullable=False)
    topic = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    points_offered = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=RequestStatus.OPEN.value, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=True)
    fulfilled_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    fulfilled_at = Column(DateTime, nullable=True)
