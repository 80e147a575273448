"""Submitted file for a note request, its community votes and vote activity."""
import uuid
import enum
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint,
)
from gyanshare.database import Base
from gyanshare.utils.clock import utcnow


class FulfillmentStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    AWAITING_APPROVAL = "awaiting_approval"
    COMMUNITY_REVIEW = "community_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class VoteType(str, enum.Enum):
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


class RequestFulfillment(Base):
    __tablename__ = "request_fulfillments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_id = Column(String(36), ForeignKey("note_requests.id"), nullable=False, index=True)
    uploader_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    file_url = Column(String(1024), nullable=False)
    file_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=FulfillmentStatus.SUBMITTED.value, index=True)
    validation_passed = Column(Boolean, nullable=True)
    validation_errors = Column(JSON, nullable=True)
    upvotes = Column(Integer, nullable=False, default=0)
    downvotes = Column(Integer, nullable=False, default=0)
    auto_review_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    reviewed_at = Column(DateTime, nullable=True)


class FulfillmentVote(Base):
    """One row per (fulfillment, voter); re-voting updates vote_type."""
    __tablename__ = "fulfillment_votes"
    __table_args__ = (
        UniqueConstraint("fulfillment_id", "user_id", name="uq_fulfillment_votes_fulfillment_user"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    fulfillment_id = Column(String(36), ForeignKey("request_fulfillments.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    vote_type = Column(String(10), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class VoteActivity(Base):
    """Every vote/unvote event, for spam-rate detection."""
    __tablename__ = "vote_activity"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    fulfillment_id = Column(String(36), ForeignKey("request_fulfillments.id"), nullable=False)
    vote_type = Column(String(10), nullable=False)  # upvote | downvote | unvote
    vote_timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
