"""Append-only ledger of signed point movements. Balance = SUM(amount) per user."""
import uuid
import enum
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint
from gyanshare.database import Base
from gyanshare.utils.clock import utcnow


class PointsReason(str, enum.Enum):
    SIGNUP_BONUS = "signup_bonus"
    REQUEST_ESCROW = "request_escrow"
    REQUEST_REFUND = "request_refund"
    FULFILLMENT_REWARD = "fulfillment_reward"
    UPLOAD_BONUS = "upload_bonus"
    REFERRAL_BONUS = "referral_bonus"
    PROFILE_BONUS = "profile_bonus"
    NOTE_DOWNLOAD = "note_download"


class PointsEntry(Base):
    __tablename__ = "points_ledger"
    __table_args__ = (CheckConstraint("amount <> 0", name="ck_points_ledger_amount_nonzero"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    reason = Column(String(32), nullable=False)
    reference_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
