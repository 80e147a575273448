import uuid
import enum
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from gyanshare.database import Base
from gyanshare.utils.clock import utcnow


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Referral(Base):
    """Referrer earns the bonus once the referred user uploads their first note."""
    __tablename__ = "referrals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    referrer_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    referred_user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=ReferralStatus.PENDING.value)
    points_awarded = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)
