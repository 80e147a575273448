"""User profile. Points are not stored here; see PointsEntry."""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from gyanshare.database import Base
from gyanshare.utils.clock import utcnow


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=True)
    full_name = Column(String(100), nullable=False, default="")
    university = Column(String(200), nullable=True)
    course = Column(String(100), nullable=True)
    referral_code = Column(String(12), unique=True, nullable=True, index=True)
    referred_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    profile_bonus_awarded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
