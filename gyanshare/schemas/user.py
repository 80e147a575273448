from datetime import datetime
from pydantic import BaseModel


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: str
    university: str | None
    course: str | None
    referral_code: str | None
    profile_bonus_awarded: bool
    gyan_points: int
    created_at: datetime


class ProfileUpdate(BaseModel):
    """All fields optional; empty strings are ignored."""
    full_name: str | None = None
    university: str | None = None
    course: str | None = None


class ProfileUpdateResponse(BaseModel):
    profile: ProfileResponse
    bonus_awarded: bool
    message: str


class TokenPayload(BaseModel):
    sub: str  # user id
    email: str
    exp: int
    type: str = "access"


class RegisterRequest(BaseModel):
    email: str
    password: str
    full_name: str = ""
    referral_code: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class PointsBalanceResponse(BaseModel):
    user_id: str
    gyan_points: int


class PointsEntryResponse(BaseModel):
    id: str
    amount: int
    reason: str
    reference_id: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class ReferralItem(BaseModel):
    id: str
    referred_user_id: str
    referred_user_name: str
    status: str
    points_awarded: int
    created_at: datetime
    completed_at: datetime | None


class ReferralOverview(BaseModel):
    referral_code: str | None
    total_referrals: int
    monthly_referrals: int
    pending_referrals: int
    total_points_earned: int
    monthly_limit: int
    referrals: list[ReferralItem]


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    full_name: str
    gyan_points: int
    reputation_level: str
