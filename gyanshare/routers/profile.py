"""Profile, Gyan Points balance/history and referrals for the current user; the public leaderboard."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from gyanshare.auth import get_current_user
from gyanshare.database import get_db
from gyanshare.models.profile import Profile
from gyanshare.schemas.user import (
    LeaderboardEntry,
    PointsBalanceResponse,
    PointsEntryResponse,
    ProfileResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
    ReferralItem,
    ReferralOverview,
)
from gyanshare.services import points_ledger, rewards
from gyanshare.config import get_settings

router = APIRouter(prefix="/api", tags=["profile"])


def profile_response(db: Session, user: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        university=user.university,
        course=user.course,
        referral_code=user.referral_code,
        profile_bonus_awarded=user.profile_bonus_awarded,
        gyan_points=points_ledger.get_balance(db, user.id),
        created_at=user.created_at,
    )


@router.patch("/profile", response_model=ProfileUpdateResponse)
def update_profile(
    body: ProfileUpdate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update name/university/course. Completing university + course awards a one-time bonus."""
    awarded = rewards.update_profile(db, user, body.full_name, body.university, body.course)
    db.commit()
    db.refresh(user)
    message = "Profile updated successfully!"
    if awarded:
        message = f"Profile updated! You earned {get_settings().profile_bonus_points} GP bonus for completing your profile!"
    return ProfileUpdateResponse(profile=profile_response(db, user), bonus_awarded=awarded, message=message)


@router.get("/points/balance", response_model=PointsBalanceResponse)
def get_balance(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    return PointsBalanceResponse(user_id=user.id, gyan_points=points_ledger.get_balance(db, user.id))


@router.get("/points/history", response_model=list[PointsEntryResponse])
def get_history(
    limit: int = 100,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Ledger movements, newest first."""
    return [PointsEntryResponse.model_validate(e) for e in points_ledger.history(db, user.id, min(limit, 500))]


@router.get("/referrals", response_model=ReferralOverview)
def get_referrals(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    stats = rewards.referral_stats(db, user.id)
    rows = rewards.list_referrals(db, user.id)
    return ReferralOverview(
        referral_code=user.referral_code,
        **stats,
        referrals=[
            ReferralItem(
                id=ref.id,
                referred_user_id=ref.referred_user_id,
                referred_user_name=p.full_name or p.email,
                status=ref.status,
                points_awarded=ref.points_awarded,
                created_at=ref.created_at,
                completed_at=ref.completed_at,
            )
            for ref, p in rows
        ],
    )


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
def get_leaderboard(limit: int = 50, db: Session = Depends(get_db)):
    return [LeaderboardEntry(**row) for row in rewards.leaderboard(db, min(limit, 100))]
