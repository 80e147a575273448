"""
Account rewards outside the request workflow:
- signup bonus (optional, settings.signup_bonus_points)
- profile bonus, once, when university and course are both filled in
- leaderboard: profiles ranked by Gyan Points with a reputation level
- referral: a code on every profile; the referrer earns the bonus when the
  referred user uploads their first note. At most referral_monthly_limit
  referrals per referrer per calendar month (UTC).
All functions flush only; the caller commits.
"""
import logging
import secrets
import string
from datetime import datetime
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gyanshare.config import get_settings
from gyanshare.errors import InvalidInput
from gyanshare.models.points import PointsEntry, PointsReason
from gyanshare.models.profile import Profile
from gyanshare.models.referral import Referral, ReferralStatus
from gyanshare.services import points_ledger
from gyanshare.utils.clock import utcnow

logger = logging.getLogger(__name__)

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 8


def _start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def generate_referral_code(db: Session) -> str:
    while True:
        code = "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))
        if not db.query(Profile.id).filter(Profile.referral_code == code).first():
            return code


def _email_taken(db: Session, email: str) -> bool:
    return db.query(Profile.id).filter(func.lower(Profile.email) == email).first() is not None


def count_monthly_referrals(db: Session, referrer_id: str, *, now: datetime | None = None) -> int:
    since = _start_of_month(now or utcnow())
    return db.query(func.count(Referral.id)).filter(
        Referral.referrer_id == referrer_id,
        Referral.created_at >= since,
    ).scalar() or 0


def register_profile(
    db: Session,
    email: str,
    password_hash: str | None,
    full_name: str = "",
    referral_code: str | None = None,
    *,
    now: datetime | None = None,
) -> Profile:
    """Create a profile with its own referral code; link the referrer if the code is valid."""
    settings = get_settings()
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise InvalidInput("Invalid email address")
    if _email_taken(db, email):
        raise InvalidInput("An account with this email already exists")

    referrer = None
    code = (referral_code or "").strip().upper()
    if code:
        referrer = db.query(Profile).filter(Profile.referral_code == code).first()
        if referrer is None:
            raise InvalidInput("Invalid referral code")
        if count_monthly_referrals(db, referrer.id, now=now) >= settings.referral_monthly_limit:
            logger.info("Referrer %s reached the monthly referral limit; code %s not applied", referrer.id, code)
            referrer = None

    profile = Profile(
        email=email,
        password=password_hash,
        full_name=(full_name or "").strip()[:100],
        referral_code=generate_referral_code(db),
        referred_by=referrer.id if referrer else None,
    )
    db.add(profile)
    try:
        db.flush()
    except IntegrityError:
        # concurrent signup with the same email won the insert
        db.rollback()
        raise InvalidInput("An account with this email already exists") from None
    if referrer:
        db.add(Referral(referrer_id=referrer.id, referred_user_id=profile.id, created_at=now or utcnow()))
    if settings.signup_bonus_points > 0:
        points_ledger.credit(db, profile.id, settings.signup_bonus_points, PointsReason.SIGNUP_BONUS, profile.id)
    db.flush()
    return profile


def update_profile(
    db: Session,
    profile: Profile,
    full_name: str | None = None,
    university: str | None = None,
    course: str | None = None,
) -> bool:
    """Apply non-empty fields. Returns True if the profile bonus was awarded by this call."""
    if full_name and full_name.strip():
        profile.full_name = full_name.strip()
    if university and university.strip():
        profile.university = university.strip()
    if course and course.strip():
        profile.course = course.strip()
    db.flush()

    if profile.profile_bonus_awarded or not (profile.university and profile.course):
        return False
    profile.profile_bonus_awarded = True
    points_ledger.credit(
        db, profile.id, get_settings().profile_bonus_points, PointsReason.PROFILE_BONUS, profile.id,
    )
    return True


def complete_referral(db: Session, referred_user_id: str, *, now: datetime | None = None) -> Referral | None:
    """Called on a user's first note upload: pay the referrer once."""
    referral = (
        db.query(Referral)
        .filter(
            Referral.referred_user_id == referred_user_id,
            Referral.status == ReferralStatus.PENDING.value,
        )
        .first()
    )
    if referral is None:
        return None
    bonus = get_settings().referral_bonus_points
    referral.status = ReferralStatus.COMPLETED.value
    referral.completed_at = now or utcnow()
    referral.points_awarded = bonus
    points_ledger.credit(db, referral.referrer_id, bonus, PointsReason.REFERRAL_BONUS, referral.id)
    logger.info("Referral %s completed; %s points to %s", referral.id, bonus, referral.referrer_id)
    return referral


def referral_stats(db: Session, user_id: str, *, now: datetime | None = None) -> dict:
    rows = (
        db.query(Referral.status, func.count(Referral.id))
        .filter(Referral.referrer_id == user_id)
        .group_by(Referral.status)
        .all()
    )
    by_status = dict(rows)
    earned = db.query(func.coalesce(func.sum(PointsEntry.amount), 0)).filter(
        PointsEntry.user_id == user_id,
        PointsEntry.reason == PointsReason.REFERRAL_BONUS.value,
    ).scalar() or 0
    return {
        "total_referrals": sum(by_status.values()),
        "monthly_referrals": count_monthly_referrals(db, user_id, now=now),
        "pending_referrals": by_status.get(ReferralStatus.PENDING.value, 0),
        "total_points_earned": earned,
        "monthly_limit": get_settings().referral_monthly_limit,
    }


def list_referrals(db: Session, user_id: str) -> list[tuple[Referral, Profile]]:
    return (
        db.query(Referral, Profile)
        .join(Profile, Referral.referred_user_id == Profile.id)
        .filter(Referral.referrer_id == user_id)
        .order_by(Referral.created_at.desc())
        .all()
    )


# (minimum points, level), highest first
REPUTATION_LEVELS = [
    (5000, "Legend"),
    (1000, "Top Contributor"),
    (500, "Active"),
    (100, "Contributor"),
    (0, "Newbie"),
]


def reputation_level(points: int) -> str:
    for minimum, level in REPUTATION_LEVELS:
        if points >= minimum:
            return level
    return REPUTATION_LEVELS[-1][1]


def leaderboard(db: Session, limit: int = 50) -> list[dict]:
    """Profiles ranked by ledger balance (ties: oldest account first)."""
    balance = func.coalesce(func.sum(PointsEntry.amount), 0)
    rows = (
        db.query(Profile, balance.label("gyan_points"))
        .outerjoin(PointsEntry, PointsEntry.user_id == Profile.id)
        .group_by(Profile.id)
        .order_by(balance.desc(), Profile.created_at.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "rank": i,
            "user_id": p.id,
            "full_name": p.full_name or "",
            "gyan_points": int(points),
            "reputation_level": reputation_level(int(points)),
        }
        for i, (p, points) in enumerate(rows, start=1)
    ]
