"""
Gyan Points ledger. The balance is never stored; it is SUM(amount) over the
user's points_ledger rows. debit/credit are the only writers.
Functions flush but do not commit; the caller owns the transaction.
"""
import logging
from sqlalchemy import func
from sqlalchemy.orm import Session

from gyanshare.errors import InsufficientPoints, NotFound
from gyanshare.models.points import PointsEntry, PointsReason
from gyanshare.models.profile import Profile

logger = logging.getLogger(__name__)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError(f"amount must be a positive integer, got {amount!r}")


def _lock_profile(db: Session, user_id: str) -> Profile:
    """Row lock on the profile serializes balance changes for one user (no-op on SQLite)."""
    profile = db.query(Profile).filter(Profile.id == user_id).with_for_update().first()
    if profile is None:
        raise NotFound("User not found")
    return profile


def get_balance(db: Session, user_id: str) -> int:
    return db.query(func.coalesce(func.sum(PointsEntry.amount), 0)).filter(
        PointsEntry.user_id == user_id,
    ).scalar() or 0


def debit(
    db: Session,
    user_id: str,
    amount: int,
    reason: PointsReason,
    reference_id: str | None = None,
) -> bool:
    """Take amount from the user. False (nothing written) if the balance is too low."""
    _check_amount(amount)
    _lock_profile(db, user_id)
    if get_balance(db, user_id) < amount:
        return False
    db.add(PointsEntry(user_id=user_id, amount=-amount, reason=reason.value, reference_id=reference_id))
    db.flush()
    return True


def spend(
    db: Session,
    user_id: str,
    amount: int,
    reason: PointsReason,
    reference_id: str | None = None,
) -> None:
    """debit, or raise InsufficientPoints with the shortfall."""
    if not debit(db, user_id, amount, reason, reference_id):
        raise InsufficientPoints(required=amount, available=get_balance(db, user_id))


def credit(
    db: Session,
    user_id: str,
    amount: int,
    reason: PointsReason,
    reference_id: str | None = None,
) -> None:
    _check_amount(amount)
    _lock_profile(db, user_id)
    db.add(PointsEntry(user_id=user_id, amount=amount, reason=reason.value, reference_id=reference_id))
    db.flush()
    logger.info("Credited %s points to %s (%s)", amount, user_id, reason.value)


def history(db: Session, user_id: str, limit: int = 100) -> list[PointsEntry]:
    return (
        db.query(PointsEntry)
        .filter(PointsEntry.user_id == user_id)
        .order_by(PointsEntry.created_at.desc())
        .limit(limit)
        .all()
    )
