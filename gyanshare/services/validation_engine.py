"""
Fulfillment dispositions and the status transition table.

    submitted         -> rejected | awaiting_approval | community_review
    awaiting_approval -> approved | rejected | community_review
    community_review  -> approved | rejected

approved and rejected are terminal. Every status change goes through transition().
Community thresholds and the auto-review default come from settings.
"""
from datetime import datetime, timedelta

from gyanshare.config import get_settings
from gyanshare.errors import AlreadyResolved, InvalidTransition
from gyanshare.models.fulfillment import FulfillmentStatus, RequestFulfillment
from gyanshare.utils.clock import utcnow

TERMINAL = frozenset({FulfillmentStatus.APPROVED, FulfillmentStatus.REJECTED})

TRANSITIONS: dict[FulfillmentStatus, frozenset[FulfillmentStatus]] = {
    FulfillmentStatus.SUBMITTED: frozenset({
        FulfillmentStatus.REJECTED,
        FulfillmentStatus.AWAITING_APPROVAL,
        FulfillmentStatus.COMMUNITY_REVIEW,
    }),
    FulfillmentStatus.AWAITING_APPROVAL: frozenset({
        FulfillmentStatus.APPROVED,
        FulfillmentStatus.REJECTED,
        FulfillmentStatus.COMMUNITY_REVIEW,
    }),
    FulfillmentStatus.COMMUNITY_REVIEW: frozenset({
        FulfillmentStatus.APPROVED,
        FulfillmentStatus.REJECTED,
    }),
    FulfillmentStatus.APPROVED: frozenset(),
    FulfillmentStatus.REJECTED: frozenset(),
}


def status_of(fulfillment: RequestFulfillment) -> FulfillmentStatus:
    return FulfillmentStatus(fulfillment.status)


def is_terminal(fulfillment: RequestFulfillment) -> bool:
    return status_of(fulfillment) in TERMINAL


def transition(
    fulfillment: RequestFulfillment,
    target: FulfillmentStatus,
    *,
    now: datetime | None = None,
) -> None:
    current = status_of(fulfillment)
    if current in TERMINAL:
        raise AlreadyResolved(f"Fulfillment is already {current.value}.")
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(current.value, target.value)
    fulfillment.status = target.value
    if target in TERMINAL:
        fulfillment.reviewed_at = now or utcnow()


def initial_disposition(fulfillment: RequestFulfillment, *, now: datetime | None = None) -> FulfillmentStatus:
    """
    Right after submit: failed structural checks reject, otherwise wait for the
    requester (or go to community voting when community_review_on_submit is set).
    """
    if not fulfillment.validation_passed:
        target = FulfillmentStatus.REJECTED
    elif get_settings().community_review_on_submit:
        target = FulfillmentStatus.COMMUNITY_REVIEW
    else:
        target = FulfillmentStatus.AWAITING_APPROVAL
    transition(fulfillment, target, now=now)
    return target


def escalate_to_community(fulfillment: RequestFulfillment, *, now: datetime | None = None) -> None:
    """Requester did not act in time: hand over to community voting with a fresh deadline."""
    now = now or utcnow()
    transition(fulfillment, FulfillmentStatus.COMMUNITY_REVIEW, now=now)
    fulfillment.auto_review_at = now + timedelta(hours=get_settings().auto_review_hours)


def community_verdict(upvotes: int, downvotes: int) -> FulfillmentStatus | None:
    """APPROVED / REJECTED once the net vote crosses a threshold, else None (keep voting)."""
    settings = get_settings()
    if upvotes + downvotes < settings.community_min_votes:
        return None
    net = upvotes - downvotes
    if net >= settings.community_approve_net:
        return FulfillmentStatus.APPROVED
    if net <= -settings.community_reject_net:
        return FulfillmentStatus.REJECTED
    return None


def auto_review_default() -> FulfillmentStatus:
    """Disposition forced on a community review that passed its deadline."""
    value = (get_settings().auto_review_default or "").strip().lower()
    if value == FulfillmentStatus.APPROVED.value:
        return FulfillmentStatus.APPROVED
    return FulfillmentStatus.REJECTED

