"""Tests for the fulfillment status transition table and community verdicts."""

import pytest

from gyanshare.errors import AlreadyResolved, InvalidTransition
from gyanshare.models.fulfillment import FulfillmentStatus, RequestFulfillment
from gyanshare.services import validation_engine as engine


def _fulfillment(status: FulfillmentStatus, passed: bool = True) -> RequestFulfillment:
    return RequestFulfillment(status=status.value, validation_passed=passed, upvotes=0, downvotes=0)


class TestTransitions:
    @pytest.mark.parametrize("current,target", [
        (FulfillmentStatus.SUBMITTED, FulfillmentStatus.AWAITING_APPROVAL),
        (FulfillmentStatus.SUBMITTED, FulfillmentStatus.REJECTED),
        (FulfillmentStatus.SUBMITTED, FulfillmentStatus.COMMUNITY_REVIEW),
        (FulfillmentStatus.AWAITING_APPROVAL, FulfillmentStatus.APPROVED),
        (FulfillmentStatus.AWAITING_APPROVAL, FulfillmentStatus.COMMUNITY_REVIEW),
        (FulfillmentStatus.COMMUNITY_REVIEW, FulfillmentStatus.APPROVED),
        (FulfillmentStatus.COMMUNITY_REVIEW, FulfillmentStatus.REJECTED),
    ])
    def test_allowed(self, current, target) -> None:
        f = _fulfillment(current)
        engine.transition(f, target)
        assert f.status == target.value

    @pytest.mark.parametrize("current,target", [
        (FulfillmentStatus.SUBMITTED, FulfillmentStatus.APPROVED),
        (FulfillmentStatus.AWAITING_APPROVAL, FulfillmentStatus.SUBMITTED),
        (FulfillmentStatus.COMMUNITY_REVIEW, FulfillmentStatus.AWAITING_APPROVAL),
    ])
    def test_not_allowed(self, current, target) -> None:
        f = _fulfillment(current)
        with pytest.raises(InvalidTransition):
            engine.transition(f, target)
        assert f.status == current.value

    @pytest.mark.parametrize("terminal", [FulfillmentStatus.APPROVED, FulfillmentStatus.REJECTED])
    def test_terminal_states_never_move(self, terminal) -> None:
        f = _fulfillment(terminal)
        for target in FulfillmentStatus:
            with pytest.raises(AlreadyResolved):
                engine.transition(f, target)
        assert f.status == terminal.value

    def test_terminal_sets_reviewed_at(self) -> None:
        f = _fulfillment(FulfillmentStatus.AWAITING_APPROVAL)
        assert f.reviewed_at is None
        engine.transition(f, FulfillmentStatus.REJECTED)
        assert f.reviewed_at is not None


class TestInitialDisposition:
    def test_passed_awaits_approval(self) -> None:
        f = _fulfillment(FulfillmentStatus.SUBMITTED, passed=True)
        assert engine.initial_disposition(f) == FulfillmentStatus.AWAITING_APPROVAL

    def test_failed_is_rejected(self) -> None:
        f = _fulfillment(FulfillmentStatus.SUBMITTED, passed=False)
        assert engine.initial_disposition(f) == FulfillmentStatus.REJECTED

    def test_policy_routes_to_community(self, settings, monkeypatch) -> None:
        monkeypatch.setattr(settings, "community_review_on_submit", True)
        f = _fulfillment(FulfillmentStatus.SUBMITTED, passed=True)
        assert engine.initial_disposition(f) == FulfillmentStatus.COMMUNITY_REVIEW

        failed = _fulfillment(FulfillmentStatus.SUBMITTED, passed=False)
        assert engine.initial_disposition(failed) == FulfillmentStatus.REJECTED


class TestCommunityVerdict:
    def test_too_few_votes(self, settings) -> None:
        assert engine.community_verdict(2, 0) is None

    def test_net_upvotes_approve(self, settings) -> None:
        assert engine.community_verdict(3, 0) == FulfillmentStatus.APPROVED
        assert engine.community_verdict(5, 2) == FulfillmentStatus.APPROVED

    def test_net_downvotes_reject(self, settings) -> None:
        assert engine.community_verdict(0, 3) == FulfillmentStatus.REJECTED

    def test_split_keeps_voting(self, settings) -> None:
        assert engine.community_verdict(2, 2) is None

    def test_thresholds_follow_settings(self, settings, monkeypatch) -> None:
        monkeypatch.setattr(settings, "community_min_votes", 1)
        monkeypatch.setattr(settings, "community_approve_net", 1)
        assert engine.community_verdict(1, 0) == FulfillmentStatus.APPROVED

    def test_auto_review_default(self, settings, monkeypatch) -> None:
        assert engine.auto_review_default() == FulfillmentStatus.REJECTED
        monkeypatch.setattr(settings, "auto_review_default", "Approved")
        assert engine.auto_review_default() == FulfillmentStatus.APPROVED
