"""Tests for the fulfillment file policy, vote upsert and the vote rate window."""

from datetime import datetime, timedelta

import pytest

from gyanshare.errors import VoteRateExceeded
from gyanshare.models.fulfillment import FulfillmentStatus, FulfillmentVote, VoteType
from gyanshare.services import fulfillment_store, request_store

from conftest import KB, make_profile


@pytest.fixture
def fulfillment(db, alice, bob):
    req = request_store.create_request(
        db, alice.id, "university", "Year 1", "Calculus", "Limits", "Limits with epsilon-delta proofs.", 10,
    )
    f = fulfillment_store.submit(db, req, bob.id, "/files/x.pdf", "application/pdf", 300 * KB)
    f.status = FulfillmentStatus.COMMUNITY_REVIEW.value
    db.commit()
    return f


class TestCheckFile:
    def test_valid_pdf(self, settings) -> None:
        assert fulfillment_store.check_file("application/pdf", 300 * KB) == []

    def test_content_type_parameters_ignored(self, settings) -> None:
        assert fulfillment_store.check_file("Application/PDF; charset=binary", 300 * KB) == []

    def test_too_small(self, settings) -> None:
        assert fulfillment_store.check_file("application/pdf", 50 * KB) == ["File must be at least 200KB"]

    def test_too_large(self, settings) -> None:
        errors = fulfillment_store.check_file("application/pdf", 11 * 1024 * KB)
        assert errors == ["File must be less than 10MB"]

    def test_reports_every_violation(self, settings) -> None:
        errors = fulfillment_store.check_file("image/png", 50 * KB)
        assert errors == ["Only PDF files are allowed", "File must be at least 200KB"]

    def test_boundaries_inclusive(self, settings) -> None:
        assert fulfillment_store.check_file("application/pdf", settings.fulfillment_min_bytes) == []
        assert fulfillment_store.check_file("application/pdf", settings.fulfillment_max_bytes) == []


class TestVotes:
    def test_one_vote_per_user(self, db, fulfillment, voters) -> None:
        fulfillment_store.vote(db, fulfillment, voters[0].id, VoteType.UPVOTE)
        fulfillment_store.vote(db, fulfillment, voters[0].id, VoteType.DOWNVOTE)
        db.commit()
        assert db.query(FulfillmentVote).count() == 1
        assert (fulfillment.upvotes, fulfillment.downvotes) == (0, 1)

    def test_counters_match_rows(self, db, fulfillment, voters) -> None:
        for v, t in zip(voters, [VoteType.UPVOTE, VoteType.UPVOTE, VoteType.DOWNVOTE]):
            fulfillment_store.vote(db, fulfillment, v.id, t)
        assert (fulfillment.upvotes, fulfillment.downvotes) == (2, 1)

    def test_unvote(self, db, fulfillment, voters) -> None:
        fulfillment_store.vote(db, fulfillment, voters[0].id, VoteType.UPVOTE)
        assert fulfillment_store.unvote(db, fulfillment, voters[0].id)
        assert not fulfillment_store.unvote(db, fulfillment, voters[0].id)
        assert fulfillment.upvotes == 0


class TestVoteRate:
    def test_limit_inside_window(self, db, fulfillment, settings, monkeypatch) -> None:
        monkeypatch.setattr(settings, "vote_rate_limit", 3)
        voter = make_profile(db, "spam@example.com")
        now = datetime(2026, 3, 1, 10, 0)
        for i in range(3):
            fulfillment_store.check_vote_rate(db, voter.id, now=now)
            fulfillment_store.record_activity(db, voter.id, fulfillment.id, "upvote", now=now + timedelta(seconds=i))
        with pytest.raises(VoteRateExceeded):
            fulfillment_store.check_vote_rate(db, voter.id, now=now + timedelta(seconds=5))

    def test_window_slides(self, db, fulfillment, settings, monkeypatch) -> None:
        monkeypatch.setattr(settings, "vote_rate_limit", 1)
        voter = make_profile(db, "slow@example.com")
        now = datetime(2026, 3, 1, 10, 0)
        fulfillment_store.record_activity(db, voter.id, fulfillment.id, "upvote", now=now)
        later = now + timedelta(seconds=settings.vote_rate_window_seconds + 1)
        fulfillment_store.check_vote_rate(db, voter.id, now=later)
