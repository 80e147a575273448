"""Tests for note request creation, listing and the OPEN compare-and-set exits."""

from datetime import datetime, timedelta

import pytest

from gyanshare.errors import AlreadyResolved, InsufficientPoints, InvalidInput
from gyanshare.models.note_request import NoteRequest, RequestStatus
from gyanshare.models.points import PointsEntry, PointsReason
from gyanshare.services import points_ledger, request_store

from conftest import make_profile

DESCRIPTION = "Need clear notes with worked examples."


def _create(db, requester, points=5, topic="Binary trees", subject="Data Structures", **kwargs):
    req = request_store.create_request(
        db, requester.id, "programming", "Beginner", subject, topic, DESCRIPTION, points, **kwargs,
    )
    db.commit()
    return req


class TestCreate:
    def test_escrows_points(self, db) -> None:
        p = make_profile(db, "req@example.com", points=8)
        req = _create(db, p, points=5)
        assert req.status == RequestStatus.OPEN.value
        assert points_ledger.get_balance(db, p.id) == 3
        escrow = db.query(PointsEntry).filter(PointsEntry.reason == PointsReason.REQUEST_ESCROW.value).one()
        assert escrow.amount == -5
        assert escrow.reference_id == req.id

    def test_expiry_from_settings(self, db, settings) -> None:
        p = make_profile(db, "exp@example.com", points=10)
        now = datetime(2026, 1, 1, 12, 0)
        req = _create(db, p, now=now)
        assert req.created_at == now
        assert req.expires_at == now + timedelta(days=settings.request_expiry_days)

    def test_insufficient_points_creates_nothing(self, db) -> None:
        p = make_profile(db, "poor@example.com", points=10)
        _create(db, p, points=10)
        with pytest.raises(InsufficientPoints) as exc:
            _create(db, p, points=5)
        db.rollback()
        assert exc.value.available == 0
        assert db.query(NoteRequest).count() == 1
        assert points_ledger.get_balance(db, p.id) == 0

    @pytest.mark.parametrize("points", [4, 101])
    def test_points_out_of_range(self, db, points) -> None:
        p = make_profile(db, "range@example.com", points=200)
        with pytest.raises(InvalidInput):
            _create(db, p, points=points)

    def test_bad_category(self, db) -> None:
        p = make_profile(db, "cat@example.com", points=20)
        with pytest.raises(InvalidInput):
            request_store.create_request(db, p.id, "cooking", "L", "S", "T", DESCRIPTION, 5)

    def test_short_description(self, db) -> None:
        p = make_profile(db, "desc@example.com", points=20)
        with pytest.raises(InvalidInput):
            request_store.create_request(db, p.id, "school", "L", "S", "T", "too short", 5)

    def test_fields_trimmed(self, db) -> None:
        p = make_profile(db, "trim@example.com", points=20)
        req = _create(db, p, topic="  Graphs  ")
        assert req.topic == "Graphs"


class TestListOpen:
    def test_search_matches_subject_or_topic(self, db) -> None:
        p = make_profile(db, "list@example.com", points=50)
        _create(db, p, topic="Binary trees", subject="Data Structures")
        _create(db, p, topic="Photosynthesis", subject="Biology")
        assert [r.topic for r in request_store.list_open(db, search_text="TREE")] == ["Binary trees"]
        assert [r.topic for r in request_store.list_open(db, search_text="bio")] == ["Photosynthesis"]

    def test_search_wildcards_are_literal(self, db) -> None:
        p = make_profile(db, "wild@example.com", points=50)
        for topic in ("axb", "a_b", "plain"):
            _create(db, p, topic=topic, subject="Misc")
        assert [r.topic for r in request_store.list_open(db, search_text="a_b")] == ["a_b"]
        assert request_store.list_open(db, search_text="%") == []

    def test_only_open(self, db) -> None:
        p = make_profile(db, "open@example.com", points=50)
        req = _create(db, p)
        request_store.cancel_or_expire(db, req.id, RequestStatus.CANCELLED)
        db.commit()
        assert request_store.list_open(db) == []


class TestCloseAndRefund:
    def test_close_only_once(self, db) -> None:
        p = make_profile(db, "close@example.com", points=50)
        f = make_profile(db, "ful@example.com")
        req = _create(db, p)
        assert request_store.close_as_fulfilled(db, req.id, f.id)
        assert not request_store.close_as_fulfilled(db, req.id, f.id)
        assert req.status == RequestStatus.FULFILLED.value
        assert req.fulfilled_by == f.id

    def test_refund_restores_balance(self, db) -> None:
        p = make_profile(db, "refund@example.com", points=8)
        req = _create(db, p, points=5)
        request_store.cancel_or_expire(db, req.id, RequestStatus.EXPIRED)
        db.commit()
        assert req.status == RequestStatus.EXPIRED.value
        assert points_ledger.get_balance(db, p.id) == 8

    def test_refund_not_twice(self, db) -> None:
        p = make_profile(db, "twice@example.com", points=8)
        req = _create(db, p, points=5)
        request_store.cancel_or_expire(db, req.id, RequestStatus.CANCELLED)
        with pytest.raises(AlreadyResolved):
            request_store.cancel_or_expire(db, req.id, RequestStatus.EXPIRED)
        assert points_ledger.get_balance(db, p.id) == 8

    def test_cannot_expire_fulfilled(self, db) -> None:
        p = make_profile(db, "full@example.com", points=8)
        f = make_profile(db, "f2@example.com")
        req = _create(db, p, points=5)
        request_store.close_as_fulfilled(db, req.id, f.id)
        with pytest.raises(AlreadyResolved):
            request_store.cancel_or_expire(db, req.id, RequestStatus.EXPIRED)
        assert points_ledger.get_balance(db, p.id) == 3
