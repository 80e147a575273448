"""Tests for the Gyan Points ledger: balance is always the sum of entries."""

import pytest

from gyanshare.errors import InsufficientPoints, NotFound
from gyanshare.models.points import PointsEntry, PointsReason
from gyanshare.services import points_ledger

from conftest import make_profile


class TestBalance:
    def test_new_profile_has_zero(self, db) -> None:
        p = make_profile(db, "zero@example.com")
        assert points_ledger.get_balance(db, p.id) == 0

    def test_balance_is_sum_of_entries(self, db) -> None:
        p = make_profile(db, "sum@example.com", points=8)
        assert points_ledger.debit(db, p.id, 5, PointsReason.REQUEST_ESCROW, "r1")
        points_ledger.credit(db, p.id, 5, PointsReason.REQUEST_REFUND, "r1")
        points_ledger.credit(db, p.id, 10, PointsReason.UPLOAD_BONUS, "n1")
        total = sum(e.amount for e in db.query(PointsEntry).filter(PointsEntry.user_id == p.id))
        assert points_ledger.get_balance(db, p.id) == total == 18


class TestDebit:
    def test_debit_exact_balance(self, db) -> None:
        p = make_profile(db, "exact@example.com", points=10)
        assert points_ledger.debit(db, p.id, 10, PointsReason.REQUEST_ESCROW)
        assert points_ledger.get_balance(db, p.id) == 0

    def test_debit_short_writes_nothing(self, db) -> None:
        p = make_profile(db, "short@example.com", points=3)
        assert not points_ledger.debit(db, p.id, 5, PointsReason.REQUEST_ESCROW)
        assert points_ledger.get_balance(db, p.id) == 3
        assert db.query(PointsEntry).filter(PointsEntry.user_id == p.id).count() == 1

    @pytest.mark.parametrize("amount", [0, -5, 2.5, True])
    def test_non_positive_amount_rejected(self, db, amount) -> None:
        p = make_profile(db, "amount@example.com", points=10)
        with pytest.raises(ValueError):
            points_ledger.debit(db, p.id, amount, PointsReason.REQUEST_ESCROW)

    def test_unknown_user(self, db) -> None:
        with pytest.raises(NotFound):
            points_ledger.credit(db, "missing", 5, PointsReason.UPLOAD_BONUS)


class TestSpend:
    def test_spend_reports_shortfall(self, db) -> None:
        p = make_profile(db, "req@example.com", points=3)
        with pytest.raises(InsufficientPoints) as exc:
            points_ledger.spend(db, p.id, 5, PointsReason.NOTE_DOWNLOAD, "n1")
        assert points_ledger.get_balance(db, p.id) == 3
        assert exc.value.required == 5
        assert exc.value.available == 3
        assert exc.value.to_dict()["error"] == "InsufficientPoints"

    def test_history_newest_first(self, db) -> None:
        p = make_profile(db, "hist@example.com", points=20)
        points_ledger.debit(db, p.id, 5, PointsReason.REQUEST_ESCROW, "r1")
        db.commit()
        rows = points_ledger.history(db, p.id)
        assert len(rows) == 2
        assert rows[0].created_at >= rows[1].created_at
