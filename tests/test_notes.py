"""Tests for note search, upload cleanup, votes, paid downloads, reports and the library."""

from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy.exc import SQLAlchemyError

from gyanshare.errors import BackendFailure, InsufficientPoints, InvalidInput, NotFound
from gyanshare.models.fulfillment import VoteType
from gyanshare.models.note import Note, NoteReport
from gyanshare.models.points import PointsEntry, PointsReason
from gyanshare.services import notes, points_ledger, storage

from conftest import KB, make_profile, pdf_bytes

NOW = datetime(2026, 6, 10, 8, 30)


def _upload(db, user, topic="Linear equations", subject="Mathematics"):
    return notes.upload_note(
        db, user.id, "school", "Grade 9", subject, topic, "",
        "notes.pdf", "application/pdf", pdf_bytes(20 * KB), now=NOW,
    )


def _stored_files(settings) -> list[Path]:
    root = Path(settings.storage_dir)
    return [p for p in root.rglob("*") if p.is_file()] if root.exists() else []


@pytest.fixture
def uploader(db):
    return make_profile(db, "uploader@example.com")


@pytest.fixture
def note(db, uploader) -> Note:
    return _upload(db, uploader)


class TestUpload:
    def test_upload_commits_and_keeps_key(self, db, settings, uploader) -> None:
        n = _upload(db, uploader)
        db.rollback()
        assert db.query(Note).count() == 1
        assert n.file_key.startswith(f"{uploader.id}/")
        assert storage.open_path(n.file_key).is_file()

    def test_file_removed_when_commit_fails(self, db, settings, uploader, monkeypatch) -> None:
        def boom():
            raise SQLAlchemyError("commit failed")

        monkeypatch.setattr(db, "commit", boom)
        with pytest.raises(BackendFailure):
            _upload(db, uploader)
        assert _stored_files(settings) == []
        assert db.query(Note).count() == 0
        assert points_ledger.get_balance(db, uploader.id) == 0


class TestSearch:
    def test_wildcards_are_literal(self, db, uploader) -> None:
        for topic in ("axb", "a_b", "plain"):
            _upload(db, uploader, topic=topic)
        assert [n.topic for n in notes.list_notes(db, search_text="a_b")] == ["a_b"]
        assert notes.list_notes(db, search_text="%") == []
        assert len(notes.list_notes(db, search_text="MATH")) == 3


class TestVotes:
    def test_vote_toggles(self, db, note, voters) -> None:
        assert notes.vote_note(db, note, voters[0].id, VoteType.UPVOTE) == "upvote"
        assert (note.upvotes, note.downvotes, note.trust_score) == (1, 0, 1)
        # same vote again removes it
        assert notes.vote_note(db, note, voters[0].id, VoteType.UPVOTE) is None
        assert (note.upvotes, note.trust_score) == (0, 0)
        assert notes.get_user_vote(db, note.id, voters[0].id) is None

    def test_changing_vote_replaces_it(self, db, note, voters) -> None:
        notes.vote_note(db, note, voters[0].id, VoteType.UPVOTE)
        notes.vote_note(db, note, voters[1].id, VoteType.DOWNVOTE)
        notes.vote_note(db, note, voters[2].id, VoteType.DOWNVOTE)
        notes.vote_note(db, note, voters[0].id, VoteType.DOWNVOTE)
        db.commit()
        assert (note.upvotes, note.downvotes, note.trust_score) == (0, 3, -3)
        assert notes.get_user_vote(db, note.id, voters[0].id) == "downvote"


class TestDownload:
    def test_cost_grows_with_trust(self, note, settings) -> None:
        assert notes.download_cost(note) == settings.download_base_cost
        note.trust_score = settings.download_trust_step * 2 + 1
        assert notes.download_cost(note) == settings.download_base_cost + 2 * settings.download_cost_step
        note.trust_score = -40
        assert notes.download_cost(note) == settings.download_base_cost

    def test_purchase_debits_buyer(self, db, note, settings) -> None:
        buyer = make_profile(db, "buyer@example.com", points=80)
        url, spent = notes.purchase_download(db, note, buyer.id)
        db.commit()
        assert spent == settings.download_base_cost
        assert points_ledger.get_balance(db, buyer.id) == 80 - spent
        entry = db.query(PointsEntry).filter(PointsEntry.reason == PointsReason.NOTE_DOWNLOAD.value).one()
        assert entry.reference_id == note.id
        key, token = url[len("/files/"):].split("?token=")
        assert key == note.file_key
        assert storage.decode_file_token(token) == key

    def test_shortfall_reported(self, db, note, settings) -> None:
        buyer = make_profile(db, "poor@example.com", points=10)
        with pytest.raises(InsufficientPoints) as exc:
            notes.purchase_download(db, note, buyer.id)
        assert exc.value.required == settings.download_base_cost
        assert exc.value.available == 10
        assert points_ledger.get_balance(db, buyer.id) == 10

    def test_uploader_downloads_free(self, db, note, uploader, settings) -> None:
        _, spent = notes.purchase_download(db, note, uploader.id)
        assert spent == 0
        assert points_ledger.get_balance(db, uploader.id) == settings.upload_bonus_points


class TestReports:
    def test_duplicate_report_rejected(self, db, note, voters) -> None:
        notes.report_note(db, note, voters[0].id, "Copied from a textbook")
        db.commit()
        with pytest.raises(InvalidInput):
            notes.report_note(db, note, voters[0].id, "Again")
        notes.report_note(db, note, voters[1].id, "Wrong subject")
        db.commit()
        assert db.query(NoteReport).count() == 2

    def test_reason_required(self, db, note, voters) -> None:
        with pytest.raises(InvalidInput):
            notes.report_note(db, note, voters[0].id, "   ")


class TestLibrary:
    def test_save_list_unsave(self, db, uploader, voters) -> None:
        first = _upload(db, uploader, topic="Fractions")
        second = _upload(db, uploader, topic="Ratios")
        reader = voters[0]
        notes.save_note(db, first, reader.id)
        notes.save_note(db, first, reader.id)
        db.commit()
        notes.save_note(db, second, reader.id)
        db.commit()
        assert sorted(n.topic for _, n in notes.list_saved(db, reader.id)) == ["Fractions", "Ratios"]
        assert notes.unsave_note(db, first.id, reader.id)
        assert not notes.unsave_note(db, first.id, reader.id)
        db.commit()
        assert [n.topic for _, n in notes.list_saved(db, reader.id)] == ["Ratios"]

    def test_missing_note(self, db) -> None:
        with pytest.raises(NotFound):
            notes.get_note(db, "does-not-exist")
