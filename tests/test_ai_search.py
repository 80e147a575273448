"""Tests for AI-ranked note search and its substring fallback (no model calls)."""

import pytest

from gyanshare.models.note import Note
from gyanshare.services import ai_search


def _note(id: str, topic: str, subject: str = "Science") -> Note:
    return Note(id=id, topic=topic, subject=subject, category="school", level="Grade 8", tags=[])


@pytest.fixture
def candidates() -> list[Note]:
    return [
        _note("n1", "Photosynthesis"),
        _note("n2", "Cell division"),
        _note("n3", "Fractions", subject="Mathematics"),
    ]


class TestParse:
    def test_plain_array(self) -> None:
        assert ai_search.parse_ranked_ids('["a","b"]') == ["a", "b"]

    def test_fenced_json(self) -> None:
        assert ai_search.parse_ranked_ids('```json\n["a"]\n```') == ["a"]

    def test_not_a_list(self) -> None:
        with pytest.raises(ValueError):
            ai_search.parse_ranked_ids('{"id": "a"}')


class TestRank:
    def test_model_order_kept(self, candidates) -> None:
        result = ai_search.rank_notes("cells", candidates, ranker=lambda q, c: ["n2", "n1"])
        assert [n.id for n in result] == ["n2", "n1"]

    def test_unknown_and_duplicate_ids_dropped(self, candidates) -> None:
        result = ai_search.rank_notes("x", candidates, ranker=lambda q, c: ["zz", "n3", "n3"])
        assert [n.id for n in result] == ["n3"]

    def test_fallback_on_model_failure(self, candidates) -> None:
        def broken(query, notes):
            raise RuntimeError("quota exceeded")

        result = ai_search.rank_notes("math", candidates, ranker=broken)
        assert [n.id for n in result] == ["n3"]

    def test_at_most_ten(self) -> None:
        many = [_note(f"n{i}", f"Topic {i}") for i in range(30)]
        result = ai_search.rank_notes("topic", many, ranker=lambda q, c: [n.id for n in c])
        assert len(result) == ai_search.MAX_RESULTS

    def test_prompt_lists_candidates(self, candidates) -> None:
        prompt = ai_search.build_search_prompt("plants", candidates)
        assert "plants" in prompt
        assert '"id": "n1"' in prompt

    def test_search_with_no_notes(self, db) -> None:
        assert ai_search.search_notes(db, "anything", ranker=lambda q, c: pytest.fail("not called")) == []
