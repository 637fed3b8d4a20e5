"""Unit tests for ordabok.ranking."""

from __future__ import annotations

import pytest

from ordabok.models.entry import DictionaryEntry
from ordabok.ranking import FuzzyRanker, wratio_scorer


def _entries(*words: str) -> list[DictionaryEntry]:
    return [DictionaryEntry(id=i, word=w) for i, w in enumerate(words, start=1)]


def _ids(entries: list[DictionaryEntry]) -> list[int]:
    return [e.id for e in entries]


def _table_scorer(scores: dict[str, float]):
    def scorer(query: str, word: str) -> float:
        return scores.get(word, 0.0)

    return scorer


class TestWRatioScorer:
    def test_exact_word_beats_longer_prefix_word(self) -> None:
        assert wratio_scorer("cat", "cat") > wratio_scorer("cat", "catalog")

    def test_case_insensitive(self) -> None:
        assert wratio_scorer("CAT", "cat") == 100

    def test_unrelated_word_scores_low(self) -> None:
        assert wratio_scorer("cat", "house") < 60


class TestRank:
    def test_filters_below_cutoff(self) -> None:
        ranker = FuzzyRanker(scorer=_table_scorer({"a": 90, "b": 10}), score_cutoff=50)
        assert _ids(ranker.rank("q", _entries("a", "b"))) == [1]

    def test_orders_by_score_descending(self) -> None:
        ranker = FuzzyRanker(scorer=_table_scorer({"a": 70, "b": 95, "c": 80}))
        assert _ids(ranker.rank("q", _entries("a", "b", "c"))) == [2, 3, 1]

    def test_ties_keep_candidate_order(self) -> None:
        ranker = FuzzyRanker(scorer=_table_scorer({"a": 80, "b": 90, "c": 80}))
        assert _ids(ranker.rank("q", _entries("a", "b", "c"))) == [2, 1, 3]


class TestMerge:
    def test_exact_match_ranked_first(self) -> None:
        candidates = _entries("catalog", "cat")
        assert [e.word for e in FuzzyRanker().merge("cat", candidates)] == ["cat", "catalog"]

    def test_already_ordered_candidates_stay(self) -> None:
        candidates = _entries("cat", "catalog")
        assert _ids(FuzzyRanker().merge("cat", candidates)) == [1, 2]

    def test_empty_candidates(self) -> None:
        assert FuzzyRanker().merge("cat", []) == []

    def test_no_fuzzy_match_returns_candidates_unchanged(self) -> None:
        candidates = _entries("alpha", "beta", "gamma")
        ranker = FuzzyRanker(scorer=_table_scorer({}))
        assert ranker.merge("q", candidates) == candidates

    def test_unmatched_candidates_follow_in_original_order(self) -> None:
        candidates = _entries("a", "b", "c", "d", "e")
        ranker = FuzzyRanker(scorer=_table_scorer({"d": 99, "b": 70}))
        assert _ids(ranker.merge("q", candidates)) == [4, 2, 1, 3, 5]

    def test_duplicate_ids_collapsed(self) -> None:
        entry = DictionaryEntry(id=7, word="cat")
        other = DictionaryEntry(id=8, word="catalog")
        merged = FuzzyRanker().merge("cat", [entry, other, entry])
        assert _ids(merged) == [7, 8]

    @pytest.mark.parametrize("query", ["cat", "ca", "catt", "xyz", "log"])
    def test_output_is_permutation_of_candidates(self, query: str) -> None:
        candidates = _entries("cat", "catalog", "category", "cattle", "scatter", "dog")
        merged = FuzzyRanker().merge(query, candidates)
        assert len(merged) == len({e.id for e in merged})
        assert sorted(_ids(merged)) == _ids(candidates)

    def test_matches_only_among_candidates(self) -> None:
        seen: list[str] = []

        def scorer(query: str, word: str) -> float:
            seen.append(word)
            return 100.0

        FuzzyRanker(scorer=scorer).merge("cat", _entries("cat", "catalog"))
        assert seen == ["cat", "catalog"]
