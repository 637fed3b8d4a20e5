"""Fuzzy re-ranking of prefix query candidates.

FTS prefix matching is reliable but rigid. A fuzzy pass over the candidate
words recovers intent for typos and favours whole-word matches; the full
candidate list is then appended so nothing the index found is ever dropped,
only reordered.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from rapidfuzz import fuzz, utils

from ordabok.models.entry import DictionaryEntry

# (query, word) -> similarity in [0, 100]
Scorer = Callable[[str, str], float]

DEFAULT_SCORE_CUTOFF = 60.0


def wratio_scorer(query: str, word: str) -> float:
    return fuzz.WRatio(query, word, processor=utils.default_process)


class FuzzyRanker:
    def __init__(
        self,
        scorer: Scorer = wratio_scorer,
        score_cutoff: float = DEFAULT_SCORE_CUTOFF,
    ) -> None:
        self.scorer = scorer
        self.score_cutoff = score_cutoff

    def rank(self, query: str, candidates: Sequence[DictionaryEntry]) -> list[DictionaryEntry]:
        """Candidates that plausibly match ``query``, most similar first.

        Only ``candidates`` are searched. Equal scores keep candidate order.
        """
        scored: list[tuple[float, DictionaryEntry]] = []
        for entry in candidates:
            score = self.scorer(query, entry.word)
            if score >= self.score_cutoff:
                scored.append((score, entry))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [entry for _, entry in scored]

    def merge(self, query: str, candidates: Sequence[DictionaryEntry]) -> list[DictionaryEntry]:
        """Fuzzy matches first, then every other candidate in original order, unique by id."""
        merged: list[DictionaryEntry] = []
        seen: set[int] = set()
        for entry in (*self.rank(query, candidates), *candidates):
            if entry.id not in seen:
                seen.add(entry.id)
                merged.append(entry)
        return merged
