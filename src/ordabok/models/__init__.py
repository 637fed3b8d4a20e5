from __future__ import annotations

from ordabok.models.entry import DictionaryEntry
from ordabok.models.freshness import FreshnessOutcome, FreshnessRecord, FreshnessState

__all__ = [
    # dataset
    "DictionaryEntry",
    # freshness
    "FreshnessRecord",
    "FreshnessState",
    "FreshnessOutcome",
]
