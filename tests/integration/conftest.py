"""Integration test fixtures.

Provides an AppState wired over the sample dataset with a real cache and
ranker, and Settings pointing every path into tmp_path.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ordabok.config import Settings
from ordabok.ranking import FuzzyRanker
from ordabok.service import SearchService
from ordabok.state import AppState
from ordabok.swr import SWRCache

if TYPE_CHECKING:
    from pathlib import Path

    from ordabok.store import DatasetStore


@pytest.fixture()
def settings(tmp_path: Path, dataset_path: Path) -> Settings:
    return Settings(
        data_dir=str(tmp_path),
        dataset={
            "db_path": str(tmp_path / "local" / "dict.db"),
            "bundled_path": str(dataset_path),
            "source_url": "https://example.com/datasets/v1/dict.db",
        },
        freshness={"state_db_path": str(tmp_path / "local" / "state.db")},
    )


@pytest.fixture()
async def app_state(store: DatasetStore, settings: Settings):
    cache = SWRCache(settings.cache)
    state = AppState(settings=settings, store=store, cache=cache, ranker=FuzzyRanker())
    yield state
    await cache.close()


@pytest.fixture()
def service(app_state: AppState) -> SearchService:
    return SearchService(app_state)
