"""Startup and shutdown of a dictionary instance."""

from __future__ import annotations

import asyncio
import contextlib
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from ordabok.config import Settings
from ordabok.fetcher import Downloader, HttpConnectivityProbe, build_http_client
from ordabok.freshness import FreshnessController
from ordabok.metadata import MetadataStore
from ordabok.ranking import FuzzyRanker
from ordabok.state import AppState
from ordabok.store import DatasetStore
from ordabok.swr import SWRCache

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ordabok.fetcher import ConnectivityProbe

log = structlog.get_logger()


@contextlib.asynccontextmanager
async def open_app(
    settings: Settings | None = None,
    *,
    connectivity: ConnectivityProbe | None = None,
    check_freshness: bool = True,
) -> AsyncIterator[AppState]:
    """Open the dataset, state DB and HTTP client; start the freshness check.

    The freshness check runs as a background task so lookups are served from
    the current dataset while a download is in progress. A successful update
    invalidates the result cache.
    """
    settings = settings or Settings()
    state_db_path = Path(settings.freshness.state_db_path).expanduser()
    state_db_path.parent.mkdir(parents=True, exist_ok=True)

    async with (
        aiosqlite.connect(state_db_path) as meta_db,
        build_http_client(settings.freshness.download_timeout_seconds) as client,
    ):
        metadata = MetadataStore(meta_db)
        await metadata.init_db()

        store = DatasetStore(
            settings.dataset.db_path,
            bundled_path=settings.dataset.bundled_path,
            max_results=settings.dataset.max_results,
        )
        async with store:
            cache = SWRCache(settings.cache)
            state = AppState(
                settings=settings,
                store=store,
                cache=cache,
                ranker=FuzzyRanker(score_cutoff=settings.search.fuzzy_score_cutoff),
                metadata=metadata,
                http_client=client,
            )
            state.freshness = FreshnessController(
                store,
                metadata,
                Downloader(client),
                connectivity
                or HttpConnectivityProbe(
                    client,
                    settings.dataset.source_url,
                    settings.freshness.connectivity_timeout_seconds,
                ),
                settings.dataset.source_url,
                max_age=timedelta(days=settings.freshness.max_age_days),
                on_update=cache.invalidate,
            )
            if check_freshness:
                state.freshness_task = asyncio.create_task(state.freshness.run())
            try:
                yield state
            finally:
                task = state.freshness_task
                if task is not None and not task.done():
                    log.info("freshness_check_abandoned")
                    task.cancel()
                    await asyncio.gather(task, return_exceptions=True)
                await cache.close()
