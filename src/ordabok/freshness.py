"""Startup dataset freshness check.

On the very first run the bundled dataset is trusted and only the timestamp
is seeded. Afterwards, a dataset older than ``max_age_days`` is downloaded
again in full, verified and swapped in. Any failure leaves the current
dataset and timestamp alone; the next run's age check retries implicitly.
Nothing here raises to the caller.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from ordabok.errors import DownloadError, ReplaceError
from ordabok.models.freshness import FreshnessOutcome, FreshnessState

if TYPE_CHECKING:
    from ordabok.fetcher import ConnectivityProbe, Downloader
    from ordabok.metadata import MetadataStore
    from ordabok.store import DatasetStore

log = structlog.get_logger()

DEFAULT_MAX_AGE = timedelta(days=7)


def now_ms() -> int:
    return int(time.time() * 1000)


class FreshnessController:
    def __init__(
        self,
        store: DatasetStore,
        metadata: MetadataStore,
        downloader: Downloader,
        connectivity: ConnectivityProbe,
        source_url: str,
        *,
        max_age: timedelta = DEFAULT_MAX_AGE,
        on_update: Callable[[], object] | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._metadata = metadata
        self._downloader = downloader
        self._connectivity = connectivity
        self.source_url = source_url
        self.max_age = max_age
        self._on_update = on_update
        self._clock = clock
        self.state = FreshnessState.NEVER_CHECKED

    async def run(self, force: bool = False) -> FreshnessOutcome:
        """One freshness evaluation. ``force`` ignores the dataset's age."""
        record = await self._metadata.load_freshness()
        now = self._clock()

        if record is None:
            # Unknown age must not be mistaken for a first run
            log.info("freshness_check_skipped", reason="state_unreadable")
            self.state = FreshnessState.UP_TO_DATE
            return FreshnessOutcome.SKIPPED

        if record.last_fetched_at_ms is None:
            await self._metadata.save_freshness(now)
            self.state = FreshnessState.SEEDED
            log.info("freshness_seeded", last_fetched_at_ms=now)
            self.state = FreshnessState.UP_TO_DATE
            return FreshnessOutcome.SEEDED

        self.state = FreshnessState.CHECKING
        age_ms = now - record.last_fetched_at_ms

        if not force and age_ms <= self.max_age / timedelta(milliseconds=1):
            log.debug("dataset_fresh", age_ms=age_ms)
            self.state = FreshnessState.UP_TO_DATE
            return FreshnessOutcome.FRESH

        if not await self._connectivity.is_connected():
            log.info("freshness_check_skipped", reason="offline", age_ms=age_ms)
            self.state = FreshnessState.UP_TO_DATE
            return FreshnessOutcome.OFFLINE

        self.state = FreshnessState.UPDATING
        try:
            await self._update()
        except (DownloadError, ReplaceError) as exc:
            log.warning(
                "dataset_update_failed",
                url=self.source_url,
                code=exc.code.value,
                error=exc.message,
            )
            return FreshnessOutcome.FAILED
        finally:
            self.state = FreshnessState.UP_TO_DATE

        await self._metadata.save_freshness(self._clock())
        if self._on_update is not None:
            try:
                self._on_update()
            except Exception:
                log.warning("update_listener_failed", exc_info=True)
        return FreshnessOutcome.UPDATED

    async def _update(self) -> None:
        staging = self._store.staging_path()
        try:
            await self._downloader.download(self.source_url, staging)
            # replace_from_file consumes the staging file on success and failure
            await self._store.replace_from_file(staging)
        finally:
            staging.unlink(missing_ok=True)
