"""In-memory stale-while-revalidate cache with per-key request coalescing.

Readers get whatever is cached right now (``get``) or await the current load
(``fetch``). A key never has more than one load in flight: later callers
join the running task instead of starting another. A failed load keeps the
previous value visible. Reads through ``get`` wait out the dedupe interval
before retrying a failed key; an explicit ``fetch`` always retries.

The cache lives for the process only and is never evicted by size.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import structlog

from ordabok.config import CacheSettings

log = structlog.get_logger()

T = TypeVar("T")

Loader = Callable[[], Awaitable[T]]
Listener = Callable[[str], object]


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """Snapshot of one key as seen by a reader."""

    value: T | None = None
    is_revalidating: bool = False
    has_value: bool = False
    # Most recent load failure, cleared by the next successful load
    error: BaseException | None = None


@dataclass
class CacheEntry(Generic[T]):
    key: str
    value: T | None = None
    has_value: bool = False
    is_revalidating: bool = False
    timestamp: float | None = None  # clock() of the last successful load
    error: BaseException | None = None
    failed_at: float | None = None  # clock() of the last failed load
    epoch: int = 0  # bumped by invalidate(); loads started earlier land stale
    task: asyncio.Task[Any] | None = field(default=None, repr=False)

    def snapshot(self) -> CacheResult[T]:
        return CacheResult(
            value=self.value,
            is_revalidating=self.is_revalidating,
            has_value=self.has_value,
            error=self.error,
        )


class SWRCache:
    """Process-lifetime result cache keyed by string."""

    def __init__(
        self,
        settings: CacheSettings | None = None,
        *,
        is_online: Callable[[], bool] | None = None,
        is_visible: Callable[[], bool] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or CacheSettings()
        self._is_online = is_online
        self._is_visible = is_visible
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(
        self, key: str, loader: Loader[T], *, revalidate: bool | None = None
    ) -> CacheResult[T]:
        """Return the cached snapshot for ``key``, starting a load if one is due.

        ``revalidate`` overrides ``revalidate_on_read`` for this call.
        """
        entry = self._entry(key)
        if entry.task is None and self._load_due(entry, revalidate):
            self._start(entry, loader)
        return entry.snapshot()

    async def fetch(self, key: str, loader: Loader[T], *, revalidate: bool = False) -> T:
        """Await the value for ``key``.

        A cached value is returned at once (a background revalidation may be
        started as with ``get``). Otherwise, or with ``revalidate=True``, the
        caller joins the in-flight load or starts one; the loader's exception
        is raised to this caller and the entry keeps its previous value.
        """
        entry = self._entry(key)
        if entry.has_value and not revalidate:
            self.get(key, loader)
            return entry.value
        task = entry.task if entry.task is not None else self._start(entry, loader)
        return await asyncio.shield(task)

    def peek(self, key: str) -> CacheResult[Any] | None:
        """Snapshot without triggering a load. ``None`` if the key was never requested."""
        entry = self._entries.get(key)
        return entry.snapshot() if entry is not None else None

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        return list(self._entries)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def mutate(self, key: str, value: Any) -> None:
        """Store ``value`` for ``key`` as if a load had just returned it."""
        entry = self._entry(key)
        entry.value = value
        entry.has_value = True
        entry.error = None
        entry.failed_at = None
        entry.timestamp = self._clock()
        self._notify(key)

    def invalidate(self, key: str | None = None) -> None:
        """Mark ``key`` (or every key) stale. Cached values stay visible until reloaded."""
        keys = [key] if key is not None else list(self._entries)
        for k in keys:
            entry = self._entries.get(k)
            if entry is None:
                continue
            entry.timestamp = None
            entry.failed_at = None
            entry.epoch += 1
            self._notify(k)
        log.debug("cache_invalidated", keys=len(keys))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(key)`` whenever an entry changes. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def close(self) -> None:
        """Cancel in-flight loads and drop all entries."""
        tasks = [e.task for e in self._entries.values() if e.task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._entries.clear()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _entry(self, key: str) -> CacheEntry[Any]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = CacheEntry(key=key)
        return entry

    def _load_due(self, entry: CacheEntry[Any], revalidate: bool | None = None) -> bool:
        if entry.failed_at is not None and not self._older_than_dedupe(entry.failed_at):
            return False
        if not entry.has_value or entry.timestamp is None:
            return True
        if revalidate is None:
            revalidate = self.settings.revalidate_on_read
        if not revalidate:
            return False
        if not self._active():
            return False
        return self._older_than_dedupe(entry.timestamp)

    def _older_than_dedupe(self, since: float) -> bool:
        age_ms = (self._clock() - since) * 1000
        return age_ms >= self.settings.dedupe_interval_ms

    def _active(self) -> bool:
        if not self.settings.assume_online and self._is_online is not None:
            if not self._is_online():
                return False
        if not self.settings.assume_visible and self._is_visible is not None:
            if not self._is_visible():
                return False
        return True

    def _start(self, entry: CacheEntry[T], loader: Loader[T]) -> asyncio.Task[T]:
        entry.is_revalidating = True
        task = asyncio.get_running_loop().create_task(self._load(entry, loader))
        entry.task = task
        task.add_done_callback(_consume_exception)
        self._notify(entry.key)
        return task

    async def _load(self, entry: CacheEntry[T], loader: Loader[T]) -> T:
        epoch = entry.epoch
        try:
            value = await loader()
        except Exception as exc:
            entry.error = exc
            entry.failed_at = self._clock()
            log.warning("cache_load_error", key=entry.key, error=str(exc))
            raise
        else:
            entry.value = value
            entry.has_value = True
            entry.error = None
            entry.failed_at = None
            # Invalidated mid-flight: keep the value but load again on next read
            entry.timestamp = self._clock() if entry.epoch == epoch else None
            return value
        finally:
            entry.is_revalidating = False
            entry.task = None
            self._notify(entry.key)

    def _notify(self, key: str) -> None:
        for listener in list(self._listeners):
            listener(key)


def _consume_exception(task: asyncio.Task[Any]) -> None:
    # Background loads nobody awaited; the failure was already logged in _load.
    if not task.cancelled():
        task.exception()
