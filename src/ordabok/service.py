"""Search pipeline: settled query → cache → prefix query → fuzzy merge.

``SearchService`` is the stateless read API over an ``AppState``.
``SearchSession`` is what an input field owns: a debouncer feeding the
service, plus the last view it showed so a failing query leaves the
previous results on screen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING

import structlog

from ordabok.debounce import Debouncer
from ordabok.store import normalize_query
from ordabok.swr import CacheResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from ordabok.models.entry import DictionaryEntry
    from ordabok.state import AppState

log = structlog.get_logger()

RANDOM_KEY = "random"
SEARCH_KEY_PREFIX = "search/"


def search_key(query: str) -> str:
    return f"{SEARCH_KEY_PREFIX}{query}"


@dataclass(frozen=True)
class SearchView:
    """What the result list should show right now."""

    query: str
    entries: list[DictionaryEntry] = field(default_factory=list)
    # True when entries is the random-word fallback rather than search results
    is_random: bool = False
    is_loading: bool = False
    is_revalidating: bool = False
    error: BaseException | None = None


class SearchService:
    def __init__(self, state: AppState) -> None:
        self.state = state

    async def _load_search(self, query: str) -> list[DictionaryEntry]:
        candidates = await self.state.store.query_prefix(query)
        results = self.state.ranker.merge(query, candidates)
        log.debug("search_loaded", query=query, candidates=len(candidates), results=len(results))
        return results

    async def search(self, raw_query: str) -> list[DictionaryEntry]:
        """Ranked results for ``raw_query``; empty query returns ``[]`` without caching.

        Raises ``QueryError`` when the dataset rejects the query.
        """
        query = normalize_query(raw_query)
        if not query:
            return []
        return await self.state.cache.fetch(search_key(query), partial(self._load_search, query))

    async def random_entry(self) -> DictionaryEntry | None:
        return await self.state.cache.fetch(RANDOM_KEY, self.state.store.fetch_random)

    async def refresh_random(self) -> DictionaryEntry | None:
        """Pick a new random word ("discover a word")."""
        return await self.state.cache.fetch(
            RANDOM_KEY, self.state.store.fetch_random, revalidate=True
        )

    def view(self, raw_query: str, *, load: bool = True) -> SearchView:
        """Non-blocking snapshot: search results, or the random word as sole entry.

        With ``load=False`` nothing is started; keys never requested read as empty.
        """
        cache = self.state.cache
        query = normalize_query(raw_query)

        def read(key: str, loader, revalidate: bool | None = None) -> CacheResult:
            if load:
                return cache.get(key, loader, revalidate=revalidate)
            return cache.peek(key) or CacheResult()

        random = read(RANDOM_KEY, self.state.store.fetch_random, revalidate=False)
        fallback = [random.value] if random.value is not None else []

        if not query:
            return SearchView(
                query=query,
                entries=fallback,
                is_random=True,
                is_loading=not random.has_value and random.is_revalidating,
            )

        search = read(search_key(query), partial(self._load_search, query))
        if search.has_value:
            return SearchView(
                query=query,
                entries=search.value,
                is_revalidating=search.is_revalidating,
                error=search.error,
            )
        return SearchView(
            query=query,
            entries=fallback,
            is_random=True,
            is_loading=search.is_revalidating,
            error=search.error,
        )


class SearchSession:
    """One search input: raw keystrokes in, views out."""

    def __init__(
        self,
        service: SearchService,
        quiet_period_ms: int | None = None,
        on_change: Callable[[SearchView], object] | None = None,
    ) -> None:
        self.service = service
        if quiet_period_ms is None:
            quiet_period_ms = service.state.settings.search.debounce_ms
        self.debouncer: Debouncer[str] = Debouncer("", quiet_period_ms, on_settle=self._on_settle)
        self._on_change = on_change
        self._last_view: SearchView | None = None
        self._emitting = False
        self._unsubscribe = service.state.cache.subscribe(self._on_cache_change)

    @property
    def query(self) -> str:
        return normalize_query(self.debouncer.settled)

    def type(self, raw: str) -> None:
        """Feed the current contents of the input field."""
        self.debouncer.observe(raw)

    def view(self, *, load: bool = True) -> SearchView:
        view = self.service.view(self.debouncer.settled, load=load)
        if view.error is not None and view.is_random and self._last_view is not None:
            # A failed query keeps whatever was on screen before it
            return SearchView(
                query=view.query,
                entries=self._last_view.entries,
                is_random=self._last_view.is_random,
                error=view.error,
            )
        self._last_view = view
        return view

    def _on_settle(self, _: str) -> None:
        self._emit()

    def _on_cache_change(self, key: str) -> None:
        query = self.query
        if key == RANDOM_KEY or (query and key == search_key(query)):
            # Peek only: a load started here would notify again on completion
            self._emit(load=False)

    def _emit(self, load: bool = True) -> None:
        # view() may start a load, which notifies again; one emission is enough
        if self._on_change is None or self._emitting:
            return
        self._emitting = True
        try:
            self._on_change(self.view(load=load))
        finally:
            self._emitting = False

    def close(self) -> None:
        self.debouncer.close()
        self._unsubscribe()
