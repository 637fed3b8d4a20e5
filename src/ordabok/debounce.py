"""Keystroke debouncing.

One ``Debouncer`` per input field. Each ``observe`` call restarts the quiet
period timer; the settled value only changes once input has been quiet for
the whole period. Listeners run on the event loop and only see real changes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

import structlog

log = structlog.get_logger()

T = TypeVar("T")

DEFAULT_QUIET_PERIOD_MS = 200


class Debouncer(Generic[T]):
    def __init__(
        self,
        initial: T,
        quiet_period_ms: int = DEFAULT_QUIET_PERIOD_MS,
        on_settle: Callable[[T], object] | None = None,
    ) -> None:
        self.quiet_period_ms = quiet_period_ms
        self._settled = initial
        self._pending: asyncio.TimerHandle | None = None
        self._listeners: list[Callable[[T], object]] = []
        self._waiters: list[asyncio.Future[T]] = []
        self._closed = False
        if on_settle is not None:
            self._listeners.append(on_settle)

    @property
    def settled(self) -> T:
        return self._settled

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def subscribe(self, listener: Callable[[T], object]) -> Callable[[], None]:
        """Register ``listener`` for settled changes. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def observe(self, value: T) -> T:
        """Feed a raw value; returns the current (possibly older) settled value."""
        if self._closed:
            raise RuntimeError("Debouncer is closed")
        if self._pending is not None:
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self.quiet_period_ms / 1000, self._settle, value)
        return self._settled

    async def wait_settled(self) -> T:
        """Wait for the next change of the settled value."""
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        return await future

    def _settle(self, value: T) -> None:
        self._pending = None
        if value == self._settled:
            return
        self._settled = value
        log.debug("query_settled", value=value)
        for listener in list(self._listeners):
            listener(value)
        waiters, self._waiters = self._waiters, []
        for future in waiters:
            if not future.done():
                future.set_result(value)

    def close(self) -> None:
        """Cancel the pending timer. No listener is called after this returns."""
        self._closed = True
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._listeners.clear()
        waiters, self._waiters = self._waiters, []
        for future in waiters:
            future.cancel()

    async def __aenter__(self) -> Debouncer[T]:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
