"""Durable key-value state that must survive dataset replacement.

Lives in its own SQLite file, separate from the dataset, so swapping the
dataset never resets it. Holds the last successful dataset fetch time.

All operations catch ``aiosqlite.Error`` internally and degrade gracefully:
``get`` returns ``None`` on a read failure, write failures are logged and
ignored. ``load_freshness`` keeps "never fetched" and "could not read" apart,
since only the first may seed a new timestamp. Freshness bookkeeping is
best-effort maintenance and must never stop the dictionary from answering
queries.
"""

from __future__ import annotations

import aiosqlite
import structlog

from ordabok.models.freshness import FreshnessRecord

log = structlog.get_logger()

LAST_FETCH_KEY = "last_dataset_fetch_ms"

_CREATE_METADATA_TABLE = """
CREATE TABLE IF NOT EXISTS app_metadata (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
)
"""


class MetadataStore:
    """SQLite-backed key-value store for app state."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_METADATA_TABLE)
        await self._db.commit()

    async def _read(self, key: str) -> str | None:
        cursor = await self._db.execute("SELECT value FROM app_metadata WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return row[0] if row is not None else None

    async def get(self, key: str) -> str | None:
        """Read a value. Returns ``None`` when missing or on read failure."""
        try:
            return await self._read(key)
        except aiosqlite.Error:
            log.warning("metadata_read_error", key=key, exc_info=True)
            return None

    async def set(self, key: str, value: str) -> None:
        """Write a value. Non-fatal on failure."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO app_metadata (key, value) VALUES (?, ?)",
                (key, value),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("metadata_write_error", key=key, exc_info=True)

    # ------------------------------------------------------------------
    # Freshness record
    # ------------------------------------------------------------------

    async def load_freshness(self) -> FreshnessRecord | None:
        """The stored record, or ``None`` if it could not be read.

        A record that was never written (or holds garbage) comes back empty.
        """
        try:
            raw = await self._read(LAST_FETCH_KEY)
        except aiosqlite.Error:
            log.warning("metadata_read_error", key=LAST_FETCH_KEY, exc_info=True)
            return None
        if raw is None:
            return FreshnessRecord()
        try:
            return FreshnessRecord(last_fetched_at_ms=int(raw))
        except ValueError:
            log.warning("metadata_corrupt_value", key=LAST_FETCH_KEY, value=raw)
            return FreshnessRecord()

    async def save_freshness(self, last_fetched_at_ms: int) -> None:
        await self.set(LAST_FETCH_KEY, str(last_fetched_at_ms))
