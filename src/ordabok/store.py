"""Read access to the local dictionary dataset, plus whole-file replacement.

The dataset is a SQLite file with a ``dictionary`` table and an FTS5
``dictionary_fts`` index whose rowid matches ``dictionary.id``. It is opened
read-only; the only way it changes is :meth:`DatasetStore.replace_all` (or
:meth:`DatasetStore.replace_from_file`), which verifies a complete new file
and renames it over the live one.

Unlike the metadata store, storage errors here are *not* swallowed: a failing
query is raised as ``QueryError`` so the caller can keep showing its previous
results.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from ordabok.errors import QueryError, ReplaceError
from ordabok.models.entry import DictionaryEntry

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

log = structlog.get_logger()

DEFAULT_MAX_RESULTS = 101

DATASET_SCHEMA = """
CREATE TABLE dictionary (
    id          INTEGER PRIMARY KEY,
    word        TEXT NOT NULL,
    definition  TEXT NOT NULL DEFAULT '',
    ipa_uk      TEXT NOT NULL DEFAULT '',
    ipa_us      TEXT NOT NULL DEFAULT ''
);
CREATE VIRTUAL TABLE dictionary_fts USING fts5(
    word,
    definition,
    content='dictionary',
    content_rowid='id'
);
"""

_REQUIRED_TABLES = frozenset({"dictionary", "dictionary_fts"})

_COLUMNS = (
    "dictionary.id, dictionary.word, dictionary.definition, "
    "dictionary.ipa_uk, dictionary.ipa_us"
)

_PREFIX_QUERY = (
    f"SELECT {_COLUMNS} "
    "FROM dictionary_fts JOIN dictionary ON dictionary.id = dictionary_fts.rowid "
    "WHERE dictionary_fts MATCH ? "
    "ORDER BY dictionary_fts.rank "
    "LIMIT ?"
)

_RANDOM_QUERY = f"SELECT {_COLUMNS} FROM dictionary ORDER BY RANDOM() LIMIT 1"


def normalize_query(raw: str) -> str:
    """Trim and lower-case user input. An empty result means "no active search"."""
    return raw.strip().lower()


def prefix_pattern(query: str) -> str:
    """FTS5 pattern matching tokens that start with the normalized query."""
    return f"{normalize_query(query)}*"


def _row_to_entry(row: Iterable[object]) -> DictionaryEntry:
    id_, word, definition, ipa_uk, ipa_us = row
    return DictionaryEntry(
        id=id_,
        word=word,
        definition=definition or "",
        ipa_uk=ipa_uk or "",
        ipa_us=ipa_us or "",
    )


async def _connect_readonly(path: Path) -> aiosqlite.Connection:
    return await aiosqlite.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)


class _Generation:
    """One open connection plus the number of queries currently using it."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self.db = db
        self.readers = 0
        self.idle = asyncio.Event()
        self.idle.set()


class DatasetStore:
    """Local dictionary dataset: prefix search, random entry, atomic replace."""

    def __init__(
        self,
        db_path: str | Path,
        bundled_path: str | Path | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self.db_path = Path(db_path).expanduser()
        self.bundled_path = Path(bundled_path).expanduser() if bundled_path else None
        self.max_results = max_results
        self._current: _Generation | None = None
        self._replace_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Install the bundled dataset if there is no local copy, then connect."""
        if not self.db_path.exists():
            await self._install_bundled()
        self._current = _Generation(await _connect_readonly(self.db_path))
        log.info("dataset_opened", path=str(self.db_path))

    async def close(self) -> None:
        generation, self._current = self._current, None
        if generation is not None:
            await generation.idle.wait()
            await generation.db.close()

    async def __aenter__(self) -> DatasetStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _install_bundled(self) -> None:
        if self.bundled_path is None or not self.bundled_path.exists():
            raise FileNotFoundError(
                f"No dataset at {self.db_path} and no bundled dataset to install"
            )
        staging = self.staging_path()
        try:
            await asyncio.to_thread(shutil.copyfile, self.bundled_path, staging)
            os.replace(staging, self.db_path)
        finally:
            staging.unlink(missing_ok=True)
        log.info("bundled_dataset_installed", source=str(self.bundled_path))

    @contextlib.asynccontextmanager
    async def _reading(self) -> AsyncIterator[aiosqlite.Connection]:
        generation = self._current
        if generation is None:
            raise QueryError("Dataset is not open")
        generation.readers += 1
        generation.idle.clear()
        try:
            yield generation.db
        finally:
            generation.readers -= 1
            if generation.readers == 0:
                generation.idle.set()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def query_prefix(self, query: str) -> list[DictionaryEntry]:
        """Entries whose indexed text starts with ``query``, best FTS rank first."""
        if not normalize_query(query):
            raise ValueError("query must not be empty")
        pattern = prefix_pattern(query)
        try:
            async with self._reading() as db:
                async with db.execute(_PREFIX_QUERY, (pattern, self.max_results)) as cursor:
                    rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            log.debug("dataset_query_error", pattern=pattern, error=str(exc))
            raise QueryError(f"Prefix query {pattern!r} failed: {exc}") from exc
        return [_row_to_entry(row) for row in rows]

    async def fetch_random(self) -> DictionaryEntry | None:
        """One uniformly random entry, or ``None`` if the dataset is empty."""
        try:
            async with self._reading() as db:
                async with db.execute(_RANDOM_QUERY) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise QueryError(f"Random entry query failed: {exc}") from exc
        return _row_to_entry(row) if row is not None else None

    async def count(self) -> int:
        try:
            async with self._reading() as db:
                async with db.execute("SELECT count(*) FROM dictionary") as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise QueryError(f"Count query failed: {exc}") from exc
        return int(row[0]) if row else 0

    # ------------------------------------------------------------------
    # Replacement
    # ------------------------------------------------------------------

    def staging_path(self) -> Path:
        """A fresh temporary path beside the live dataset (same filesystem)."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(
            prefix=f".{self.db_path.stem}-", suffix=".tmp", dir=self.db_path.parent
        )
        os.close(fd)
        return Path(name)

    async def replace_all(self, data: bytes) -> None:
        """Swap the whole dataset for ``data`` (the bytes of a SQLite file)."""
        staging = self.staging_path()
        try:
            await asyncio.to_thread(_write_durably, staging, data)
        except OSError as exc:
            staging.unlink(missing_ok=True)
            raise ReplaceError(f"Could not write new dataset: {exc}") from exc
        await self.replace_from_file(staging)

    async def replace_from_file(self, source: str | Path) -> None:
        """Verify ``source`` and rename it over the live dataset.

        ``source`` is consumed: it is either renamed into place or deleted.
        On any failure the previous dataset stays in service.
        """
        source = Path(source)
        async with self._replace_lock:
            try:
                await _verify_dataset(source)
                await asyncio.to_thread(_fsync_file, source)
                os.replace(source, self.db_path)
            except (aiosqlite.Error, OSError, ReplaceError) as exc:
                source.unlink(missing_ok=True)
                log.warning("dataset_replace_failed", source=str(source), error=str(exc))
                if isinstance(exc, ReplaceError):
                    raise
                raise ReplaceError(f"Could not commit new dataset: {exc}") from exc

            # Connections opened before the rename keep reading the old inode,
            # so queries already in flight finish against the old dataset.
            previous = self._current
            self._current = _Generation(await _connect_readonly(self.db_path))
            if previous is not None:
                await previous.idle.wait()
                await previous.db.close()
        log.info("dataset_replaced", path=str(self.db_path))


def _write_durably(path: Path, data: bytes) -> None:
    with open(path, "wb") as fh:
        fh.write(data)
        fh.flush()
        os.fsync(fh.fileno())


def _fsync_file(path: Path) -> None:
    with open(path, "rb") as fh:
        os.fsync(fh.fileno())


async def _verify_dataset(path: Path) -> None:
    """Raise ``ReplaceError`` unless ``path`` is an intact dictionary dataset."""
    db = await _connect_readonly(path)
    try:
        async with db.execute("PRAGMA integrity_check") as cursor:
            row = await cursor.fetchone()
        if row is None or row[0] != "ok":
            raise ReplaceError(f"Integrity check failed for {path}")
        async with db.execute("SELECT name FROM sqlite_master WHERE type = 'table'") as cursor:
            tables = {name for (name,) in await cursor.fetchall()}
    finally:
        await db.close()
    missing = _REQUIRED_TABLES - tables
    if missing:
        raise ReplaceError(f"Dataset is missing tables: {', '.join(sorted(missing))}")
