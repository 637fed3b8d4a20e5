"""Unit-specific fixtures (no I/O beyond SQLite files in tmp_path)."""

from __future__ import annotations

import aiosqlite
import pytest

from ordabok.metadata import MetadataStore


@pytest.fixture()
async def metadata():
    """In-memory SQLite metadata store for unit tests."""
    async with aiosqlite.connect(":memory:") as db:
        m = MetadataStore(db)
        await m.init_db()
        yield m
