"""Shared fixtures: sample entries and on-disk datasets built from them."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

import aiosqlite
import pytest

from ordabok.models.entry import DictionaryEntry
from ordabok.store import DATASET_SCHEMA, DatasetStore

DatasetFactory = Callable[..., Awaitable[Path]]


@pytest.fixture()
def sample_entries() -> list[DictionaryEntry]:
    return [
        DictionaryEntry(id=1, word="cat", definition="köttur", ipa_uk="kæt", ipa_us="kæt"),
        DictionaryEntry(id=2, word="catalog", definition="vörulisti", ipa_uk="ˈkætəlɒɡ"),
        DictionaryEntry(id=3, word="scatter", definition="dreifa", ipa_uk="ˈskætə"),
        DictionaryEntry(id=4, word="dog", definition="hundur", ipa_uk="dɒɡ"),
        DictionaryEntry(id=5, word="house", definition="hús", ipa_uk="haʊs"),
    ]


async def write_dataset(path: Path, entries: Sequence[DictionaryEntry]) -> Path:
    """Create a dictionary SQLite file at ``path`` holding ``entries``."""
    async with aiosqlite.connect(path) as db:
        await db.executescript(DATASET_SCHEMA)
        await db.executemany(
            "INSERT INTO dictionary (id, word, definition, ipa_uk, ipa_us) VALUES (?, ?, ?, ?, ?)",
            [(e.id, e.word, e.definition, e.ipa_uk, e.ipa_us) for e in entries],
        )
        await db.execute("INSERT INTO dictionary_fts (dictionary_fts) VALUES ('rebuild')")
        await db.commit()
    return path


@pytest.fixture()
def make_dataset(tmp_path: Path) -> DatasetFactory:
    """Factory writing a dataset file under tmp_path."""
    counter = 0

    async def factory(entries: Sequence[DictionaryEntry], name: str | None = None) -> Path:
        nonlocal counter
        counter += 1
        return await write_dataset(tmp_path / (name or f"dataset-{counter}.db"), entries)

    return factory


@pytest.fixture()
async def dataset_path(make_dataset: DatasetFactory, sample_entries: list[DictionaryEntry]) -> Path:
    return await make_dataset(sample_entries, name="dict.db")


@pytest.fixture()
async def store(dataset_path: Path):
    """Open DatasetStore over the sample dataset."""
    async with DatasetStore(dataset_path) as s:
        yield s
