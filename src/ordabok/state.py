from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from ordabok.config import Settings
    from ordabok.freshness import FreshnessController
    from ordabok.metadata import MetadataStore
    from ordabok.models.freshness import FreshnessOutcome
    from ordabok.ranking import FuzzyRanker
    from ordabok.store import DatasetStore
    from ordabok.swr import SWRCache


@dataclass
class AppState:
    """Everything a running dictionary needs, created once by ``open_app``."""

    settings: Settings
    store: DatasetStore
    cache: SWRCache
    ranker: FuzzyRanker
    metadata: MetadataStore | None = None
    http_client: httpx.AsyncClient | None = None
    freshness: FreshnessController | None = None
    freshness_task: asyncio.Task[FreshnessOutcome] | None = field(default=None, repr=False)
