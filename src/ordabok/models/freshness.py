from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class FreshnessState(StrEnum):
    NEVER_CHECKED = "never_checked"
    SEEDED = "seeded"
    CHECKING = "checking"
    UPDATING = "updating"
    UP_TO_DATE = "up_to_date"


class FreshnessOutcome(StrEnum):
    """What a single freshness run ended up doing."""

    SEEDED = "seeded"  # First run: timestamp written, bundled dataset trusted
    OFFLINE = "offline"  # No connectivity: check deferred to a later run
    FRESH = "fresh"  # Dataset younger than the threshold
    UPDATED = "updated"  # New dataset downloaded and committed
    FAILED = "failed"  # Download or commit failed; old dataset kept
    SKIPPED = "skipped"  # Freshness record unreadable; nothing checked or written


class FreshnessRecord(BaseModel):
    """Durable record of the last successful dataset fetch."""

    last_fetched_at_ms: int | None = None
