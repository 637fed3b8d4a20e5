from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class DictionaryEntry(BaseModel):
    """Single row of the ``dictionary`` table."""

    model_config = ConfigDict(frozen=True)

    id: int
    word: str
    definition: str = ""
    ipa_uk: str = ""
    ipa_us: str = ""
