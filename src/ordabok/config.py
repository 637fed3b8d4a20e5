"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (ORDABOK__SEARCH__DEBOUNCE_MS=300)
  2. ordabok.yaml           (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional; every field has a default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("ordabok")
DATASET_FILENAME = "dict.db"
STATE_DB_FILENAME = "state.db"
_BUNDLED_DB_PATH = str(Path(__file__).parent / "data" / "dict.db")

DEFAULT_SOURCE_URL = "https://ordabok.github.io/datasets/v1/dict.db"


def _find_config_file() -> str | None:
    """Return the path of the first ordabok.yaml found, or None."""
    candidates = [
        Path("ordabok.yaml"),
        Path(platformdirs.user_config_dir("ordabok")) / "ordabok.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class DatasetSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # None: DATASET_FILENAME under Settings.data_dir
    db_path: str | None = None
    # Copied to db_path on first start when no local dataset exists yet
    bundled_path: str = _BUNDLED_DB_PATH
    source_url: str = DEFAULT_SOURCE_URL
    max_results: int = Field(default=101, ge=1)


class FreshnessSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_age_days: int = Field(default=7, ge=0)
    # None: STATE_DB_FILENAME under Settings.data_dir
    state_db_path: str | None = None
    download_timeout_seconds: float = 60.0
    connectivity_timeout_seconds: float = 5.0


class SearchSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    debounce_ms: int = Field(default=200, ge=0)
    fuzzy_score_cutoff: float = Field(default=60.0, ge=0.0, le=100.0)


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # The dataset is local, so revalidation never waits on network or focus
    assume_online: bool = True
    assume_visible: bool = True
    revalidate_on_read: bool = True
    dedupe_interval_ms: int = Field(default=2000, ge=0)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: ORDABOK__DATASET__MAX_RESULTS=50
        env_prefix="ORDABOK__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
        extra="forbid",
    )

    data_dir: str = _DEFAULT_DATA_DIR
    dataset: DatasetSettings = Field(default_factory=DatasetSettings)
    freshness: FreshnessSettings = Field(default_factory=FreshnessSettings)
    search: SearchSettings = SearchSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @model_validator(mode="after")
    def _resolve_data_paths(self) -> Settings:
        data_dir = Path(self.data_dir).expanduser()
        if self.dataset.db_path is None:
            self.dataset.db_path = str(data_dir / DATASET_FILENAME)
        if self.freshness.state_db_path is None:
            self.freshness.state_db_path = str(data_dir / STATE_DB_FILENAME)
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
