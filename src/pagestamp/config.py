"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (PAGESTAMP__STAMP__IGNORE_PAGES="todo,inbox")
  2. pagestamp.yaml         (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional. Settings are frozen once constructed and the
``stamp`` section is handed to the gate as-is.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("pagestamp")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "graph.db")


def _find_config_file() -> str | None:
    """Return the path of the first pagestamp.yaml found, or None."""
    candidates = [
        Path("pagestamp.yaml"),
        Path(platformdirs.user_config_dir("pagestamp")) / "pagestamp.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class StampSettings(_Section):
    """The user-editable keys of the plugin."""

    create_time_property_name: str = "created"
    update_time_property_name: str = "updated"
    use_external_history_for_creation_time: bool = True
    ignore_pages: str = ""  # comma-separated page names
    # IANA name; None renders timestamps in the machine's local time
    timezone: str | None = None

    @property
    def ignored_names(self) -> frozenset[str]:
        return frozenset(
            name.strip().lower() for name in self.ignore_pages.split(",") if name.strip()
        )

    def is_ignored(self, page_name: str) -> bool:
        return page_name.strip().lower() in self.ignored_names


class CacheSettings(_Section):
    ttl_hours: int = 24
    max_entries: int = 1000
    cleanup_interval_hours: int = 6


class HistorySettings(_Section):
    graph_dir: str = "."
    git_binary: str = "git"


class StoreSettings(_Section):
    db_path: str = _DEFAULT_DB_PATH


class LoggingSettings(_Section):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PAGESTAMP__CACHE__TTL_HOURS=6
        env_prefix="PAGESTAMP__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
        extra="forbid",
        frozen=True,
    )

    stamp: StampSettings = StampSettings()
    cache: CacheSettings = CacheSettings()
    history: HistorySettings = HistorySettings()
    store: StoreSettings = StoreSettings()
    logging: LoggingSettings = LoggingSettings()

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
