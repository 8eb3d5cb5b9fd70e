"""Helpers for loading the user configuration file (~/.tlshunter/config.json)."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tlshunter.core.flatten import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NODES

CONFIG_DIR = Path.home() / ".tlshunter"
CONFIG_FILE = CONFIG_DIR / "config.json"


@lru_cache(maxsize=1)
def load_config() -> dict[str, Any]:
    """Load configuration data from disk (cached)."""

    if not CONFIG_FILE.exists():
        return {}

    try:
        raw = CONFIG_FILE.read_text()
    except OSError:
        return {}

    try:
        data = json.loads(raw)
    except ValueError:
        return {}

    if isinstance(data, dict):
        return data

    return {}


def get_config_value(key: str, default: Any | None = None) -> Any | None:
    """Fetch a configuration value by key."""

    return load_config().get(key, default)


def reload_config() -> None:
    """Force the cached configuration to be reloaded on next access."""

    load_config.cache_clear()


class ScanSettings(BaseModel):
    """Tunable bounds and thresholds of a scan."""

    model_config = ConfigDict(frozen=True)

    expiration_threshold_days: int = Field(default=10, ge=0)
    """Pin sets expiring within this many days are reported."""

    max_entry_size: int = Field(default=1024 * 1024, gt=0)
    """Largest container entry (certificate, XML) that will be read."""

    max_domain_config_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=0)
    """Deepest domain-config nesting level that is evaluated."""

    max_domain_configs: int = Field(default=DEFAULT_MAX_NODES, gt=0)
    """Maximum number of domain-config nodes evaluated per application."""

    @classmethod
    def from_config(cls, **overrides: Any) -> ScanSettings:
        """Build settings from the config file, then apply overrides.

        Config values that fail validation are ignored in favor of the
        defaults; ``None`` overrides are skipped.
        """
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            value = get_config_value(name)
            if value is None:
                continue
            try:
                cls.model_validate({name: value})
            except ValidationError:
                continue
            values[name] = value

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
