from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DatabaseConfig,
    ImportSettings,
    RateLimitConfig,
    TierConfig,
    default_rate_limits,
)

"""Settings loader.

Responsibilities:
- Load YAML (default ``config/voyagriq.yml``)
- Validate against the packaged JSON schema (unknown keys are rejected)
- Merge onto ImportSettings defaults: omitted keys keep their default values
"""

DEFAULT_CONFIG_PATH = Path("config/voyagriq.yml")
SCHEMA_PATH = Path(__file__).with_name("settings_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate settings data against the JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def settings_from_dict(data: dict[str, Any]) -> ImportSettings:
    """Build ImportSettings from already-validated data."""
    defaults = ImportSettings()

    tiers = dict(defaults.tiers)
    for key, raw in (data.get("tiers") or {}).items():
        base = tiers[key]
        tiers[key] = TierConfig(
            key=key,
            name=raw.get("name", base.name),
            trip_limit=raw.get("trip_limit", base.trip_limit),
        )

    rate_limits = default_rate_limits()
    for name, raw in (data.get("rate_limits") or {}).items():
        rate_limits[name] = RateLimitConfig(limit=raw["limit"], window_seconds=float(raw["window_seconds"]))

    db_raw = data.get("database") or {}
    database = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    return ImportSettings(
        max_file_size_bytes=data.get("max_file_size_bytes", defaults.max_file_size_bytes),
        max_rows_per_import=data.get("max_rows_per_import", defaults.max_rows_per_import),
        insert_batch_size=data.get("insert_batch_size", defaults.insert_batch_size),
        tiers=tiers,
        rate_limits=rate_limits,
        database=database,
    )


def load_settings(path: Path | None = None) -> ImportSettings:
    """Load settings from YAML.

    With no ``path`` the default location is tried and built-in defaults are
    used when it does not exist. An explicit ``path`` must exist.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return ImportSettings()
        path = DEFAULT_CONFIG_PATH
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)
    return settings_from_dict(data)
