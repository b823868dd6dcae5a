from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_COORDINATE,
    DEFAULT_MAX_UPLOAD_BYTES,
    Coordinate,
    DatabaseConfig,
    IngestConfig,
    IngestSettings,
    ThresholdProfile,
    UploadLimits,
)

"""Config loader.

Responsibilities:
- Load YAML config (default config/nsv_ingest.yml)
- Validate against the bundled JSON schema (config_schema.json)
- Apply defaults for every optional section
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/nsv_ingest.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: if the schema file is missing or invalid, or the config
            data fails schema validation (missing required keys, wrong types,
            unknown keys).
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


def _normalize_extensions(exts: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(e.lower() for e in exts))


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> IngestConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top-level document must be a mapping")

    _validate_config_schema(data)

    thresholds = ThresholdProfile(**{k: float(v) for k, v in data.get("thresholds", {}).items()})

    coord_raw = data.get("default_coordinate")
    coordinate = (
        Coordinate(latitude=float(coord_raw["latitude"]), longitude=float(coord_raw["longitude"]))
        if coord_raw
        else DEFAULT_COORDINATE
    )

    upload_raw = data.get("upload", {})
    upload = UploadLimits(
        max_bytes=upload_raw.get("max_bytes", DEFAULT_MAX_UPLOAD_BYTES),
        allowed_extensions=_normalize_extensions(
            upload_raw.get("allowed_extensions", list(DEFAULT_ALLOWED_EXTENSIONS))
        ),
    )

    ingest_raw = data.get("ingest", {})
    defaults = IngestSettings()
    ingest = IngestSettings(
        batch_size=ingest_raw.get("batch_size", defaults.batch_size),
        batch_delay_seconds=float(ingest_raw.get("batch_delay_seconds", defaults.batch_delay_seconds)),
    )

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return IngestConfig(
        source_directory=data["source_directory"],
        thresholds=thresholds,
        default_coordinate=coordinate,
        upload=upload,
        ingest=ingest,
        database=db,
    )
