from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DEFAULT_TABLE, DatabaseConfig, IngestConfig, OracleConfig

"""Config loader.

Responsibilities:
- Load YAML config (config/ingest.yml by default)
- Validate it against config_schema.json (unknown keys are rejected)
- Apply defaults for every optional section
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/ingest.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails schema validation.
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


def load_config(path: Path) -> IngestConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    oracle_raw = data.get("oracle") or {}
    defaults = OracleConfig()
    oracle = OracleConfig(
        provider=oracle_raw.get("provider", defaults.provider),
        fallback_provider=oracle_raw.get("fallback_provider", defaults.fallback_provider),
        openai_model=oracle_raw.get("openai_model", defaults.openai_model),
        anthropic_model=oracle_raw.get("anthropic_model", defaults.anthropic_model),
        max_tokens=oracle_raw.get("max_tokens", defaults.max_tokens),
        temperature=oracle_raw.get("temperature", defaults.temperature),
    )
    return IngestConfig(
        database=db,
        oracle=oracle,
        table=data.get("table", DEFAULT_TABLE),
        structure_analysis=data.get("structure_analysis", "heuristic"),
        extra_sheet_denylist=tuple(data.get("extra_sheet_denylist", ())),
        error_log_dir=data.get("error_log_dir", "logs"),
    )
