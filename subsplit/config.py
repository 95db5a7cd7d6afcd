# subsplit/config.py
"""
Configuration loading and validation.

Responsibilities:
- Load YAML configuration
- Merge command line overrides
- Validate against JSON Schema
- Expose a normalised config object

This module does NOT:
- interact with git
- check prefix or branch semantics (see subsplit.validation)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import json
import yaml
from jsonschema import Draft202012Validator


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class SplitConfig:
    prefix: str
    rev: str
    onto: Optional[str]
    branch: Optional[str]


@dataclass(frozen=True)
class OutputConfig:
    progress: bool
    map_file: Optional[str]


@dataclass(frozen=True)
class Config:
    split: SplitConfig
    output: OutputConfig


def default_schema_path() -> Path:
    """
    schema.json ships inside the package, next to this module.
    """
    return Path(__file__).resolve().parent / "schema.json"


def _load_schema(schema_path: Path) -> Dict[str, Any]:
    """
    Load JSON Schema from a schema.json file.
    """
    try:
        raw = schema_path.read_text(encoding="utf-8")
    except Exception as e:
        raise ConfigError(f"Failed to read schema file: {schema_path}") from e

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Schema is not valid JSON: {schema_path}") from e

    if not isinstance(parsed, dict):
        raise ConfigError(f"Schema must be a JSON object: {schema_path}")

    return parsed


def _load_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except Exception as e:
        raise ConfigError(f"Failed to load config: {config_path}") from e

    if raw is None:
        raise ConfigError(f"Config is empty: {config_path}")

    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a mapping at top level: {config_path}")

    return raw


def merge_overrides(
    raw_config: Mapping[str, Any],
    overrides: Mapping[str, Mapping[str, Any]],
) -> Dict[str, Any]:
    """
    Overlay command line values on a raw config.

    Override values of None mean "not given" and leave the file value alone.
    """
    merged: Dict[str, Any] = {
        k: dict(v) if isinstance(v, Mapping) else v for k, v in raw_config.items()
    }

    for section, values in overrides.items():
        given = {k: v for k, v in values.items() if v is not None}
        if not given:
            continue

        current = merged.get(section)
        if not isinstance(current, dict):
            current = {}
        current.update(given)
        merged[section] = current

    return merged


def load_config(
    config_path: Optional[Path],
    schema_path: Path,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> Config:
    """
    Load, merge and validate configuration.

    config_path may be None when every required value comes from overrides.

    Raises ConfigError on validation failure.
    """
    raw_config: Dict[str, Any] = _load_yaml(config_path) if config_path is not None else {}
    raw_config = merge_overrides(raw_config, overrides or {})
    schema = _load_schema(schema_path)

    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(raw_config), key=lambda e: [str(p) for p in e.path])

    if errors:
        messages = []
        for err in errors:
            path = ".".join(str(p) for p in err.path)
            prefix = path if path else "<root>"
            messages.append(f"{prefix}: {err.message}")
        raise ConfigError("Invalid configuration:\n" + "\n".join(messages))

    split_raw = raw_config["split"]
    output_raw = raw_config.get("output") or {}

    split_cfg = SplitConfig(
        prefix=str(split_raw["prefix"]),
        rev=str(split_raw.get("rev") or "HEAD"),
        onto=split_raw.get("onto"),
        branch=split_raw.get("branch"),
    )

    output_cfg = OutputConfig(
        progress=bool(output_raw.get("progress", True)),
        map_file=output_raw.get("map_file"),
    )

    return Config(split=split_cfg, output=output_cfg)
