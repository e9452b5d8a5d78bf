"""Config loading entry points for the substitution mirror."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .models import MirrorConfig

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for earlier interpreters
    import tomli as tomllib  # type: ignore[assignment]

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "configs" / "zastepstwa.default.yaml"
MAINTENANCE_ENV = "ZASTEPSTWA_MAINTENANCE"

_PARSERS: dict[str, Callable[[str], Any]] = {
    ".yaml": lambda text: yaml.safe_load(text) or {},
    ".yml": lambda text: yaml.safe_load(text) or {},
    ".toml": tomllib.loads,
    ".json": json.loads,
}
_FLAGS = {"1": True, "true": True, "yes": True, "on": True, "0": False, "false": False, "no": False, "off": False}


class ConfigError(RuntimeError):
    """Raised when configuration files cannot be loaded or validated."""


def load_config(
    path: Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> MirrorConfig:
    """Load the mirror configuration.

    Layers, lowest first: the bundled defaults, the file at `path`,
    `overrides` (nested or dotted keys such as ``cache.ttl_minutes``) and
    finally the environment.
    """

    layers = [_read_mapping(DEFAULT_CONFIG_PATH)]
    if path:
        layers.append(_read_mapping(path))
    layers.append(_unflatten(overrides or {}))
    layers.append(_unflatten(_environment_overrides()))

    merged: dict[str, Any] = {}
    for layer in layers:
        merged = _merge(merged, layer)

    try:
        return MirrorConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def dump_example_config(dest: Path) -> None:
    """Write the bundled default configuration to ``dest`` (YAML or JSON)."""

    suffix = dest.suffix.lower()
    if suffix not in {".yaml", ".yml", ".json"}:
        raise ConfigError(f"Cannot export configuration as {suffix or 'a suffix-less file'}; use YAML or JSON.")

    defaults = _read_mapping(DEFAULT_CONFIG_PATH)
    if suffix == ".json":
        text = json.dumps(defaults, indent=2, default=str)
    else:
        text = yaml.safe_dump(defaults, sort_keys=False)

    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(text, encoding="utf-8")


def _environment_overrides() -> dict[str, Any]:
    raw = os.getenv(MAINTENANCE_ENV, "").strip()
    if not raw:
        return {}
    try:
        return {"runtime.maintenance": _FLAGS[raw.lower()]}
    except KeyError:
        raise ConfigError(f"{MAINTENANCE_ENV} must be a boolean flag, got {raw!r}.") from None


def _read_mapping(path: Path) -> dict[str, Any]:
    """Parse a YAML/TOML/JSON file that must hold a mapping."""

    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise ConfigError(f"Unsupported config format for {path}")
    try:
        payload = parser(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Config file {path} does not exist.") from None
    except (yaml.YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc

    if not isinstance(payload, Mapping):
        raise ConfigError(f"Expected mapping data in {path}, got {type(payload)!r}.")
    return dict(payload)


def _merge(base: Mapping[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    """Return `base` updated by `extra`, descending into nested mappings."""

    merged = dict(base)
    for key, value in extra.items():
        current = merged.get(key)
        both_mappings = isinstance(current, Mapping) and isinstance(value, Mapping)
        merged[key] = _merge(current, value) if both_mappings else value
    return merged


def _unflatten(flat: Mapping[str, Any]) -> dict[str, Any]:
    """Turn ``{"runtime.port": 1}`` into ``{"runtime": {"port": 1}}``."""

    nested: dict[str, Any] = {}
    for key, value in flat.items():
        *parents, leaf = str(key).split(".")
        for segment in reversed(parents):
            value, leaf = {leaf: value}, segment
        nested = _merge(nested, {leaf: value})
    return nested


__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "MAINTENANCE_ENV",
    "load_config",
    "dump_example_config",
]
