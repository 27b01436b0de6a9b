"""Configuration loading for templint using TOML files."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from . import config
from .errors import ConfigError

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "max_passes": config.DEFAULT_MAX_PASSES,
    "linters": {
        "erb_safety": {"enabled": True},
        "style": {"enabled": True},
    },
}


def load_toml(path: Path) -> Dict[str, Any]:
    """Read one TOML file, raising ConfigError when it is missing or malformed."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}") from None
    except (toml.TomlDecodeError, OSError) as exc:
        raise ConfigError(f"Could not read configuration file {path}: {exc}") from exc


def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """Look for ``.templint.toml`` in ``start`` and its parents, then globally."""
    current = Path(start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / config.CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    if config.GLOBAL_CONFIG_FILE.is_file():
        return config.GLOBAL_CONFIG_FILE
    return None


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested tables merge recursively."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the templint configuration.

    Args:
        path: Explicit config file. When omitted the nearest
              ``.templint.toml`` is used, falling back to defaults.

    Returns:
        Configuration dictionary with ``max_passes``, ``linters`` and
        ``base_dir`` (directory relative paths are resolved against).
    """
    if path is None:
        path = find_config()
    if path is None:
        logger.debug("No configuration file found, using defaults")
        result = copy.deepcopy(DEFAULT_CONFIG)
        result["base_dir"] = str(Path.cwd())
        return result

    raw = load_toml(Path(path))
    linters = raw.get("linters", {})
    if not isinstance(linters, dict) or not all(isinstance(v, dict) for v in linters.values()):
        raise ConfigError(f"{path}: [linters] must be a table of tables")
    max_passes = raw.get("max_passes", config.DEFAULT_MAX_PASSES)
    if not isinstance(max_passes, int) or max_passes < 1:
        raise ConfigError(f"{path}: max_passes must be a positive integer")

    result = deep_merge(DEFAULT_CONFIG, raw)
    result["base_dir"] = str(Path(path).resolve().parent)
    logger.debug("Loaded configuration from %s", path)
    return result


def resolve_path(base_dir: Optional[str], name: str) -> Path:
    candidate = Path(name).expanduser()
    if candidate.is_absolute() or base_dir is None:
        return candidate
    return Path(base_dir) / candidate
