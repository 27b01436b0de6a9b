"""Merged, read-only rule configuration for style engines."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .config_manager import deep_merge, load_toml, resolve_path
from .errors import ConfigError

logger = logging.getLogger(__name__)


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class RuleSet:
    """Rule options merged from defaults, inherited files and inline config.

    Built once per linter and never modified afterwards, so one instance can
    be shared by every document (and thread) the linter processes.
    """

    rules: Mapping[str, Mapping[str, Any]]
    only: Tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        defaults: Dict[str, Dict[str, Any]],
        overrides: Optional[Dict[str, Dict[str, Any]]] = None,
        only: Sequence[str] = (),
        inherit_from: Sequence[str] = (),
        base_dir: Optional[str] = None,
    ) -> "RuleSet":
        merged = dict(defaults)
        for inherited in _load_inherited(inherit_from, base_dir, seen=set()):
            merged = deep_merge(merged, inherited)
        merged = deep_merge(merged, overrides or {})

        unknown = sorted(set(merged) - set(defaults))
        if unknown:
            raise ConfigError(f"Unknown rule(s): {', '.join(unknown)}")
        unknown_only = sorted(set(only) - set(defaults))
        if unknown_only:
            raise ConfigError(f"Unknown rule(s) in 'only': {', '.join(unknown_only)}")
        return cls(rules=_freeze(merged), only=tuple(only))

    def enabled(self, rule: str) -> bool:
        if self.only:
            return rule in self.only
        return bool(self.rules.get(rule, {}).get("enabled", False))

    def options(self, rule: str) -> Mapping[str, Any]:
        return self.rules.get(rule, MappingProxyType({}))

    def enabled_rules(self) -> List[str]:
        return [name for name in self.rules if self.enabled(name)]


def _load_inherited(
    inherit_from: Iterable[str], base_dir: Optional[str], seen: Set[Path]
) -> List[Dict[str, Dict[str, Any]]]:
    """Load ``rules`` tables of inherited files, parents before children."""
    tables: List[Dict[str, Dict[str, Any]]] = []
    for name in inherit_from:
        if name.startswith(("http://", "https://")):
            raise ConfigError(f"Remote inherit_from is not supported: {name}")
        path = resolve_path(base_dir, name).resolve()
        if path in seen:
            raise ConfigError(f"Circular inherit_from: {path}")
        raw = load_toml(path)
        logger.debug("Inheriting rules from %s", path)
        tables.extend(_load_inherited(raw.get("inherit_from", []), str(path.parent), seen | {path}))
        tables.append(raw.get("rules", {}))
    return tables
