"""Linter base classes and the registry of available linters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from fnmatch import fnmatch
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError, UnknownLinterError
from .models import Offense

logger = logging.getLogger(__name__)


class LinterConfig(BaseModel):
    """Options shared by every linter section of the configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: bool = True
    exclude: List[str] = Field(default_factory=list)


class Linter(ABC):
    """Base class for all analyzers.

    Subclasses declare ``name`` and ``config_schema`` and receive a
    validated, frozen config object at construction time.
    """

    name: str = ""
    config_schema: Type[LinterConfig] = LinterConfig

    def __init__(self, config: Optional[LinterConfig] = None, base_dir: Optional[str] = None):
        self.config = config if config is not None else self.config_schema()
        self.base_dir = base_dir

    @classmethod
    def build_config(cls, raw: Dict[str, Any]) -> LinterConfig:
        try:
            return cls.config_schema(**raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration for linter '{cls.name}': {exc}") from exc

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def excludes(self, filename: str) -> bool:
        return any(fnmatch(filename, pattern) for pattern in self.config.exclude)

    @abstractmethod
    def offenses(self, document) -> List[Offense]:
        """Return every offense found in ``document``."""
        ...


class WholeTreeLinter(Linter):
    """Linter that inspects the parsed template as a whole.

    Positions it reports are already document offsets.
    """


class SegmentLinter(Linter):
    """Linter that inspects each embedded code segment on its own."""


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

LINTERS: Dict[str, Type[Linter]] = {}


def register_linter(cls: Type[Linter]) -> Type[Linter]:
    if not cls.name:
        raise ValueError(f"{cls.__name__} has no name")
    LINTERS[cls.name] = cls
    return cls


def linter_class(name: str) -> Type[Linter]:
    try:
        return LINTERS[name]
    except KeyError:
        raise UnknownLinterError(
            f"Unknown linter '{name}'. Available: {', '.join(sorted(LINTERS))}"
        ) from None


def build_linters(
    sections: Dict[str, Dict[str, Any]],
    base_dir: Optional[str] = None,
) -> List[Linter]:
    """Instantiate every enabled linter from its configuration section.

    Registered linters without a section are built with default options.
    """
    for name in sections:
        linter_class(name)

    linters: List[Linter] = []
    for name, cls in LINTERS.items():
        config = cls.build_config(dict(sections.get(name, {})))
        if not config.enabled:
            logger.debug("Linter %s disabled by configuration", name)
            continue
        linters.append(cls(config, base_dir=base_dir))
    return linters
