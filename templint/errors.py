"""Exception types raised by templint."""

from __future__ import annotations

from typing import Optional


class TemplintError(Exception):
    """Base class for all templint errors."""


class DocumentParseError(TemplintError):
    """A template could not be parsed; analysis of that file is aborted."""

    def __init__(self, message: str, filename: str = "", offset: Optional[int] = None):
        self.filename = filename
        self.offset = offset
        location = f"{filename}: " if filename else ""
        if offset is not None:
            location = f"{location}offset {offset}: "
        super().__init__(f"{location}{message}")


class ConfigError(TemplintError):
    """Configuration could not be loaded or validated."""


class UnknownLinterError(ConfigError):
    """A configuration section names a linter that is not registered."""
