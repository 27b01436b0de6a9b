"""Core data models shared by the parser, linters and corrector."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from .corrector import Corrector


@dataclass(frozen=True, order=True)
class SourceRange:
    """Half-open range ``[begin_pos, end_pos)`` of character offsets."""

    begin_pos: int
    end_pos: int

    def __post_init__(self):
        if self.begin_pos < 0 or self.end_pos < self.begin_pos:
            raise ValueError(f"Invalid range {self.begin_pos}..{self.end_pos}")

    @property
    def last_pos(self) -> int:
        """Inclusive end offset."""
        return self.end_pos - 1

    @property
    def size(self) -> int:
        return self.end_pos - self.begin_pos

    def contains(self, other: "SourceRange") -> bool:
        return self.begin_pos <= other.begin_pos and other.end_pos <= self.end_pos

    def overlaps(self, other: "SourceRange") -> bool:
        if self.begin_pos == other.begin_pos:
            return True
        return self.begin_pos < other.end_pos and other.begin_pos < self.end_pos

    def shift(self, offset: int) -> "SourceRange":
        return SourceRange(self.begin_pos + offset, self.end_pos + offset)


class NodeKind(str, Enum):
    """Kinds of nodes produced by the template parser."""
    CODE = "code"
    MARKUP = "markup"
    TEXT = "text"


@dataclass(frozen=True)
class Attribute:
    name: str
    name_range: SourceRange
    value_range: Optional[SourceRange] = None
    quote: str = ""

    @property
    def range(self) -> SourceRange:
        end = self.value_range.end_pos + len(self.quote) if self.value_range else self.name_range.end_pos
        return SourceRange(self.name_range.begin_pos, end)


@dataclass(frozen=True)
class Tag:
    name: str
    name_range: SourceRange
    closing: bool = False
    self_closing: bool = False
    attributes: Tuple[Attribute, ...] = ()

    def attribute(self, name: str) -> Optional[Attribute]:
        for attr in self.attributes:
            if attr.name.lower() == name.lower():
                return attr
        return None


@dataclass(frozen=True)
class Node:
    """A node of the parsed template.

    For code segments ``range`` covers only the Ruby code between the
    delimiters, ``tag_range`` the full ``<% ... %>`` and ``indicator`` the
    characters following ``<%`` (``=``, ``==``, ``-`` or ``#``).
    """
    kind: NodeKind
    range: SourceRange
    children: Tuple["Node", ...] = ()
    indicator: Optional[str] = None
    tag_range: Optional[SourceRange] = None
    tag: Optional[Tag] = None

    @property
    def is_comment(self) -> bool:
        return self.kind is NodeKind.CODE and self.indicator == "#"

    @property
    def is_output(self) -> bool:
        return self.kind is NodeKind.CODE and self.indicator in ("=", "==")

    @property
    def is_statement(self) -> bool:
        return self.kind is NodeKind.CODE and self.indicator in (None, "-")


@dataclass(frozen=True)
class AlignedSnippet:
    source_node: Node
    text: str
    alignment_column: int


@dataclass(frozen=True)
class Edit:
    """Replace the text in ``range`` with ``text``."""
    range: SourceRange
    text: str


@dataclass(frozen=True)
class Correction:
    """Edits computed in snippet coordinates plus the region they may touch."""
    edits: Tuple[Edit, ...]
    bound_range: SourceRange
    base_offset: int = 0

    def apply(self, corrector: "Corrector") -> None:
        for edit in self.edits:
            corrector.replace(edit.range, edit.text)


@dataclass(frozen=True)
class Diagnostic:
    """Raw finding returned by a style engine, in snippet coordinates."""
    rule: str
    range: SourceRange
    message: str
    severity: str = "low"
    edits: Tuple[Edit, ...] = ()

    @property
    def correctable(self) -> bool:
        return bool(self.edits)


@dataclass(frozen=True)
class Offense:
    linter: str
    range: SourceRange
    message: str
    severity: str = "low"
    correction: Optional[Correction] = None
    rule: Optional[str] = None

    @property
    def correctable(self) -> bool:
        return self.correction is not None


@dataclass
class CorrectionResult:
    text: str
    corrected: list = field(default_factory=list)
    rejected: list = field(default_factory=list)
    deferred: list = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.corrected)
