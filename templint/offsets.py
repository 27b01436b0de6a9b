"""Translation between snippet-local and document offsets."""

from __future__ import annotations

import bisect
from typing import List, Tuple

from .models import AlignedSnippet, SourceRange


def remap(local_offset: int, base_offset: int) -> int:
    """Map an offset inside an aligned snippet back into the document."""
    return base_offset + local_offset


def remap_range(local_range: SourceRange, base_offset: int) -> SourceRange:
    return SourceRange(
        remap(local_range.begin_pos, base_offset),
        remap(local_range.end_pos, base_offset),
    )


def base_offset(snippet: AlignedSnippet) -> int:
    """Document offset that corresponds to column 0 of ``snippet.text``."""
    return snippet.source_node.range.begin_pos - snippet.alignment_column


def column_of(text: str, offset: int) -> int:
    """0-based column of ``offset`` within its line."""
    return offset - (text.rfind("\n", 0, offset) + 1)


class LineIndex:
    """Offset -> (line, column) lookups for one document."""

    def __init__(self, text: str):
        self._starts: List[int] = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._starts.append(i + 1)

    def position(self, offset: int) -> Tuple[int, int]:
        """Return 1-based line and 1-based column for ``offset``."""
        line = bisect.bisect_right(self._starts, offset) - 1
        return line + 1, offset - self._starts[line] + 1


def byte_to_char_offsets(text: str) -> List[int]:
    """Table mapping each UTF-8 byte offset of ``text`` to a character offset."""
    table: List[int] = []
    for index, ch in enumerate(text):
        table.extend([index] * len(ch.encode("utf-8")))
    table.append(len(text))
    return table
