"""Turn ERB code segments into standalone, column-aligned Ruby snippets."""

from __future__ import annotations

import re
from typing import Iterator, Optional

from .models import AlignedSnippet, Node, NodeKind
from .offsets import column_of

# Same expression Rails' erubi handler uses to detect block openers.
BLOCK_EXPR = re.compile(r"\s*((\s+|\))do|\{)(\s*\|[^|]*\|)?\s*\Z")
SUFFIX_EXPR = re.compile(r"[ \t]*(?=\n?\Z)")


def trim_block_suffix(code: str) -> str:
    """Strip a trailing ``do |x|`` / ``{`` opener, then trailing blanks."""
    trimmed = BLOCK_EXPR.sub("", code, count=1)
    return SUFFIX_EXPR.sub("", trimmed, count=1)


def extract_snippet(text: str, node: Node) -> Optional[AlignedSnippet]:
    """Build the aligned snippet for one code segment of ``text``.

    Returns None for comment segments (``<%# ... %>``).
    """
    if node.kind is not NodeKind.CODE or node.is_comment:
        return None

    code = text[node.range.begin_pos:node.range.end_pos]
    alignment_column = column_of(text, node.range.begin_pos)
    aligned = " " * alignment_column + trim_block_suffix(code)
    return AlignedSnippet(source_node=node, text=aligned, alignment_column=alignment_column)


def extract_snippets(document) -> Iterator[AlignedSnippet]:
    for node in document.descendants(NodeKind.CODE):
        snippet = extract_snippet(document.text, node)
        if snippet is not None:
            yield snippet
