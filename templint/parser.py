"""ERB template parser producing a positioned node tree.

The parser is deliberately shallow: it recognises ERB code delimiters,
HTML start/end tags with their attributes, and literal text. It does not
build an element hierarchy. Every node keeps its exact offsets in the
original text so diagnostics can be reported against the file as written.

Content of ``<script>`` and ``<style>`` elements is raw text; only ERB code
segments are recognised inside it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .errors import DocumentParseError
from .models import Attribute, Node, NodeKind, SourceRange, Tag
from .offsets import LineIndex

logger = logging.getLogger(__name__)

ERB_START = "<%"
ERB_EXPR = re.compile(
    r"<%(?P<indicator>==|=|-|\#)?(?P<code>.*?)(?P<trim>[-=])?%>",
    re.DOTALL,
)

# Markup is matched on a copy of the text where ERB tags are masked out,
# so quotes or ">" inside Ruby code never confuse the tag scanner.
MASK_CHAR = "\x00"
TAG_EXPR = re.compile(
    r"<(?P<closing>/)?(?P<name>[A-Za-z][\w:.-]*)"
    r"(?P<body>(?:[^>\"']|\"[^\"]*\"|'[^']*')*?)"
    r"(?P<self_closing>/)?>",
    re.DOTALL,
)
COMMENT_EXPR = re.compile(r"<!--.*?(?:-->|\Z)", re.DOTALL)
ATTRIBUTE_EXPR = re.compile(
    r"(?P<name>[^\s\"'>/=]+)"
    r"(?:\s*=\s*(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)'|(?P<uq>[^\s\"'=<>`]+)))?"
)
RAW_TEXT_ELEMENTS = {"script", "style"}


@dataclass(frozen=True)
class Document:
    """Immutable template text plus its parsed node tree."""

    filename: str
    text: str
    nodes: Tuple[Node, ...]
    line_index: LineIndex = field(repr=False, compare=False, default=None)

    @classmethod
    def parse(cls, text: str, filename: str = "template.html.erb") -> "Document":
        nodes = _TemplateParser(text, filename).parse()
        logger.debug("Parsed %s into %d top-level nodes", filename, len(nodes))
        return cls(filename=filename, text=text, nodes=nodes, line_index=LineIndex(text))

    @classmethod
    def from_file(cls, path: Path) -> "Document":
        data = Path(path).read_bytes()
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            offset = len(data[:exc.start].decode("utf-8"))
            raise DocumentParseError(f"not valid UTF-8 ({exc.reason})", str(path), offset) from exc
        return cls.parse(text, str(path))

    def descendants(self, kind: Optional[NodeKind] = None) -> Iterator[Node]:
        """Walk the tree depth-first in document order."""
        stack: List[Node] = list(reversed(self.nodes))
        while stack:
            node = stack.pop()
            if kind is None or node.kind is kind:
                yield node
            stack.extend(reversed(node.children))

    def source(self, source_range: SourceRange) -> str:
        return self.text[source_range.begin_pos:source_range.end_pos]

    def position(self, offset: int) -> Tuple[int, int]:
        return self.line_index.position(offset)


class _TemplateParser:
    def __init__(self, text: str, filename: str):
        self.text = text
        self.filename = filename

    def parse(self) -> Tuple[Node, ...]:
        code_nodes = self._scan_code()
        masked = self._mask(code_nodes)
        markup_nodes = self._scan_markup(masked, code_nodes)
        return self._assemble(code_nodes, markup_nodes)

    # ------------------------------------------------------------------
    # ERB code segments
    # ------------------------------------------------------------------

    def _scan_code(self) -> List[Node]:
        nodes: List[Node] = []
        pos = 0
        while True:
            start = self.text.find(ERB_START, pos)
            if start < 0:
                return nodes
            # "<%%" is an escaped literal "<%"
            if self.text.startswith("<%%", start):
                pos = start + 3
                continue
            match = ERB_EXPR.match(self.text, start)
            if match is None:
                raise DocumentParseError("unterminated ERB tag, expected '%>'", self.filename, start)
            nodes.append(Node(
                kind=NodeKind.CODE,
                range=SourceRange(match.start("code"), match.end("code")),
                indicator=match.group("indicator"),
                tag_range=SourceRange(match.start(), match.end()),
            ))
            pos = match.end()

    def _mask(self, code_nodes: List[Node]) -> str:
        chars = list(self.text)
        for node in code_nodes:
            for i in range(node.tag_range.begin_pos, node.tag_range.end_pos):
                chars[i] = MASK_CHAR
        return "".join(chars)

    # ------------------------------------------------------------------
    # HTML tags
    # ------------------------------------------------------------------

    def _scan_markup(self, masked: str, code_nodes: List[Node]) -> List[Node]:
        nodes: List[Node] = []
        pos = 0
        while pos < len(masked):
            start = masked.find("<", pos)
            if start < 0:
                break
            comment = COMMENT_EXPR.match(masked, start)
            if comment:
                pos = comment.end()
                continue
            match = TAG_EXPR.match(masked, start)
            if match is None:
                pos = start + 1
                continue

            tag_range = SourceRange(match.start(), match.end())
            tag = self._build_tag(match)
            children = tuple(
                node for node in code_nodes if tag_range.contains(node.tag_range)
            )
            nodes.append(Node(kind=NodeKind.MARKUP, range=tag_range, children=children, tag=tag))
            pos = match.end()

            if not tag.closing and not tag.self_closing and tag.name.lower() in RAW_TEXT_ELEMENTS:
                closing = re.compile(rf"</{re.escape(tag.name)}\s*>", re.IGNORECASE).search(masked, pos)
                pos = closing.start() if closing else len(masked)
        return nodes

    def _build_tag(self, match: re.Match) -> Tag:
        body_start = match.start("body")
        attributes: List[Attribute] = []
        for attr in ATTRIBUTE_EXPR.finditer(match.group("body")):
            name_range = SourceRange(body_start + attr.start("name"), body_start + attr.end("name"))
            value_range = None
            quote = ""
            for group, q in (("dq", '"'), ("sq", "'"), ("uq", "")):
                if attr.group(group) is not None:
                    value_range = SourceRange(body_start + attr.start(group), body_start + attr.end(group))
                    quote = q
                    break
            attributes.append(Attribute(
                name=self.text[name_range.begin_pos:name_range.end_pos],
                name_range=name_range,
                value_range=value_range,
                quote=quote,
            ))
        return Tag(
            name=match.group("name"),
            name_range=SourceRange(match.start("name"), match.end("name")),
            closing=match.group("closing") is not None,
            self_closing=match.group("self_closing") is not None,
            attributes=tuple(attributes),
        )

    # ------------------------------------------------------------------
    # Tree assembly
    # ------------------------------------------------------------------

    def _assemble(self, code_nodes: List[Node], markup_nodes: List[Node]) -> Tuple[Node, ...]:
        nested = {id(child) for node in markup_nodes for child in node.children}
        items = sorted(
            [n for n in code_nodes if id(n) not in nested] + markup_nodes,
            key=lambda n: (n.tag_range or n.range).begin_pos,
        )

        result: List[Node] = []
        cursor = 0
        for item in items:
            span = item.tag_range or item.range
            if span.begin_pos > cursor:
                result.append(Node(kind=NodeKind.TEXT, range=SourceRange(cursor, span.begin_pos)))
            result.append(item)
            cursor = span.end_pos
        if cursor < len(self.text):
            result.append(Node(kind=NodeKind.TEXT, range=SourceRange(cursor, len(self.text))))
        return tuple(result)
