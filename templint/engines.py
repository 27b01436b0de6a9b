"""Style engines that analyze standalone Ruby snippets.

An engine only ever sees one snippet of Ruby (already column-aligned by the
extractor) and reports findings in that snippet's own coordinates. It knows
nothing about the template the snippet came from.

The bundled :class:`RubyStyleEngine` is built on Tree-sitter's Ruby grammar.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterator, List, Mapping

import tree_sitter_ruby
from tree_sitter import Language, Node as TSNode, Parser as TSParser

from .models import Diagnostic, Edit, SourceRange
from .offsets import byte_to_char_offsets
from .rule_set import RuleSet

logger = logging.getLogger(__name__)


# ===================================================================
# Abstract Engine Interface
# ===================================================================

class StyleEngine(ABC):
    """Contract between the style linter and a language-specific engine."""

    #: Default options for every rule the engine implements.
    default_rules: Dict[str, Dict[str, Any]] = {}

    def __init__(self, rule_set: RuleSet):
        self.rule_set = rule_set

    @abstractmethod
    def is_syntactically_valid(self, text: str) -> bool:
        """Return True if ``text`` parses under the language grammar."""
        ...

    @abstractmethod
    def analyze(self, text: str, filename: str) -> List[Diagnostic]:
        """Return diagnostics for ``text`` in snippet coordinates."""
        ...


# ===================================================================
# Tree-sitter Ruby Engine
# ===================================================================

class _Source:
    """Parsed snippet with byte -> character offset translation."""

    def __init__(self, text: str, tree):
        self.text = text
        self.tree = tree
        self._chars = byte_to_char_offsets(text)

    def range(self, node: TSNode) -> SourceRange:
        return SourceRange(self._chars[node.start_byte], self._chars[node.end_byte])

    def slice(self, node: TSNode) -> str:
        r = self.range(node)
        return self.text[r.begin_pos:r.end_pos]

    def walk(self) -> Iterator[TSNode]:
        stack = [self.tree.root_node]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


Rule = Callable[["RubyStyleEngine", _Source, Mapping[str, Any]], List[Diagnostic]]

# Expressions that can receive ".nil?" without parentheses.
SIMPLE_RECEIVERS = {
    "identifier", "instance_variable", "class_variable", "global_variable",
    "constant", "scope_resolution", "call", "element_reference",
    "parenthesized_statements", "self",
}


class RubyStyleEngine(StyleEngine):
    """Error-tolerant Ruby analysis over Tree-sitter's concrete syntax tree."""

    default_rules: Dict[str, Dict[str, Any]] = {
        "Style/StringLiterals": {"enabled": True, "enforced_style": "single_quotes"},
        "Style/NilComparison": {"enabled": True},
        "Layout/SpaceInsideParens": {"enabled": True},
        # Locals assigned in one segment are often read in another one.
        "Lint/UselessAssignment": {"enabled": False},
    }

    def __init__(self, rule_set: RuleSet):
        super().__init__(rule_set)
        self._language = Language(tree_sitter_ruby.language())
        self._rules: Dict[str, Rule] = {
            "Style/StringLiterals": RubyStyleEngine._string_literals,
            "Style/NilComparison": RubyStyleEngine._nil_comparison,
            "Layout/SpaceInsideParens": RubyStyleEngine._space_inside_parens,
            "Lint/UselessAssignment": RubyStyleEngine._useless_assignment,
        }

    def _parse(self, text: str) -> _Source:
        # Parser objects are stateful; one per call.
        return _Source(text, TSParser(self._language).parse(text.encode("utf-8")))

    def is_syntactically_valid(self, text: str) -> bool:
        if not text.strip():
            return False
        return not self._parse(text).tree.root_node.has_error

    def analyze(self, text: str, filename: str) -> List[Diagnostic]:
        source = self._parse(text)
        diagnostics: List[Diagnostic] = []
        for name, rule in self._rules.items():
            if not self.rule_set.enabled(name):
                continue
            diagnostics.extend(rule(self, source, self.rule_set.options(name)))
        logger.debug("%s: %d diagnostic(s) in snippet", filename, len(diagnostics))
        return sorted(diagnostics, key=lambda d: (d.range.begin_pos, d.rule))

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _string_literals(self, source: _Source, options: Mapping[str, Any]) -> List[Diagnostic]:
        """Prefer one quote style for strings that need no interpolation."""
        style = options.get("enforced_style", "single_quotes")
        wanted, other = ("'", '"') if style == "single_quotes" else ('"', "'")
        message = (
            "Prefer single-quoted strings when you don't need string interpolation or special symbols."
            if wanted == "'"
            else "Prefer double-quoted strings unless you need single quotes to avoid extra backslashes for escaping."
        )
        issues = []
        for node in source.walk():
            if node.type != "string":
                continue
            literal = source.slice(node)
            if len(literal) < 2 or literal[0] != other or literal[-1] != other:
                continue
            if any(child.type in ("interpolation", "escape_sequence") for child in node.children):
                continue
            content = literal[1:-1]
            if "\\" in content or wanted in content or "#{" in content or "#@" in content:
                continue
            node_range = source.range(node)
            issues.append(Diagnostic(
                rule="Style/StringLiterals",
                range=node_range,
                message=message,
                edits=(Edit(node_range, f"{wanted}{content}{wanted}"),),
            ))
        return issues

    def _nil_comparison(self, source: _Source, options: Mapping[str, Any]) -> List[Diagnostic]:
        """``x == nil`` should be ``x.nil?``."""
        issues = []
        for node in source.walk():
            if node.type != "binary":
                continue
            operator = node.child_by_field_name("operator")
            right = node.child_by_field_name("right")
            left = node.child_by_field_name("left")
            if operator is None or right is None or left is None:
                continue
            if operator.type not in ("==", "===") or right.type != "nil":
                continue
            receiver = source.slice(left)
            if left.type not in SIMPLE_RECEIVERS:
                receiver = f"({receiver})"
            issues.append(Diagnostic(
                rule="Style/NilComparison",
                range=source.range(operator),
                message="Prefer the use of the `nil?` predicate.",
                edits=(Edit(source.range(node), f"{receiver}.nil?"),),
            ))
        return issues

    def _space_inside_parens(self, source: _Source, options: Mapping[str, Any]) -> List[Diagnostic]:
        issues = []
        text = source.text
        for node in source.walk():
            if node.type == "(":
                start = source.range(node).end_pos
                end = start
                while end < len(text) and text[end] in " \t":
                    end += 1
                if end == start or (end < len(text) and text[end] == "\n"):
                    continue
            elif node.type == ")":
                end = source.range(node).begin_pos
                start = end
                while start > 0 and text[start - 1] in " \t":
                    start -= 1
                # "( )" is reported once, from the opening side
                if start == end or start == 0 or text[start - 1] in "(\n":
                    continue
            else:
                continue
            space = SourceRange(start, end)
            issues.append(Diagnostic(
                rule="Layout/SpaceInsideParens",
                range=space,
                message="Space inside parentheses detected.",
                edits=(Edit(space, ""),),
            ))
        return issues

    def _useless_assignment(self, source: _Source, options: Mapping[str, Any]) -> List[Diagnostic]:
        assigned: Dict[str, List[TSNode]] = {}
        targets = set()
        for node in source.walk():
            if node.type == "assignment":
                left = node.child_by_field_name("left")
                if left is not None and left.type == "identifier":
                    assigned.setdefault(source.slice(left), []).append(left)
                    targets.add((left.start_byte, left.end_byte))

        read = {
            source.slice(node)
            for node in source.walk()
            if node.type == "identifier" and (node.start_byte, node.end_byte) not in targets
        }

        issues = []
        for name, nodes in assigned.items():
            if name in read:
                continue
            for target in nodes:
                issues.append(Diagnostic(
                    rule="Lint/UselessAssignment",
                    range=source.range(target),
                    message=f"Useless assignment to variable - `{name}`.",
                    severity="medium",
                ))
        return issues
