"""Run style rules over every Ruby code segment of a template."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

from pydantic import Field

from .engines import RubyStyleEngine, StyleEngine
from .extractor import extract_snippets
from .linter import LinterConfig, SegmentLinter, register_linter
from .models import AlignedSnippet, Correction, Diagnostic, Offense
from .offsets import base_offset, remap_range
from .rule_set import RuleSet

logger = logging.getLogger(__name__)


class StyleConfig(LinterConfig):
    only: List[str] = Field(default_factory=list)
    inherit_from: List[str] = Field(default_factory=list)
    rules: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


@register_linter
class Style(SegmentLinter):
    """Analyze each ERB code segment as a standalone Ruby snippet.

    Snippets are column-aligned copies of the segment code, so positions an
    engine reports translate back into the template with a single offset.
    """

    name = "style"
    config_schema = StyleConfig
    engine_class: Type[StyleEngine] = RubyStyleEngine

    def __init__(
        self,
        config: Optional[StyleConfig] = None,
        base_dir: Optional[str] = None,
        engine: Optional[StyleEngine] = None,
    ):
        super().__init__(config, base_dir)
        if engine is None:
            rule_set = RuleSet.build(
                self.engine_class.default_rules,
                overrides=self.config.rules,
                only=self.config.only,
                inherit_from=self.config.inherit_from,
                base_dir=base_dir,
            )
            engine = self.engine_class(rule_set)
        self.engine = engine

    def offenses(self, document) -> List[Offense]:
        offenses: List[Offense] = []
        for snippet in extract_snippets(document):
            offenses.extend(self.inspect_snippet(snippet, document.filename))
        return offenses

    def inspect_snippet(self, snippet: AlignedSnippet, filename: str) -> List[Offense]:
        if not self.engine.is_syntactically_valid(snippet.text):
            logger.debug(
                "%s: skipping segment at %d, not valid Ruby on its own",
                filename,
                snippet.source_node.range.begin_pos,
            )
            return []

        offset = base_offset(snippet)
        return [
            self._offense(diagnostic, snippet, offset)
            for diagnostic in self.engine.analyze(snippet.text, filename)
            if self.engine.rule_set.enabled(diagnostic.rule)
        ]

    def _offense(self, diagnostic: Diagnostic, snippet: AlignedSnippet, offset: int) -> Offense:
        correction = None
        if diagnostic.correctable:
            correction = Correction(
                edits=diagnostic.edits,
                bound_range=snippet.source_node.range,
                base_offset=offset,
            )
        return Offense(
            linter=self.name,
            range=remap_range(diagnostic.range, offset),
            message=diagnostic.message,
            severity=diagnostic.severity,
            correction=correction,
            rule=diagnostic.rule,
        )
