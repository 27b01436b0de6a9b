"""Coordinates parsing, linting and autocorrection of templates."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from . import safety_linter, style_linter  # noqa: F401  (register linters)
from .config import DEFAULT_MAX_PASSES
from .corrector import compose_corrections
from .linter import Linter, build_linters
from .models import CorrectionResult, Offense
from .parser import Document

logger = logging.getLogger(__name__)


@dataclass
class AutocorrectReport:
    """Outcome of :meth:`Runner.autocorrect`.

    Offense ranges are only meaningful against the text they were found in:
    ``corrections`` pairs each pass's document with the offenses corrected
    in it, and ``offenses`` belong to the final ``document``.
    """

    document: Document
    passes: int = 0
    corrections: List[Tuple[Document, List[Offense]]] = field(default_factory=list)
    offenses: List[Offense] = field(default_factory=list)

    @property
    def text(self) -> str:
        return self.document.text

    @property
    def corrected(self) -> List[Offense]:
        return [offense for _, offenses in self.corrections for offense in offenses]


class Runner:
    """Runs a fixed set of linters over documents.

    Linters carry only read-only configuration, so one runner can process
    any number of documents.
    """

    def __init__(self, linters: Iterable[Linter], max_passes: int = DEFAULT_MAX_PASSES):
        self.linters = list(linters)
        self.max_passes = max_passes

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Runner":
        linters = build_linters(config.get("linters", {}), base_dir=config.get("base_dir"))
        return cls(linters, max_passes=config.get("max_passes", DEFAULT_MAX_PASSES))

    def run(self, document: Document) -> List[Offense]:
        offenses: List[Offense] = []
        for linter in self.linters:
            if linter.excludes(document.filename):
                continue
            offenses.extend(linter.offenses(document))
        offenses.sort(key=lambda o: (o.range.begin_pos, o.range.end_pos, o.linter))
        return offenses

    def correct(self, document: Document, offenses: Iterable[Offense]) -> CorrectionResult:
        return compose_corrections(document.text, offenses)

    def apply_corrections(self, document: Document, offenses: Iterable[Offense]) -> str:
        """Return ``document`` text with the corrections of ``offenses`` applied."""
        return self.correct(document, offenses).text

    def autocorrect(self, document: Document, max_passes: Optional[int] = None) -> AutocorrectReport:
        """Lint and correct repeatedly until nothing more can be corrected.

        Corrections deferred because they overlapped another one are picked
        up by the next pass, which runs on the reparsed output.
        """
        limit = max_passes or self.max_passes
        report = AutocorrectReport(document=document)
        current = document
        offenses = self.run(current)
        while report.passes < limit:
            result = self.correct(current, offenses)
            if not result.changed:
                break
            report.passes += 1
            report.corrections.append((current, result.corrected))
            current = Document.parse(result.text, document.filename)
            offenses = self.run(current)

        if report.passes == limit and self.correct(current, offenses).changed:
            logger.warning(
                "%s: stopped autocorrecting after %d passes", document.filename, limit
            )

        report.document = current
        report.offenses = offenses
        return report

    def lint_file(self, path: Path) -> List[Offense]:
        return self.run(Document.from_file(path))
