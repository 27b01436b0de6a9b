"""Apply offense corrections back onto the original template text."""

from __future__ import annotations

import difflib
import logging
from typing import Iterable, List, Optional

from .models import Correction, CorrectionResult, Edit, Offense, SourceRange
from .offsets import remap_range

logger = logging.getLogger(__name__)


class Corrector:
    """Collects edits in document coordinates and renders the rewrite."""

    def __init__(self, source: str):
        self.source = source
        self.edits: List[Edit] = []

    def replace(self, source_range: SourceRange, text: str) -> bool:
        if source_range.end_pos > len(self.source):
            return False
        self.edits.append(Edit(source_range, text))
        return True

    def insert_before(self, source_range: SourceRange, text: str) -> bool:
        return self.replace(SourceRange(source_range.begin_pos, source_range.begin_pos), text)

    def insert_after(self, source_range: SourceRange, text: str) -> bool:
        return self.replace(SourceRange(source_range.end_pos, source_range.end_pos), text)

    def remove(self, source_range: SourceRange) -> bool:
        return self.replace(source_range, "")

    def conflicts_with(self, edits: Iterable[Edit]) -> bool:
        return any(new.range.overlaps(old.range) for new in edits for old in self.edits)

    def rewrite(self) -> str:
        """Render the source with every collected edit applied."""
        if not self.edits:
            return self.source
        parts: List[str] = []
        cursor = 0
        for edit in sorted(self.edits, key=lambda e: (e.range.begin_pos, e.range.end_pos)):
            parts.append(self.source[cursor:edit.range.begin_pos])
            parts.append(edit.text)
            cursor = edit.range.end_pos
        parts.append(self.source[cursor:])
        return "".join(parts)


class PassthroughCorrector:
    """Corrector handed to a single correction.

    Snippet-local ranges are shifted by ``base_offset`` into the document,
    and any edit landing outside ``bound_range`` is rejected. Accepted edits
    are staged until :meth:`commit` so a correction is applied whole or not
    at all.
    """

    def __init__(self, corrector: Corrector, base_offset: int, bound_range: SourceRange):
        self.corrector = corrector
        self.base_offset = base_offset
        self.bound_range = bound_range
        self.staged: List[Edit] = []
        self.rejected: List[Edit] = []

    def replace(self, local_range: SourceRange, text: str) -> bool:
        translated = remap_range(local_range, self.base_offset)
        if not self.bound_range.contains(translated):
            logger.debug(
                "Rejected edit %s..%s outside bound %s..%s",
                local_range.begin_pos + self.base_offset,
                local_range.end_pos + self.base_offset,
                self.bound_range.begin_pos,
                self.bound_range.end_pos,
            )
            self.rejected.append(Edit(local_range, text))
            return False
        self.staged.append(Edit(translated, text))
        return True

    def insert_before(self, local_range: SourceRange, text: str) -> bool:
        return self.replace(SourceRange(local_range.begin_pos, local_range.begin_pos), text)

    def insert_after(self, local_range: SourceRange, text: str) -> bool:
        return self.replace(SourceRange(local_range.end_pos, local_range.end_pos), text)

    def remove(self, local_range: SourceRange) -> bool:
        return self.replace(local_range, "")

    @property
    def self_overlapping(self) -> bool:
        edits = sorted(self.staged, key=lambda e: e.range.begin_pos)
        return any(a.range.overlaps(b.range) for a, b in zip(edits, edits[1:]))

    def commit(self) -> None:
        for edit in self.staged:
            self.corrector.replace(edit.range, edit.text)


def compose_corrections(source: str, offenses: Iterable[Offense]) -> CorrectionResult:
    """Apply the corrections of ``offenses`` to ``source`` in a single pass.

    Offenses without a correction are ignored. A correction with an edit
    outside its bound range is dropped and listed in ``rejected``; one that
    overlaps an edit already accepted from another offense is left for the
    next pass and listed in ``deferred``.
    """
    corrector = Corrector(source)
    result = CorrectionResult(text=source)

    selected = [o for o in offenses if o.correction is not None]
    selected.sort(key=lambda o: (o.range.begin_pos, o.range.end_pos))
    for offense in selected:
        passthrough = _stage(corrector, offense.correction)
        if passthrough.rejected or passthrough.self_overlapping:
            logger.warning(
                "%s: correction for '%s' edits outside its code segment, not applied",
                offense.linter,
                offense.message,
            )
            result.rejected.append(offense)
        elif corrector.conflicts_with(passthrough.staged):
            logger.debug("Deferring conflicting correction for '%s'", offense.message)
            result.deferred.append(offense)
        else:
            passthrough.commit()
            result.corrected.append(offense)

    result.text = corrector.rewrite()
    return result


def _stage(corrector: Corrector, correction: Correction) -> PassthroughCorrector:
    passthrough = PassthroughCorrector(corrector, correction.base_offset, correction.bound_range)
    correction.apply(passthrough)
    return passthrough


def correction_diff(source: str, rewritten: str, filename: Optional[str] = None) -> str:
    label = (filename or "file").lstrip("/")
    diff = difflib.unified_diff(
        source.splitlines(keepends=True),
        rewritten.splitlines(keepends=True),
        fromfile=f"a/{label}",
        tofile=f"b/{label}",
    )
    return "".join(diff)
