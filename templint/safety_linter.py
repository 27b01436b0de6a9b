"""Detect unsafe Ruby interpolation into HTML attributes and javascript."""

from __future__ import annotations

import logging
import re
from typing import List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from .config_manager import load_toml, resolve_path
from .errors import ConfigError
from .linter import LinterConfig, WholeTreeLinter, register_linter
from .models import Node, NodeKind, Offense, SourceRange, Tag

logger = logging.getLogger(__name__)


class SafetySettings(BaseModel):
    """Rules for what counts as safe output, read from ``config_file``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    allowed_script_types: Tuple[str, ...] = ("text/javascript", "text/template", "text/html")
    javascript_script_types: Tuple[str, ...] = ("text/javascript", "application/javascript", "module")
    javascript_safe_methods: Tuple[str, ...] = ("to_json",)
    javascript_attribute_names: Tuple[str, ...] = (r"\Aon",)


class SafetyConfig(LinterConfig):
    config_file: Optional[str] = None
    severity: str = "high"


class SafetyError(NamedTuple):
    range: SourceRange
    message: str


class _Tester:
    """One safety check over the template. Subclasses fill ``errors``."""

    def __init__(self, document, settings: SafetySettings):
        self.document = document
        self.settings = settings
        self.errors: List[SafetyError] = []

    def validate(self) -> None:
        raise NotImplementedError

    def add_error(self, source_range: SourceRange, message: str) -> None:
        self.errors.append(SafetyError(source_range, message))

    def code(self, node: Node) -> str:
        return self.document.source(node.range).strip()

    def is_javascript_script(self, tag: Tag) -> bool:
        type_attr = tag.attribute("type")
        if type_attr is None or type_attr.value_range is None:
            return True
        return self.document.source(type_attr.value_range).strip().lower() in self.settings.javascript_script_types

    def calls_safe_method(self, code: str) -> bool:
        for method in self.settings.javascript_safe_methods:
            name = re.escape(method)
            if re.search(rf"\.{name}(\(\))?\Z", code) or re.match(rf"\A{name}[\s(]", code):
                return True
        return False

    def script_segments(self) -> List[Node]:
        """Code segments that sit inside javascript ``<script>`` elements."""
        segments: List[Node] = []
        inside = False
        for node in self.document.nodes:
            if node.kind is NodeKind.MARKUP and node.tag.name.lower() == "script":
                inside = not node.tag.closing and not node.tag.self_closing and self.is_javascript_script(node.tag)
            elif inside and node.kind is NodeKind.CODE and not node.is_comment:
                segments.append(node)
        return segments


class NoStatements(_Tester):
    def validate(self) -> None:
        for node in self.script_segments():
            if node.is_statement:
                self.add_error(node.range, "erb statement not allowed here; did you mean '<%=' ?")


class ScriptInterpolation(_Tester):
    def validate(self) -> None:
        for node in self.script_segments():
            if node.indicator == "==":
                self.add_error(node.range, "erb interpolation with '<%==' inside script tag is not allowed")
            elif node.indicator == "=" and not self.calls_safe_method(self.code(node)):
                method = self.settings.javascript_safe_methods[0]
                self.add_error(node.range, f"erb interpolation in javascript tag must call '(...).{method}'")


class TagInterpolation(_Tester):
    RAW_CALL = re.compile(r"\Araw[\s(]")
    HTML_SAFE = re.compile(r"\.html_safe\Z")

    def validate(self) -> None:
        for markup in self.document.descendants(NodeKind.MARKUP):
            for node in markup.children:
                if node.is_output:
                    self._check(markup.tag, node)

    def _check(self, tag: Tag, node: Node) -> None:
        attribute = next(
            (a for a in tag.attributes if a.value_range and a.value_range.contains(node.tag_range)),
            None,
        )
        if attribute is None:
            self.add_error(node.range, "erb interpolation in html tag name or attribute name is not allowed")
            return
        if not attribute.quote:
            self.add_error(node.range, "erb interpolation in unquoted attribute value")
            return

        code = self.code(node)
        if node.indicator == "==":
            self.add_error(node.range, "erb interpolation with '<%==' inside html attribute is never safe")
        elif self.RAW_CALL.match(code):
            self.add_error(node.range, "erb interpolation with '<%= raw(...) %>' inside html attribute is never safe")
        elif self.HTML_SAFE.search(code):
            self.add_error(
                node.range, "erb interpolation with '<%= (...).html_safe %>' inside html attribute is never safe"
            )
        elif self._is_javascript_attribute(attribute.name) and not self.calls_safe_method(code):
            self.add_error(
                node.range,
                f"erb interpolation in javascript attribute must call "
                f"'(...).{self.settings.javascript_safe_methods[0]}'",
            )

    def _is_javascript_attribute(self, name: str) -> bool:
        return any(re.search(p, name, re.IGNORECASE) for p in self.settings.javascript_attribute_names)


class AllowedScriptType(_Tester):
    def validate(self) -> None:
        for markup in self.document.descendants(NodeKind.MARKUP):
            tag = markup.tag
            if tag.closing or tag.name.lower() != "script":
                continue
            type_attr = tag.attribute("type")
            if type_attr is None or type_attr.value_range is None:
                continue
            value = self.document.source(type_attr.value_range)
            if value.strip().lower() not in self.settings.allowed_script_types:
                self.add_error(
                    type_attr.value_range,
                    f"{value} is not a valid type, valid types are "
                    f"{', '.join(self.settings.allowed_script_types)}",
                )


@register_linter
class ErbSafety(WholeTreeLinter):
    """Detect unsafe ruby interpolations into javascript and attributes."""

    name = "erb_safety"
    config_schema = SafetyConfig
    tester_classes = (NoStatements, AllowedScriptType, TagInterpolation, ScriptInterpolation)

    def __init__(self, config: Optional[SafetyConfig] = None, base_dir: Optional[str] = None):
        super().__init__(config, base_dir)
        self.settings = self._load_settings()

    def _load_settings(self) -> SafetySettings:
        if self.config.config_file is None:
            return SafetySettings()
        path = resolve_path(self.base_dir, self.config.config_file)
        try:
            return SafetySettings(**load_toml(path))
        except ValidationError as exc:
            raise ConfigError(f"Invalid safety settings in {path}: {exc}") from exc

    def validate(self, document) -> List[SafetyError]:
        errors: List[SafetyError] = []
        for tester_class in self.tester_classes:
            tester = tester_class(document, self.settings)
            tester.validate()
            errors.extend(tester.errors)
        return errors

    def offenses(self, document) -> List[Offense]:
        offenses = [
            Offense(linter=self.name, range=error.range, message=error.message, severity=self.config.severity)
            for error in self.validate(document)
        ]
        logger.debug("%s: %d safety offense(s)", document.filename, len(offenses))
        return offenses
