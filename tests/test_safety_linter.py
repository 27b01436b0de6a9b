"""Tests for the erb_safety linter."""

import pytest

from templint.errors import ConfigError
from templint.parser import Document
from templint.safety_linter import ErbSafety, SafetyConfig


def _messages(text, linter=None):
    doc = Document.parse(text)
    return [o.message for o in (linter or ErbSafety()).offenses(doc)]


class TestScriptTags:
    def test_statement_inside_script(self):
        messages = _messages("<script><% foo %></script>")
        assert messages == ["erb statement not allowed here; did you mean '<%=' ?"]

    def test_interpolation_without_to_json(self):
        messages = _messages("<script>var x = <%= foo %>;</script>")
        assert messages == ["erb interpolation in javascript tag must call '(...).to_json'"]

    def test_interpolation_with_to_json(self):
        assert _messages("<script>var x = <%= foo.to_json %>;</script>") == []

    def test_raw_interpolation_in_script(self):
        messages = _messages("<script>var x = <%== foo %>;</script>")
        assert messages == ["erb interpolation with '<%==' inside script tag is not allowed"]

    def test_template_scripts_are_not_javascript(self):
        assert _messages('<script type="text/template"><%= foo %></script>') == []

    def test_comments_inside_script_are_ignored(self):
        assert _messages("<script><%# note %></script>") == []

    def test_outside_script_is_fine(self):
        assert _messages("<script></script><% foo %><%= bar %>") == []

    def test_disallowed_script_type(self):
        text = '<script type="text/bogus"></script>'
        doc = Document.parse(text)
        [offense] = ErbSafety().offenses(doc)

        assert offense.message.startswith("text/bogus is not a valid type")
        assert doc.source(offense.range) == "text/bogus"


class TestTagInterpolation:
    def test_quoted_attribute_is_fine(self):
        assert _messages('<a href="<%= url %>">x</a>') == []

    def test_unquoted_attribute(self):
        assert _messages("<a href=<%= url %>>x</a>") == ["erb interpolation in unquoted attribute value"]

    def test_raw_helper_in_attribute(self):
        messages = _messages('<a href="<%= raw url %>">x</a>')
        assert messages == ["erb interpolation with '<%= raw(...) %>' inside html attribute is never safe"]

    def test_html_safe_in_attribute(self):
        messages = _messages('<a title="<%= title.html_safe %>">x</a>')
        assert messages == ["erb interpolation with '<%= (...).html_safe %>' inside html attribute is never safe"]

    def test_javascript_attribute(self):
        messages = _messages('<a onclick="go(<%= id %>)">x</a>')
        assert messages == ["erb interpolation in javascript attribute must call '(...).to_json'"]
        assert _messages('<a onclick="go(<%= id.to_json %>)">x</a>') == []

    def test_interpolation_in_attribute_name_position(self):
        messages = _messages('<div <%= attrs %>>x</div>')
        assert messages == ["erb interpolation in html tag name or attribute name is not allowed"]

    def test_statements_in_tags_are_allowed(self):
        assert _messages('<div <% if a %>class="b"<% end %>>x</div>') == []

    def test_offense_range_is_the_code(self):
        text = "<a href=<%= url %>>x</a>"
        doc = Document.parse(text)
        [offense] = ErbSafety().offenses(doc)
        assert doc.source(offense.range) == " url "
        assert offense.severity == "high"
        assert offense.correction is None


class TestSafetySettings:
    def test_settings_from_config_file(self, temp_dir):
        (temp_dir / "safety.toml").write_text(
            'allowed_script_types = ["text/bogus"]\njavascript_safe_methods = ["json_escape"]\n'
        )
        linter = ErbSafety(SafetyConfig(config_file="safety.toml"), base_dir=str(temp_dir))

        assert _messages('<script type="text/bogus"></script>', linter) == []
        assert _messages("<script><%= json_escape(x) %></script>", linter) == []

    def test_missing_config_file_fails_fast(self, temp_dir):
        with pytest.raises(ConfigError):
            ErbSafety(SafetyConfig(config_file="missing.toml"), base_dir=str(temp_dir))

    def test_unknown_setting_fails_fast(self, temp_dir):
        (temp_dir / "safety.toml").write_text("bogus_option = 1\n")
        with pytest.raises(ConfigError):
            ErbSafety(SafetyConfig(config_file="safety.toml"), base_dir=str(temp_dir))
