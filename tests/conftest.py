"""Pytest configuration and fixtures for templint tests."""

import re
import shutil
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from templint.engines import StyleEngine
from templint.models import Diagnostic, Edit, SourceRange
from templint.rule_set import RuleSet
from templint.style_linter import Style


class FakeEngine(StyleEngine):
    """Engine flagging configured words; ``fix`` words get an upcase edit.

    A bare ``else``/``end`` or an empty snippet counts as invalid syntax.
    """

    default_rules = {
        "Fake/Word": {"enabled": True},
        "Fake/Disabled": {"enabled": False},
    }

    def __init__(self, rule_set=None, words=("foo",), fix=(), rogue=False):
        super().__init__(rule_set or RuleSet.build(self.default_rules))
        self.words = words
        self.fix = fix
        self.rogue = rogue
        self.calls: List[str] = []

    def is_syntactically_valid(self, text: str) -> bool:
        return text.strip() not in ("", "else", "end")

    def analyze(self, text: str, filename: str) -> List[Diagnostic]:
        self.calls.append(text)
        diagnostics = []
        for word in self.words:
            for match in re.finditer(rf"\b{word}\b", text):
                local = SourceRange(match.start(), match.end())
                edits = ()
                if word in self.fix:
                    # A rogue engine rewrites the whole snippet, padding included.
                    target = SourceRange(0, len(text)) if self.rogue else local
                    edits = (Edit(target, word.upper()),)
                diagnostics.append(Diagnostic("Fake/Word", local, f"Unused local `{word}`.", edits=edits))
                diagnostics.append(Diagnostic("Fake/Disabled", local, "never reported"))
        return diagnostics


@pytest.fixture(autouse=True)
def _isolate_home(monkeypatch, tmp_path):
    """Keep a user's global config out of the tests."""
    monkeypatch.setattr("templint.config.GLOBAL_CONFIG_FILE", tmp_path / "no-global-config.toml")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def fake_style():
    """Build a style linter backed by :class:`FakeEngine`."""
    def build(**kwargs) -> Style:
        return Style(engine=FakeEngine(**kwargs))
    return build


@pytest.fixture
def sample_template() -> str:
    """Template mixing markup, control flow, blocks and comments."""
    return '''<div class="users">
  <%# list every user %>
  <% if users.any? %>
    <% users.each do |user| %>
      <p><%= link_to "Profile", user_path(user) %></p>
    <% end %>
  <% else %>
    <p><%= t("empty") %></p>
  <% end %>
</div>
'''
