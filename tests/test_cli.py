"""Integration tests for CLI commands."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from templint.cli import app

runner = CliRunner()


@pytest.fixture
def project(temp_dir: Path) -> Path:
    (temp_dir / ".templint.toml").write_text("[linters.erb_safety]\nenabled = true\n")
    views = temp_dir / "views"
    views.mkdir()
    (views / "clean.html.erb").write_text("<p><%= link_to 'Home', root_path %></p>\n")
    return temp_dir


def _check(project: Path, *args: str):
    return runner.invoke(app, ["check", "--config", str(project / ".templint.toml"), *args])


class TestCheckCommand:
    def test_clean_file(self, project):
        result = _check(project, str(project / "views"))
        assert result.exit_code == 0
        assert "No offenses" in result.stdout

    def test_offenses_exit_nonzero(self, project):
        bad = project / "views" / "bad.html.erb"
        bad.write_text("<script><%= user %></script>\n")

        result = _check(project, str(bad))

        assert result.exit_code == 1
        assert "1 offense(s)" in result.stdout

    def test_autocorrect_rewrites_file(self, project):
        target = project / "views" / "fix.html.erb"
        target.write_text('<p><%= link_to "Home", root_path %></p>\n')

        result = _check(project, "--autocorrect", str(target))

        assert result.exit_code == 0
        assert target.read_text() == "<p><%= link_to 'Home', root_path %></p>\n"

    def test_diff_does_not_write(self, project):
        target = project / "views" / "fix.html.erb"
        original = '<p><%= link_to "Home", root_path %></p>\n'
        target.write_text(original)

        result = _check(project, "--diff", str(target))

        assert target.read_text() == original
        assert "+<p><%= link_to 'Home', root_path %></p>" in result.stdout

    def test_parse_error(self, project):
        broken = project / "views" / "broken.html.erb"
        broken.write_text("<p><%= oops </p>\n")

        result = _check(project, str(broken))

        assert result.exit_code == 1
        assert "Parse error" in result.stdout

    def test_positions_after_length_changing_correction(self, project):
        target = project / "views" / "shift.html.erb"
        target.write_text("<%= x == nil %>\n<script><%= y %></script>\n")

        result = _check(project, "--diff", str(target))

        assert result.exit_code == 1
        assert "1:7" in result.stdout
        assert "2:12" in result.stdout
        assert "2:10" not in result.stdout

    def test_undecodable_file_does_not_stop_run(self, project):
        bad = project / "views" / "bad.html.erb"
        bad.write_bytes(b"<p>\xff</p>\n")

        result = _check(project, str(bad), str(project / "views" / "clean.html.erb"))

        assert result.exit_code == 1
        assert "Parse error" in result.stdout
        assert "No offenses in 2 file(s)" in result.stdout

    def test_config_error(self, project):
        bad_config = project / "bad.toml"
        bad_config.write_text("[linters.nope]\n")

        result = runner.invoke(app, ["check", "--config", str(bad_config), str(project / "views")])

        assert result.exit_code == 2
        assert "Configuration error" in result.stdout

    def test_nonexistent_path(self):
        result = runner.invoke(app, ["check", "/nonexistent/path.erb"])
        assert result.exit_code != 0


def test_linters_command():
    result = runner.invoke(app, ["linters"])
    assert result.exit_code == 0
    assert "erb_safety" in result.stdout
    assert "style" in result.stdout


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "templint v" in result.stdout
