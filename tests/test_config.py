"""Tests for configuration loading and rule sets."""

from pathlib import Path

import pytest

from templint.config_manager import deep_merge, find_config, load_config
from templint.errors import ConfigError, UnknownLinterError
from templint.linter import build_linters
from templint.rule_set import RuleSet
from templint.runner import Runner

DEFAULTS = {
    "Style/A": {"enabled": True, "max": 1},
    "Style/B": {"enabled": False},
}


class TestLoadConfig:
    def test_defaults_without_file(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        config = load_config()
        assert config["max_passes"] == 5
        assert set(config["linters"]) == {"erb_safety", "style"}

    def test_file_overrides_defaults(self, temp_dir):
        path = temp_dir / ".templint.toml"
        path.write_text('max_passes = 2\n[linters.style]\nonly = ["Style/NilComparison"]\n')

        config = load_config(path)

        assert config["max_passes"] == 2
        assert config["linters"]["style"] == {"enabled": True, "only": ["Style/NilComparison"]}
        assert config["linters"]["erb_safety"] == {"enabled": True}
        assert config["base_dir"] == str(temp_dir.resolve())

    def test_find_config_in_parent(self, temp_dir):
        (temp_dir / ".templint.toml").write_text("")
        nested = temp_dir / "app" / "views"
        nested.mkdir(parents=True)
        assert find_config(nested) == (temp_dir / ".templint.toml").resolve()

    def test_malformed_toml(self, temp_dir):
        path = temp_dir / "bad.toml"
        path.write_text("[linters\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_max_passes(self, temp_dir):
        path = temp_dir / "bad.toml"
        path.write_text("max_passes = 0\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigError):
            load_config(temp_dir / "nope.toml")


class TestBuildLinters:
    def test_unknown_linter(self):
        with pytest.raises(UnknownLinterError):
            build_linters({"nope": {}})

    def test_disabled_linter_is_skipped(self):
        linters = build_linters({"erb_safety": {"enabled": False}})
        assert [linter.name for linter in linters] == ["style"]

    def test_invalid_option(self):
        with pytest.raises(ConfigError):
            build_linters({"style": {"only": "not-a-list", "colour": 3}})

    def test_runner_from_config(self, temp_dir):
        path = temp_dir / ".templint.toml"
        path.write_text("max_passes = 3\n")
        runner = Runner.from_config(load_config(path))
        assert runner.max_passes == 3
        assert {linter.name for linter in runner.linters} == {"erb_safety", "style"}


class TestRuleSet:
    def test_overrides_merge_per_rule(self):
        rules = RuleSet.build(DEFAULTS, overrides={"Style/A": {"max": 3}})
        assert rules.options("Style/A")["max"] == 3
        assert rules.enabled("Style/A")
        assert not rules.enabled("Style/B")

    def test_only_selects_rules(self):
        rules = RuleSet.build(DEFAULTS, only=["Style/B"])
        assert rules.enabled_rules() == ["Style/B"]

    def test_unknown_rule(self):
        with pytest.raises(ConfigError):
            RuleSet.build(DEFAULTS, overrides={"Style/Nope": {}})
        with pytest.raises(ConfigError):
            RuleSet.build(DEFAULTS, only=["Style/Nope"])

    def test_frozen_after_build(self):
        rules = RuleSet.build(DEFAULTS)
        with pytest.raises(TypeError):
            rules.rules["Style/A"]["max"] = 5
        with pytest.raises(TypeError):
            rules.rules["Style/C"] = {}

    def test_inherit_from_chain(self, temp_dir: Path):
        (temp_dir / "base.toml").write_text('[rules."Style/A"]\nmax = 7\nenabled = false\n')
        (temp_dir / "team.toml").write_text(
            'inherit_from = ["base.toml"]\n[rules."Style/B"]\nenabled = true\n'
        )

        rules = RuleSet.build(
            DEFAULTS,
            overrides={"Style/A": {"enabled": True}},
            inherit_from=["team.toml"],
            base_dir=str(temp_dir),
        )

        assert rules.options("Style/A")["max"] == 7
        assert rules.enabled("Style/A")
        assert rules.enabled("Style/B")

    def test_circular_inherit_from(self, temp_dir: Path):
        (temp_dir / "a.toml").write_text('inherit_from = ["b.toml"]\n')
        (temp_dir / "b.toml").write_text('inherit_from = ["a.toml"]\n')
        with pytest.raises(ConfigError):
            RuleSet.build(DEFAULTS, inherit_from=["a.toml"], base_dir=str(temp_dir))

    def test_remote_inherit_from_rejected(self):
        with pytest.raises(ConfigError):
            RuleSet.build(DEFAULTS, inherit_from=["https://example.com/rules.toml"])


def test_deep_merge_does_not_mutate():
    base = {"a": {"b": 1}}
    merged = deep_merge(base, {"a": {"c": 2}})
    assert merged == {"a": {"b": 1, "c": 2}}
    assert base == {"a": {"b": 1}}
