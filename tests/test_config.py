"""Unit tests for manifest loading (spackle.config).

Tests cover:
- Config defaults
- Config.load: slots, hooks, ``if`` alias, optional tables
- Load failures: missing file, bad TOML, schema mismatch
- validate_keys: duplicates within and across slots and hooks
"""

from __future__ import annotations

from pathlib import Path

import pytest

from spackle.config import Config, ConfigError
from spackle.hook import HookOptional
from spackle.slot import SlotType


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestConfigLoad:
    @pytest.mark.unit
    def test_defaults(self):
        config = Config()
        assert config.name is None
        assert config.ignore == []
        assert config.slots == []
        assert config.hooks == []

    @pytest.mark.unit
    def test_load_sample(self, sample_project: Path):
        config = Config.load(sample_project)

        assert config.name == "sample"
        assert config.ignore == [".git", "node_modules"]
        assert [s.key for s in config.slots] == ["module", "port", "with_docs"]
        assert config.slots[1].type is SlotType.NUMBER
        assert config.slots[1].default == "8080"
        assert [h.key for h in config.hooks] == ["touch_marker", "docs", "announce"]
        assert config.hooks[1].needs == ["with_docs"]
        assert config.hooks[2].if_ == "{{ hook_ran_touch_marker }}"
        assert config.hooks[2].optional == HookOptional(default=True)

    @pytest.mark.unit
    def test_custom_file_name(self, tmp_path: Path):
        (tmp_path / "template.toml").write_text('name = "custom"\n', encoding="utf-8")
        assert Config.load(tmp_path, "template.toml").name == "custom"

    @pytest.mark.unit
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError) as exc_info:
            Config.load(tmp_path)
        assert exc_info.value.path == tmp_path / "spackle.toml"
        assert "Error reading file" in str(exc_info.value)

    @pytest.mark.unit
    def test_invalid_toml(self, make_project):
        project = make_project("name = \n")
        with pytest.raises(ConfigError, match="Error parsing contents"):
            Config.load(project)

    @pytest.mark.unit
    def test_schema_mismatch(self, make_project):
        project = make_project(
            """\
            [[hooks]]
            key = "h"
            command = "not a list"
            """
        )
        with pytest.raises(ConfigError, match="Invalid manifest"):
            Config.load(project)


# ---------------------------------------------------------------------------
# Key validation
# ---------------------------------------------------------------------------


class TestValidateKeys:
    @pytest.mark.unit
    def test_unique_keys_pass(self, sample_project: Path):
        Config.load(sample_project).validate_keys()

    @pytest.mark.unit
    def test_duplicate_across_slots_and_hooks(self, make_project):
        project = make_project(
            """\
            [[slots]]
            key = "dup"

            [[hooks]]
            key = "dup"
            command = ["true"]
            """
        )
        config = Config.load(project)
        with pytest.raises(ConfigError) as exc_info:
            config.validate_keys()
        assert "Duplicate keys found" in str(exc_info.value)
        assert "dup" in str(exc_info.value)

    @pytest.mark.unit
    def test_duplicate_slots(self):
        config = Config.model_validate({"slots": [{"key": "a"}, {"key": "a"}, {"key": "b"}]})
        with pytest.raises(ConfigError) as exc_info:
            config.validate_keys()
        assert str(exc_info.value).splitlines()[-1] == "a"
