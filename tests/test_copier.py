"""Unit tests for static file copying (spackle.copier)."""

from __future__ import annotations

from pathlib import Path

import pytest

from spackle.copier import CopyError, copy_tree


def _write(path: Path, text: str = "x") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


class TestCopyTree:
    @pytest.mark.unit
    def test_copies_static_files(self, tmp_path: Path):
        src = tmp_path / "src"
        _write(src / "README.md", "readme")
        _write(src / "nested" / "deep" / "data.bin", "bytes")
        dest = tmp_path / "dest"

        result = copy_tree(src, dest, [], {})

        assert result.copied_count == 2
        assert result.skipped_count == 0
        assert (dest / "README.md").read_text(encoding="utf-8") == "readme"
        assert (dest / "nested" / "deep" / "data.bin").read_text(encoding="utf-8") == "bytes"

    @pytest.mark.unit
    def test_skips_manifest_and_templates(self, tmp_path: Path):
        src = tmp_path / "src"
        _write(src / "spackle.toml")
        _write(src / "main.py.j2")
        _write(src / "keep.txt")
        dest = tmp_path / "dest"

        result = copy_tree(src, dest, [], {})

        assert result.copied_count == 1
        assert sorted(p.name for p in dest.iterdir()) == ["keep.txt"]

    @pytest.mark.unit
    def test_ignored_entries_are_pruned_and_counted(self, tmp_path: Path):
        src = tmp_path / "src"
        _write(src / ".git" / "HEAD")
        _write(src / ".git" / "objects" / "ab")
        _write(src / "sub" / ".env")
        _write(src / "app.py")
        dest = tmp_path / "dest"

        result = copy_tree(src, dest, [".git", ".env"], {})

        assert result.copied_count == 1
        assert result.skipped_count == 2
        assert not (dest / ".git").exists()
        assert not (dest / "sub" / ".env").exists()
        assert (dest / "app.py").exists()

    @pytest.mark.unit
    def test_renders_destination_paths(self, tmp_path: Path):
        src = tmp_path / "src"
        _write(src / "{{ pkg }}" / "{{ pkg }}_test.py", "static {{ pkg }}")
        dest = tmp_path / "dest"

        copy_tree(src, dest, [], {"pkg": "app"})

        copied = dest / "app" / "app_test.py"
        # Only names are rendered; contents are copied verbatim.
        assert copied.read_text(encoding="utf-8") == "static {{ pkg }}"

    @pytest.mark.unit
    def test_undefined_path_variable(self, tmp_path: Path):
        src = tmp_path / "src"
        _write(src / "{{ missing }}.txt")

        with pytest.raises(CopyError) as exc_info:
            copy_tree(src, tmp_path / "dest", [], {})
        assert "missing" in str(exc_info.value)

    @pytest.mark.unit
    def test_missing_source(self, tmp_path: Path):
        with pytest.raises(CopyError):
            copy_tree(tmp_path / "nope", tmp_path / "dest", [], {})

    @pytest.mark.unit
    def test_output_inside_source_is_not_copied_into_itself(self, tmp_path: Path):
        src = tmp_path / "src"
        _write(src / "README.md", "readme")
        _write(src / "lib" / "util.py")
        dest = src / "render"

        result = copy_tree(src, dest, [], {})

        assert result.copied_count == 2
        assert (dest / "README.md").read_text(encoding="utf-8") == "readme"
        assert (dest / "lib" / "util.py").exists()
        assert not (dest / "render").exists()

    @pytest.mark.unit
    def test_existing_output_inside_source_is_skipped(self, tmp_path: Path):
        src = tmp_path / "src"
        _write(src / "app.py")
        _write(src / "render" / "stale.txt")

        result = copy_tree(src, src / "render", [], {})

        assert result.copied_count == 1
        assert (src / "render" / "app.py").exists()
        assert not (src / "render" / "render").exists()
