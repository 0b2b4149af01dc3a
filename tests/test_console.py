"""Unit tests for console helpers (spackle.console)."""

from __future__ import annotations

import logging

import pytest

from spackle.console import (
    format_duration,
    indent,
    plural,
    print_error,
    print_success,
    print_summary_table,
    setup_logging,
)


class TestFormatting:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "seconds,expected",
        [(-1, "0ms"), (0.0042, "4ms"), (3.7, "3.7s"), (65.2, "1m 5s")],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected

    @pytest.mark.unit
    def test_plural(self):
        assert plural(1, "file") == "1 file"
        assert plural(3, "file") == "3 files"
        assert plural(2, "entry", "entries") == "2 entries"

    @pytest.mark.unit
    def test_indent(self):
        assert indent("a\nb", "> ") == "> a\n> b"


class TestRichOutput:
    @pytest.mark.unit
    def test_messages(self, capsys):
        print_success("all good")
        print_error("bad [thing]")
        captured = capsys.readouterr()
        assert "all good" in captured.out
        assert "bad [thing]" in captured.err

    @pytest.mark.unit
    def test_summary_table(self, capsys):
        print_summary_table({"Hooks run": "2"}, title="Filled")
        out = capsys.readouterr().out
        assert "Filled" in out
        assert "Hooks run" in out

    @pytest.mark.unit
    def test_setup_logging_levels(self):
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG
        setup_logging(verbose=False)
        assert logging.getLogger().level == logging.WARNING
