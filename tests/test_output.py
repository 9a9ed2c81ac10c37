"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline, quiet and verbose modes
- format_response and print_table in all three modes
- print_tree for resource trees
- Output file redirection
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from restree import output as output_module
from restree.models import HTTPMethod, ResourceClassification, ResourceNode
from restree.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("restree.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("restree.output._is_tty", lambda: True)


@pytest.fixture()
def tree() -> list[ResourceNode]:
    notes = ResourceNode(
        key="books.notes",
        chain=["books", "notes"],
        name="notes",
        display_name="Notes",
        path="/books/{bookId}/notes",
        methods=[HTTPMethod.GET, HTTPMethod.POST],
        parent_key="books",
    )
    books = ResourceNode(
        key="books",
        chain=["books"],
        name="books",
        display_name="Books",
        path="/books",
        methods=[HTTPMethod.GET],
        classification=ResourceClassification.READ_ONLY,
        sub_resources=[notes],
    )
    return [books]


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    """Test that AUTO format resolves correctly based on environment."""

    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        mgr = OutputManager(format=OutputFormat.AUTO)
        assert mgr.format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO)
        assert mgr.format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        assert mgr.format == OutputFormat.JSON


class TestColorDisabling:
    """Test that NO_COLOR and TERM=dumb are respected."""

    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    """Test that data goes to stdout and diagnostics go to stderr."""

    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_data("hello world")
        captured = capfd.readouterr()
        assert "hello world" in captured.out
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("resource tree ready")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "resource tree ready" in captured.err

    def test_quiet_suppresses_info_but_not_errors(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.error("shown")
        captured = capfd.readouterr()
        assert "hidden" not in captured.err
        assert "Error: shown" in captured.err

    def test_debug_only_when_verbose(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("quiet")
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("loud")
        captured = capfd.readouterr()
        assert "quiet" not in captured.err
        assert "[debug] loud" in captured.err


# ------------------------------------------------------------------ #
# format_response / print_table
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_dict_as_json(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response({"title": "Library API", "total_resources": 5})
        assert json.loads(capfd.readouterr().out) == {"title": "Library API", "total_resources": 5}

    def test_dict_as_key_value(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response({"title": "Library API", "version": "1.2.0"})
        lines = capfd.readouterr().out.strip().split("\n")
        assert lines == ["title\tLibrary API", "version\t1.2.0"]

    def test_rich_dict_produces_output(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.format_response({"title": "Library API"})
        assert "Library API" in capfd.readouterr().out


class TestPrintTable:
    def test_table_json_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_table(["Key", "Methods"], [["books", "GET"], ["notes", "GET,POST"]])
        parsed = json.loads(capfd.readouterr().out)
        assert parsed == [
            {"Key": "books", "Methods": "GET"},
            {"Key": "notes", "Methods": "GET,POST"},
        ]

    def test_table_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["Key", "Methods"], [["books", "GET"]], title="ignored")
        lines = capfd.readouterr().out.strip().split("\n")
        assert lines == ["Key\tMethods", "books\tGET"]

    def test_table_rich_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["Key"], [["books"]], title="Resources")
        out = capfd.readouterr().out
        assert "books" in out
        assert "Resources" in out


# ------------------------------------------------------------------ #
# print_tree
# ------------------------------------------------------------------ #


class TestPrintTree:
    def test_json_nests_sub_resources(self, capfd, non_tty, tree):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_tree(tree)
        parsed = json.loads(capfd.readouterr().out)

        assert len(parsed) == 1
        assert parsed[0]["key"] == "books"
        assert parsed[0]["methods"] == ["GET"]
        assert parsed[0]["classification"] == "read_only"
        child = parsed[0]["sub_resources"][0]
        assert child["key"] == "books.notes"
        assert child["methods"] == ["GET", "POST"]
        assert child["sub_resources"] == []

    def test_plain_indents_children(self, capfd, non_tty, tree):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_tree(tree)
        lines = capfd.readouterr().out.rstrip("\n").split("\n")
        assert lines == [
            "books\t/books\tGET",
            "  books.notes\t/books/{bookId}/notes\tGET,POST",
        ]

    def test_rich_shows_title_and_names(self, capfd, non_tty, tree):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_tree(tree, title="Library API 1.2.0")
        out = capfd.readouterr().out
        assert "Library API 1.2.0" in out
        assert "Books" in out
        assert "Notes" in out
        assert "/books/{bookId}/notes" in out

    def test_empty_tree_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON, no_color=True).print_tree([])
        assert json.loads(capfd.readouterr().out) == []


# ------------------------------------------------------------------ #
# Output file redirection
# ------------------------------------------------------------------ #


class TestOutputFile:
    def test_format_response_writes_to_file(self, tmp_path, capfd, non_tty):
        outfile = str(tmp_path / "out.json")
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True, output_file=outfile)
        mgr.format_response({"key": "books"})
        assert capfd.readouterr().out == ""
        with open(outfile) as f:
            assert json.loads(f.read()) == {"key": "books"}

    def test_print_tree_appends_to_file(self, tmp_path, capfd, non_tty, tree):
        outfile = tmp_path / "tree.txt"
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, output_file=str(outfile))
        mgr.print_tree(tree)
        assert capfd.readouterr().out == ""
        assert "books.notes" in outfile.read_text()


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self, non_tty):
        reset_output()
        mgr = get_output()
        assert mgr is get_output()
        assert mgr.format == OutputFormat.PLAIN

    def test_set_output_is_used_by_helpers(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.JSON, no_color=True))
        output_module.format_response({"ok": True})
        assert json.loads(capfd.readouterr().out) == {"ok": True}
