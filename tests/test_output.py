"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- print_table in all three modes
- Logging routed through Rich to stderr
- Global instance management
"""

from __future__ import annotations

import json
import logging

import pytest

from oktaweb import output as output_module
from oktaweb.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    configure_logging,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("oktaweb.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("oktaweb.output._is_tty", lambda: True)


class TestFormatResolution:
    def test_auto_plain_when_not_tty(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager().format == OutputFormat.RICH

    def test_auto_plain_when_no_color(self, tty):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True


class TestStreams:
    def test_data_goes_to_stdout(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("export X=1")
        captured = capsys.readouterr()
        assert captured.out == "export X=1\n"
        assert captured.err == ""

    def test_diagnostics_go_to_stderr(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.info("info")
        mgr.warning("careful")
        mgr.error("broken")
        mgr.suggest("try again")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.splitlines() == [
            "info",
            "Warning: careful",
            "Error: broken",
            "→ try again",
        ]

    def test_quiet_keeps_warnings_and_errors(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden")
        mgr.suggest("hidden")
        mgr.warning("shown")
        mgr.error("shown")
        assert "hidden" not in capsys.readouterr().err

    def test_debug_only_when_verbose(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("nope")
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("yes")
        err = capsys.readouterr().err
        assert "nope" not in err
        assert "[debug] yes" in err

    def test_print_json(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_json({"a": [1, 2]})
        assert json.loads(capsys.readouterr().out) == {"a": [1, 2]}


class TestPrintTable:
    def test_plain(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["Field", "Value"], [["Org", "example.okta.com"]])
        assert capsys.readouterr().out == "Field\tValue\nOrg\texample.okta.com\n"

    def test_json(self, capsys):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_table(["Field", "Value"], [["Org", "example.okta.com"]])
        assert json.loads(capsys.readouterr().out) == [
            {"Field": "Org", "Value": "example.okta.com"}
        ]

    def test_rich(self, capsys):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["Field", "Value"], [["Org", "example.okta.com"]], title="Cache")
        out = capsys.readouterr().out
        assert "Cache" in out
        assert "example.okta.com" in out


class TestLogging:
    def test_configure_logging_levels(self):
        configure_logging(verbose=True)
        assert logging.getLogger("oktaweb").level == logging.DEBUG
        configure_logging(verbose=False)
        assert logging.getLogger("oktaweb").level == logging.WARNING

    def test_single_rich_handler(self):
        from rich.logging import RichHandler

        configure_logging(verbose=False)
        configure_logging(verbose=False)
        handlers = [
            h for h in logging.getLogger("oktaweb").handlers if isinstance(h, RichHandler)
        ]
        assert len(handlers) == 1


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert output_module._output is None
        assert isinstance(get_output(), OutputManager)

    def test_set_and_module_helpers(self, capsys):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.print_data("data")
        output_module.error("bad")
        captured = capsys.readouterr()
        assert captured.out == "data\n"
        assert captured.err == "Error: bad\n"
