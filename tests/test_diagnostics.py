"""Tests for errors, placeholders and reporters."""

import logging

from htmlkit.diagnostics import CollectingReporter, LoggingReporter, placeholder, suggest
from htmlkit.errors import (
    CycleError,
    DepthExceededError,
    ErrorKind,
    ExpressionError,
    MalformedDirectiveError,
    PathRejectedError,
    TemplateNotFoundError,
)


class TestErrors:
    """Test error codes and messages."""

    def test_codes_by_scope(self):
        assert CycleError(["a", "a"], scope="layout").code == "E1001"
        assert CycleError(["a", "a"]).code == "E1002"
        assert DepthExceededError("a", 3, 2).code == "E1003"
        assert PathRejectedError("../a", "root", scope="layout").code == "E2001"
        assert PathRejectedError("../a", "root").code == "E2002"
        assert TemplateNotFoundError("a", scope="layout").code == "E3001"
        assert TemplateNotFoundError("a").code == "E3002"
        assert MalformedDirectiveError("bad").code == "E4001"
        assert ExpressionError("bad", phase="compile").code == "E5001"
        assert ExpressionError("bad").code == "E5002"

    def test_cycle_message(self):
        error = CycleError(["page.html", "a.html", "page.html"])
        assert error.message == "Circular include detected: page.html -> a.html -> page.html"
        assert error.path == "page.html"
        assert error.kind is ErrorKind.CYCLE

    def test_severity(self):
        assert TemplateNotFoundError("a").severity == "warning"
        assert CycleError(["a", "a"]).severity == "error"

    def test_to_dict(self):
        data = TemplateNotFoundError("hedaer.html", suggestions=["header.html"]).to_dict()
        assert data == {
            "code": "E3002",
            "kind": "not_found",
            "severity": "warning",
            "message": "Include not found: hedaer.html",
            "path": "hedaer.html",
            "suggestions": ["Did you mean 'header.html'?"],
        }


class TestPlaceholder:
    """Test inline diagnostics."""

    def test_format(self):
        error = DepthExceededError("deep.html", 4, 3)
        assert placeholder(error) == (
            "<!-- [htmlkit] E1003 Include nesting depth 4 exceeds the maximum of 3 at "
            "deep.html (Flatten the nesting or raise max_depth in the configuration) -->"
        )

    def test_comment_terminator_is_sanitized(self):
        error = MalformedDirectiveError("bad -- thing")
        assert placeholder(error) == "<!-- [htmlkit] E4001 bad - - thing -->"


class TestSuggest:
    """Test close-match suggestions."""

    def test_close_matches(self):
        assert suggest("headr.html", ["header.html", "about.txt"]) == ["header.html"]

    def test_no_matches(self):
        assert suggest("zzz.html", ["header.html"]) == []


class TestReporters:
    """Test diagnostics reporters."""

    def test_collecting_reporter(self):
        reporter = CollectingReporter()
        reporter.report(CycleError(["a", "a"]))
        reporter.report(TemplateNotFoundError("b"))

        assert reporter.codes() == ["E1002", "E3002"]
        reporter.clear()
        assert reporter.errors == []

    def test_logging_reporter_levels(self, caplog):
        reporter = LoggingReporter()
        with caplog.at_level(logging.WARNING, logger="htmlkit"):
            reporter.report(TemplateNotFoundError("b.html"))
            reporter.report(CycleError(["a.html", "a.html"]))

        levels = [record.levelno for record in caplog.records]
        assert levels == [logging.WARNING, logging.ERROR]
        assert "E3002 Include not found: b.html" in caplog.records[0].getMessage()
