"""Tests for reflow.core.logging."""

import json

import structlog

from reflow.core.logging import LogContext, configure_logging, get_logger


class TestLogging:
    def test_json_lines_on_stderr(self, capsys):
        configure_logging(level="INFO", json_format=True)
        get_logger("reflow.test").info("workflow_dispatched", anchor="reflow/1")

        captured = capsys.readouterr()
        assert captured.out == ""
        record = json.loads(captured.err.strip().splitlines()[-1])
        assert record["event"] == "workflow_dispatched"
        assert record["anchor"] == "reflow/1"
        assert record["level"] == "info"
        assert record["logger"] == "reflow.test"
        assert record["service"] == "reflow"

    def test_level_filtering(self, capsys):
        configure_logging(level="INFO", json_format=True)
        get_logger("reflow.test").debug("hidden")
        assert "hidden" not in capsys.readouterr().err

    def test_log_context_binds_and_unbinds(self, capsys):
        configure_logging(level="DEBUG", json_format=True)
        log = get_logger("reflow.test")

        with LogContext(run_id="r1"):
            log.info("inside")
        log.info("outside")

        lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        inside = next(r for r in lines if r["event"] == "inside")
        outside = next(r for r in lines if r["event"] == "outside")
        assert inside["run_id"] == "r1"
        assert "run_id" not in outside
        structlog.contextvars.clear_contextvars()

    def test_module_level_logger_follows_later_configuration(self, capsys):
        # Modules create their logger at import time, before the CLI configures logging
        log = get_logger("reflow.github.client")
        configure_logging(level="WARNING", json_format=True)

        log.info("hidden")
        log.warning("rate_limited", remaining=0)

        lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        assert [r["event"] for r in lines] == ["rate_limited"]
        assert lines[0]["logger"] == "reflow.github.client"

    def test_unnamed_logger_has_no_logger_field(self, capsys):
        configure_logging(level="INFO", json_format=True)
        get_logger().info("anonymous")
        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert "logger" not in record
