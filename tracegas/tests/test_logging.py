"""Tests for tracegas.core.logging — formatters and setup."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from tracegas.core.logging import DevFormatter, JSONFormatter, setup_logging


def _record(msg: str = "hello", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="tracegas.test",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "tracegas.test"
        assert entry["message"] == "hello"
        assert "timestamp" in entry

    def test_extra_fields(self):
        record = _record(analysis_id="abc", duration_ms=12, findings=2, steps=40)
        entry = json.loads(JSONFormatter().format(record))
        assert entry["analysis_id"] == "abc"
        assert entry["duration_ms"] == 12
        assert entry["findings"] == 2
        assert entry["steps"] == 40
        assert "calls" not in entry

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "boom"


class TestDevFormatter:

    def test_analysis_id_prefix(self):
        out = DevFormatter().format(_record(analysis_id="0123456789abcdef"))
        assert "[01234567] hello" in out
        assert "tracegas.test" in out

    def test_no_prefix_without_id(self):
        out = DevFormatter().format(_record())
        assert "] hello" not in out.split("tracegas.test:")[1]


class TestSetupLogging:

    def test_development_uses_dev_formatter(self, restore_root_logger):
        setup_logging("development", "DEBUG")
        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, DevFormatter)

    def test_production_uses_json(self, restore_root_logger):
        setup_logging("production", "warning")
        root = restore_root_logger
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging("staging", "chatty")
        assert restore_root_logger.level == logging.INFO

    def test_quiets_noisy_loggers(self, restore_root_logger):
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING
