# tests/unit/test_logging_config.py
"""Unit tests for structured logging."""

import json
import logging

import pytest

from engagement.logging_config import JSONFormatter, log_operation, set_trace_id


def _record(message="hello", **extra):
    record = logging.LogRecord("engagement.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_includes_trace_id_and_extras(self):
        set_trace_id("trace-1")
        try:
            payload = json.loads(JSONFormatter().format(_record(event="view", article_id=4, unrelated="x")))
        finally:
            set_trace_id(None)

        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["trace_id"] == "trace-1"
        assert payload["event"] == "view"
        assert payload["article_id"] == 4
        assert "unrelated" not in payload

    def test_no_trace_id(self):
        payload = json.loads(JSONFormatter().format(_record()))
        assert "trace_id" not in payload


class TestLogOperation:
    def test_failure_is_logged_and_reraised(self, caplog):
        with caplog.at_level(logging.ERROR, logger="engagement"):
            with pytest.raises(RuntimeError):
                with log_operation("aggregate", period="week"):
                    raise RuntimeError("boom")

        record = caplog.records[-1]
        assert record.event == "aggregate_failed"
        assert record.period == "week"
        assert isinstance(record.duration_ms, int)

    def test_success_logs_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="engagement"):
            with log_operation("cache_compute", cache_key="k"):
                pass

        assert caplog.records[-1].event == "cache_compute_complete"
