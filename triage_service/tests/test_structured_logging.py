"""Tests for JSON log formatting."""
import json
import logging

from triage_service.structured_logging import (
    JSONFormatter,
    request_id_var,
    set_analysis_id,
    set_request_id,
)


def _record(message="hello", **extra):
    record = logging.LogRecord("triage", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["service"] == "triage-assist"

    def test_context_ids(self):
        token = request_id_var.set(None)
        try:
            set_request_id("req-1")
            set_analysis_id("an-1")
            data = json.loads(JSONFormatter().format(_record()))
            assert data["request_id"] == "req-1"
            assert data["analysis_id"] == "an-1"
        finally:
            set_analysis_id(None)
            request_id_var.reset(token)

    def test_extra_data(self):
        data = json.loads(JSONFormatter().format(_record(extra_data={"service": "deepseek", "n": 2})))
        assert data["data"] == {"service": "deepseek", "n": 2}

    def test_generated_request_id(self):
        token = request_id_var.set(None)
        try:
            assert len(set_request_id()) == 8
        finally:
            request_id_var.reset(token)
