from __future__ import annotations

import json
import logging

from shiftdesk.logging_config import JSONFormatter, setup_logging


def test_json_formatter_carries_organization_id():
    record = logging.LogRecord("shiftdesk.staffing", logging.WARNING, __file__, 10, "Skipping shift %s", (4,), None)
    record.organization_id = 7

    entry = json.loads(JSONFormatter().format(record))

    assert entry["level"] == "WARNING"
    assert entry["logger"] == "shiftdesk.staffing"
    assert entry["message"] == "Skipping shift 4"
    assert entry["organization_id"] == 7


def test_json_formatter_emits_only_request_fields():
    record = logging.LogRecord("shiftdesk.main", logging.INFO, __file__, 20, "Rejected login for %s", ("a@b.c",), None)
    record.created = 0.0

    entry = json.loads(JSONFormatter().format(record))

    assert entry == {
        "timestamp": "1970-01-01T00:00:00+00:00",
        "level": "INFO",
        "logger": "shiftdesk.main",
        "message": "Rejected login for a@b.c",
    }


def test_setup_logging_reads_level_and_format_from_environment(monkeypatch):
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FORMAT", "json")
    try:
        setup_logging()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)
