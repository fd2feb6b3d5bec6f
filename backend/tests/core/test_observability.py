"""Structured logging — JSON lines carry the known extra fields only."""

import json
import logging

from schemalink.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord("schemalink.test", logging.INFO, __file__, 1, "hello", None, None)
    record.__dict__.update(extra)
    return record


def test_json_line_includes_known_extras():
    line = JSONFormatter().format(_record(project_id=7, logical_fk_id=3, secret="x"))
    payload = json.loads(line)
    assert payload["message"] == "hello"
    assert payload["level"] == "INFO"
    assert payload["project_id"] == 7
    assert payload["logical_fk_id"] == 3
    assert "secret" not in payload


def test_setup_logging_does_not_stack_handlers():
    setup_logging("DEBUG", "text")
    count = len(logging.root.handlers)
    setup_logging("INFO", "json")
    assert len(logging.root.handlers) == count
    assert logging.root.level == logging.INFO
