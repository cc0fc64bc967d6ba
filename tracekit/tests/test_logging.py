"""Tests for agent logging."""

import json
import logging

import pytest

from tracekit.core.logging import (
    ConsoleFormatter,
    StructuredFormatter,
    get_logger,
    request_context,
    setup_logging,
)


def _record(message: str, data=None) -> logging.LogRecord:
    record = logging.LogRecord("tracekit.test", logging.WARNING, __file__, 1, message, (), None)
    if data is not None:
        record.data = data
    return record


def test_structured_formatter_emits_json_with_data() -> None:
    line = StructuredFormatter().format(_record("Metrics export failed", {"points": 3}))
    payload = json.loads(line)

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "tracekit.test"
    assert payload["message"] == "Metrics export failed"
    assert payload["data"] == {"points": 3}
    assert payload["timestamp"].endswith("Z")


def test_formatters_include_request_context() -> None:
    token = request_context.set({"request_id": "req-12345678-abcd", "path": "/orders"})
    try:
        payload = json.loads(StructuredFormatter().format(_record("hello")))
        console = ConsoleFormatter().format(_record("hello", {"k": "v"}))
    finally:
        request_context.reset(token)

    assert payload["request_id"] == "req-12345678-abcd"
    assert payload["path"] == "/orders"
    assert "req-1234" in console
    assert "{'k': 'v'}" in console


def test_get_logger_is_cached() -> None:
    assert get_logger("tracekit.sample") is get_logger("tracekit.sample")


@pytest.fixture
def restore_agent_logger():
    agent_logger = logging.getLogger("tracekit")
    handlers, level, propagate = list(agent_logger.handlers), agent_logger.level, agent_logger.propagate
    yield agent_logger
    agent_logger.handlers[:] = handlers
    agent_logger.setLevel(level)
    agent_logger.propagate = propagate


def test_setup_logging_only_touches_agent_logger(restore_agent_logger, tmp_path) -> None:
    root_handlers = list(logging.getLogger().handlers)
    log_file = tmp_path / "agent.log"

    setup_logging("debug", json_output=True, log_file=str(log_file))
    get_logger("tracekit.sample").info("Agent started", data={"service": "svc"})

    agent_logger = restore_agent_logger
    assert agent_logger.level == logging.DEBUG
    assert agent_logger.propagate is False
    assert len(agent_logger.handlers) == 2
    assert logging.getLogger().handlers == root_handlers

    for handler in agent_logger.handlers:
        handler.flush()
    entry = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert entry["message"] == "Agent started"
    assert entry["data"] == {"service": "svc"}

    agent_logger.handlers[-1].close()


def test_bound_fields_are_merged_into_data() -> None:
    records: list[logging.LogRecord] = []

    class Collect(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    base = logging.getLogger("bind_test")
    handler = Collect()
    base.addHandler(handler)
    base.setLevel(logging.INFO)
    try:
        get_logger("bind_test").bind(loop="agent-1").info("Loop stopped", data={"tasks": 2})
    finally:
        base.removeHandler(handler)

    assert records[0].data == {"loop": "agent-1", "tasks": 2}
