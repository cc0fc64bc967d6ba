"""Structured logging for the TraceKit agent.

Agent log lines carry the reporting service and, when emitted while a web
request is being handled, the request id and path. Extra fields are passed
with ``data=``::

    logger = get_logger(__name__)
    logger.warning("Metrics export failed", data={"points": 12})
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Request-scoped data set by the web framework integration
request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})

AGENT_LOGGER_NAME = "tracekit"

_service_name: Optional[str] = None


def _context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if _service_name:
        fields["service"] = _service_name
    ctx = request_context.get()
    if ctx:
        fields["request_id"] = ctx.get("request_id")
        fields["path"] = ctx.get("path")
    data = getattr(record, "data", None)
    if data:
        fields["data"] = data
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }
        entry.update(_context_fields(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        fields = _context_fields(record)
        request_id = (fields.get("request_id") or "-")[:8]

        parts = [
            timestamp,
            f"{color}{record.levelname:8}{self.RESET}",
            fields.get("service") or "-",
            request_id,
            record.name,
            record.getMessage(),
        ]
        line = " | ".join(parts)
        if "data" in fields:
            line += f" | {fields['data']}"
        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter accepting ``data=``; bound fields are merged into it."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        data = dict(self.extra or {})
        data.update(kwargs.pop("data", None) or {})
        extra = dict(kwargs.get("extra") or {})
        if data:
            extra["data"] = data
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **fields: Any) -> "ContextLogger":
        """Logger that adds ``fields`` to every record's data."""
        return ContextLogger(self.logger, {**(self.extra or {}), **fields})


_loggers: Dict[str, ContextLogger] = {}


def get_logger(name: str) -> ContextLogger:
    """Get a cached ContextLogger for ``name``."""
    if name not in _loggers:
        _loggers[name] = ContextLogger(logging.getLogger(name), {})
    return _loggers[name]


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    service_name: Optional[str] = None,
) -> None:
    """Configure the ``tracekit`` logger.

    The host application's root logger and handlers are never touched; agent
    records stop at the ``tracekit`` logger.
    """
    global _service_name
    _service_name = service_name

    agent_logger = logging.getLogger(AGENT_LOGGER_NAME)
    agent_logger.setLevel(getattr(logging, level.upper()))
    agent_logger.propagate = False

    for handler in list(agent_logger.handlers):
        agent_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StructuredFormatter() if json_output else ConsoleFormatter())
    agent_logger.addHandler(console_handler)

    # Files always get JSON
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        agent_logger.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
