"""
vestledger - Structured Logging

- JSON log format for easy parsing
- UTC timestamps
- Correlation IDs for tying a keeper cycle or CLI run together
- Structured fields taken from logging's extra= mapping
- Privacy-preserving address truncation
"""

import json
import logging
import sys
import threading
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

# Context variable for correlation ID (thread-safe)
correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}

_SENSITIVE_KEYS = ("private_key", "password", "secret", "api_key", "signature")


def _sanitize(fields: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    for key, value in fields.items():
        if any(sensitive in key.lower() for sensitive in _SENSITIVE_KEYS):
            sanitized[key] = "REDACTED"
        elif isinstance(value, dict):
            sanitized[key] = _sanitize(value)
        else:
            sanitized[key] = value
    return sanitized


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs logs as one JSON object per line

    Custom fields passed with extra= are copied into the entry, with
    sensitive keys redacted.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        corr_id = correlation_id.get()
        if corr_id:
            log_entry["correlation_id"] = corr_id

        log_entry["thread"] = {"id": threading.get_ident(), "name": threading.current_thread().name}

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields = {
            key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_entry.update(_sanitize(extra_fields))

        return json.dumps(log_entry, default=str)


class CorrelationIDFilter(logging.Filter):
    """Adds correlation_id to every record for text formatters"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "-"
        return True


def truncate_address(address: str) -> str:
    """Truncate an address for privacy"""
    if not address or len(address) < 10:
        return "UNKNOWN"
    return f"{address[:6]}...{address[-4:]}"


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: Optional[TextIO] = None,
    logger_name: str = "vestledger",
) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit JSON lines instead of human-readable text
        stream: Target stream, defaults to stderr
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper()))

    # Prevent duplicate handlers across repeated CLI invocations
    for handler in list(logger.handlers):
        if getattr(handler, "_vestledger_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler._vestledger_handler = True  # type: ignore[attr-defined]
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        text_formatter = logging.Formatter(
            "[%(asctime)s UTC] %(levelname)-8s [%(correlation_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        text_formatter.converter = lambda *args: datetime.now(timezone.utc).timetuple()
        handler.setFormatter(text_formatter)
        handler.addFilter(CorrelationIDFilter())
    logger.addHandler(handler)
    return logger
