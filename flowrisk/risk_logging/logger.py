"""
Structured logging for flowrisk sessions and tools.

structlog with ISO timestamps, log level and an event_type key, so every
line can be aggregated by event. JSON by default; LOG_FORMAT=console switches
to the human-readable renderer for local runs. Logs go to stderr so the
CLI tools can keep stdout for report output.

The analysis stores never log; AnalysisSession and the tools do, through
get_logger() / bind_session().

Uses only Python stdlib logging and structlog; no flowrisk imports to avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601, UTC)."""
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    return structlog.PrintLogger(file=sys.stderr)


def configure_structlog(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structlog process-wide.

    Args:
        level: Log level name; defaults to LOG_LEVEL env or INFO.
        fmt: "json" or "console"; defaults to LOG_FORMAT env or json.
    """
    level_name = (level or os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
    level_value = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or os.getenv("LOG_FORMAT") or DEFAULT_LOG_FORMAT).strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _event_type,
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        # Resolve sys.stderr per call so redirected streams are honoured.
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


# One-time configuration on first import
if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

    Log with event_type (first arg) and keyword context:
        logger = get_logger(__name__)
        logger.warning("operation_rejected", operation="add_coupling", error_code="self_coupling")
    Output (JSON): {"operation": "add_coupling", "error_code": "self_coupling", "level": "warning",
                    "timestamp": "...", "event_type": "operation_rejected", "logger": "module.name"}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_session(session_id: str) -> structlog.BoundLogger:
    """Return a logger with session_id bound to all subsequent log calls."""
    return get_logger("flowrisk.session").bind(session_id=session_id)
