"""
Structured logging for flowrisk.

JSON logs with timestamp, event_type, session_id and entity/operation context.
"""

from flowrisk.risk_logging.logger import bind_session, configure_structlog, get_logger

__all__ = ["bind_session", "configure_structlog", "get_logger"]
