"""
Structured logging configuration and utilities
"""

import json
import logging
import logging.handlers
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st

from config.app_config import AppConfig, get_config

# Attributes every LogRecord carries; anything else came in through `extra`
_RECORD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """
    Formats records as one JSON object per line, with `extra` fields nested
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, ensure_ascii=False, default=str)


class StreamlitLogHandler(logging.Handler):
    """
    Shows log messages as Streamlit alerts on the current page
    """

    def emit(self, record: logging.LogRecord):
        try:
            message = self.format(record)
            if record.levelno >= logging.ERROR:
                st.error(message)
            elif record.levelno >= logging.WARNING:
                st.warning(message)
            else:
                st.info(message)
        except Exception:
            self.handleError(record)


def _console_handler(config: AppConfig) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(config.logging.level)
    if config.debug:
        handler.setFormatter(logging.Formatter(config.logging.format + " [%(filename)s:%(lineno)d]"))
    else:
        handler.setFormatter(StructuredFormatter())
    return handler


def _file_handler(config: AppConfig) -> logging.Handler:
    log_file = Path(config.logging.log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    # Files always get the full debug stream
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logging(config: Optional[AppConfig] = None) -> logging.Logger:
    """
    Configure the root logger

    Args:
        config: Application configuration (global config when omitted)

    Returns:
        logging.Logger: Configured root logger
    """
    config = config or get_config()

    root_logger = logging.getLogger()
    root_logger.setLevel(config.logging.level)
    root_logger.handlers.clear()

    root_logger.addHandler(_console_handler(config))

    if config.logging.enable_file_logging:
        root_logger.addHandler(_file_handler(config))

    # Surface warnings on the page while developing
    if config.debug and config.environment == "development":
        streamlit_handler = StreamlitLogHandler()
        streamlit_handler.setLevel(logging.WARNING)
        streamlit_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root_logger.addHandler(streamlit_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_execution_time(logger: logging.Logger, operation: str, **extra_fields):
    """
    Log how long the wrapped block took; failures are logged and re-raised

    Args:
        logger: Logger instance
        operation: Description of the operation
        **extra_fields: Additional fields to include in log
    """
    started = time.perf_counter()
    logger.debug(f"Starting {operation}", extra={"operation": operation, **extra_fields})
    try:
        yield
    except Exception as e:
        logger.error(f"Failed {operation}: {e}", extra={
            "operation": operation,
            "duration_seconds": time.perf_counter() - started,
            "status": "error",
            "error_type": type(e).__name__,
            **extra_fields
        }, exc_info=True)
        raise

    logger.debug(f"Completed {operation}", extra={
        "operation": operation,
        "duration_seconds": time.perf_counter() - started,
        "status": "success",
        **extra_fields
    })


def log_allocation_event(logger: logging.Logger, event_type: str, allocation_id: str, **details):
    """
    Log an allocation lifecycle event

    Args:
        logger: Logger instance
        event_type: Type of event (e.g., "created", "completed", "overdue")
        allocation_id: Allocation identifier
        **details: Additional event details
    """
    logger.info(f"Allocation {allocation_id} {event_type}", extra={
        "event_type": "allocation_event",
        "allocation_event_type": event_type,
        "allocation_id": allocation_id,
        **details
    })


def log_user_interaction(logger: logging.Logger, interaction_type: str, **details):
    """Log a user action (login, logout, lab authored)"""
    logger.info(f"User interaction: {interaction_type}", extra={
        "event_type": "user_interaction",
        "interaction_type": interaction_type,
        **details
    })


class ErrorTracker:
    """
    Counts errors by type and context and logs each one with its traceback.
    Shared by the request path and the sweeper thread.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.error_counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def track_error(self, error: Exception, context: str = "", **extra_info):
        """
        Track and log an error with context

        Args:
            error: Exception that occurred
            context: Where it happened (e.g. "saving labs")
            **extra_info: Additional error information
        """
        error_type = type(error).__name__
        error_key = f"{error_type}:{context}"

        with self._lock:
            count = self.error_counts.get(error_key, 0) + 1
            self.error_counts[error_key] = count

        self.logger.error(f"Error in {context}: {error}", extra={
            "event_type": "error",
            "error_type": error_type,
            "context": context,
            "error_count": count,
            **extra_info
        }, exc_info=error)

    def get_error_summary(self) -> Dict[str, Any]:
        with self._lock:
            breakdown = dict(self.error_counts)
        return {
            "total_errors": sum(breakdown.values()),
            "unique_errors": len(breakdown),
            "error_breakdown": breakdown,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }


_logger_setup = False
_error_tracker: Optional[ErrorTracker] = None


def initialize_logging(config: Optional[AppConfig] = None) -> ErrorTracker:
    """
    Configure logging once per process and return the shared error tracker
    """
    global _logger_setup, _error_tracker

    if not _logger_setup:
        setup_logging(config)
        _logger_setup = True

    if _error_tracker is None:
        _error_tracker = ErrorTracker(get_logger("errors"))

    return _error_tracker


def get_error_tracker() -> ErrorTracker:
    if _error_tracker is None:
        return initialize_logging()
    return _error_tracker
