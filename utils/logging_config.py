"""
Logging for GreenBot: JSON records for files and production consoles,
readable lines while developing, and counters for errors the app recovers from.
"""

import json
import logging
import logging.handlers
import time
import traceback
from collections import Counter
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st

from config.app_config import AppConfig, get_config

# Attributes every LogRecord carries; anything else came in through `extra`
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_TOAST_ICONS = ((logging.ERROR, "🚨"), (logging.WARNING, "⚠️"))

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with `extra` fields nested under "extra"."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            payload["exception"] = self._describe_exception(record.exc_info)

        extra = {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)

    @staticmethod
    def _describe_exception(exc_info) -> Dict[str, Any]:
        error_type, error, _ = exc_info
        return {
            "type": error_type.__name__ if error_type else None,
            "message": str(error) if error else None,
            "traceback": traceback.format_exception(*exc_info),
        }


class StreamlitLogHandler(logging.Handler):
    """Pops warnings and errors up as toasts in the running page."""

    def emit(self, record: logging.LogRecord):
        icon = next((icon for level, icon in _TOAST_ICONS if record.levelno >= level), None)
        if icon is None:
            return
        try:
            st.toast(f"{icon} {record.getMessage()}")
        except Exception:
            self.handleError(record)


def _console_handler(config: AppConfig) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(config.logging.level)
    if config.debug:
        handler.setFormatter(logging.Formatter(f"{config.logging.format} [%(filename)s:%(lineno)d]"))
    else:
        handler.setFormatter(StructuredFormatter())
    return handler


def _file_handler(config: AppConfig) -> logging.Handler:
    log_file = Path(config.logging.log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logging(config: Optional[AppConfig] = None) -> logging.Logger:
    """
    Replace the root logger's handlers according to the logging config

    Returns:
        logging.Logger: The root logger
    """
    config = config or get_config()

    root = logging.getLogger()
    root.setLevel(config.logging.level)
    root.handlers.clear()
    root.addHandler(_console_handler(config))

    if config.logging.enable_file_logging:
        root.addHandler(_file_handler(config))

    if config.debug and config.environment == "development":
        toasts = StreamlitLogHandler()
        toasts.setLevel(logging.WARNING)
        root.addHandler(toasts)

    # httpx logs every Supabase request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _log_event(logger: logging.Logger, message: str, event_type: str, **fields) -> None:
    logger.info(message, extra={"event_type": event_type, **fields})


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
    try:
        yield
    except Exception as e:
        logger.warning(f"Failed {operation}: {e}", extra={
            "operation": operation,
            "duration_seconds": time.perf_counter() - started,
            "status": "error",
            "error_type": type(e).__name__,
            **extra_fields
        })
        raise

    logger.debug(f"Completed {operation}", extra={
        "operation": operation,
        "duration_seconds": time.perf_counter() - started,
        "status": "success",
        **extra_fields
    })


def log_user_interaction(logger: logging.Logger, interaction_type: str, **details):
    _log_event(logger, "User interaction", "user_interaction", interaction_type=interaction_type, **details)


def log_completion_usage(logger: logging.Logger, provider: str, model: str, **details):
    _log_event(logger, "Completion usage", "completion_usage", provider=provider, model=model, **details)


def log_conversation_event(logger: logging.Logger, event_type: str, conversation_id: str, **details):
    """Log a conversation lifecycle event such as "created", "synced" or "deleted"."""
    _log_event(
        logger, "Conversation event", "conversation_event",
        conversation_event_type=event_type, conversation_id=conversation_id, **details
    )


class ErrorTracker:
    """
    Counts and logs errors that were recovered rather than raised.
    Counts are keyed by "<ErrorType>:<context>".
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.error_counts: Counter = Counter()

    def track_error(self, error: Exception, context: str = "", **extra_info):
        error_type = type(error).__name__
        key = f"{error_type}:{context}"
        self.error_counts[key] += 1

        self.logger.warning(f"Recovered from error in {context}: {error}", extra={
            "event_type": "error",
            "error_type": error_type,
            "context": context,
            "error_count": self.error_counts[key],
            **extra_info
        })

    def get_error_summary(self) -> Dict[str, Any]:
        return {
            "total_errors": sum(self.error_counts.values()),
            "unique_errors": len(self.error_counts),
            "error_breakdown": dict(self.error_counts),
            "timestamp": datetime.now().isoformat()
        }


_logging_configured = False
_error_tracker: Optional[ErrorTracker] = None


def initialize_logging(config: Optional[AppConfig] = None) -> ErrorTracker:
    """Configure logging once per process and return the shared error tracker"""
    global _logging_configured, _error_tracker

    if not _logging_configured:
        setup_logging(config)
        _logging_configured = True

    if _error_tracker is None:
        _error_tracker = ErrorTracker(logging.getLogger("greenbot.errors"))

    return _error_tracker


def get_error_tracker() -> ErrorTracker:
    return _error_tracker or initialize_logging()
