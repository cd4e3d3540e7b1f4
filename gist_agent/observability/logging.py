"""
Structured logging configuration for the Gist Agent pipeline.

This module provides JSON log formatting and a context manager that attaches
request-scoped fields (request id, trend id) to every record in scope.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Context variable for request tracking
request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})


# ============================================================================
# JSON Formatter
# ============================================================================


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON objects with standard fields:
    - timestamp: ISO 8601 timestamp
    - level: Log level
    - logger: Logger name
    - message: Log message
    - context: Request context (if available)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        ctx = request_context.get()
        if ctx:
            log_data["context"] = ctx

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


# ============================================================================
# Logging Setup
# ============================================================================


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = True,
):
    """
    Setup application logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for file logging
        json_format: Use JSON formatting (True) or plain text (False)

    Example:
        setup_logging(level="INFO", log_file="/var/log/gists.log", json_format=True)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s [%(name)s:%(lineno)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Set levels for noisy libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.WARNING)

    logging.info(f"Logging configured: level={level}, json={json_format}, file={log_file}")


# ============================================================================
# Context Management
# ============================================================================


class log_context:
    """
    Context manager for adding context to all log messages within a scope.

    Example:
        with log_context(request_id="123", trend_id="456"):
            logger.info("Publishing")
    """

    def __init__(self, **kwargs):
        self.context = {k: v for k, v in kwargs.items() if v is not None}
        self.token = None

    def __enter__(self):
        current_context = request_context.get().copy()
        current_context.update(self.context)
        self.token = request_context.set(current_context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        request_context.reset(self.token)


def get_log_context() -> Dict[str, Any]:
    """Current request context."""
    return dict(request_context.get())
