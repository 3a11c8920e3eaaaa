"""
Structured logging configuration for Hello Server.

Provides JSON-formatted logging with correlation IDs. Development mode gets
plain text lines instead.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from hello_server.core.config import Settings

# Context variable for correlation ID (used across request lifecycle)
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "taskName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message", "asctime",
}

_SENSITIVE_KEYWORDS = {
    "password", "secret", "token", "credential", "cookie", "private",
}


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    """

    def __init__(self, include_sensitive: bool = False):
        """
        Initialize structured formatter.

        Args:
            include_sensitive: Whether to include potentially sensitive data in logs
        """
        super().__init__()
        self.include_sensitive = include_sensitive

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = correlation_id_ctx.get()
        if correlation_id:
            log_entry["correlation_id"] = correlation_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            if not self.include_sensitive and self._is_sensitive_field(key):
                extra_fields[key] = "[REDACTED]"
            else:
                extra_fields[key] = value

        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=self._json_default)

    def _is_sensitive_field(self, key: str) -> bool:
        key_lower = key.lower()
        return any(keyword in key_lower for keyword in _SENSITIVE_KEYWORDS)

    def _json_default(self, obj: Any) -> str:
        if isinstance(obj, datetime):
            return obj.isoformat()
        return str(obj)


def setup_logging(
    log_level: str = "INFO",
    enable_json: bool = True,
    include_sensitive: bool = False,
) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json: Whether to use JSON formatting
        include_sensitive: Whether to include sensitive data in logs
    """
    logging.root.handlers.clear()

    if enable_json:
        formatter: logging.Formatter = StructuredFormatter(include_sensitive=include_sensitive)
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.addHandler(console_handler)

    # The request logging middleware already writes one line per request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def init_application_logging(settings: Settings) -> None:
    """Initialize logging for the application"""
    is_dev = settings.is_development
    log_level = "DEBUG" if is_dev else settings.log_level

    # Use JSON logging outside development, plain text in development
    enable_json = not is_dev

    setup_logging(
        log_level=log_level,
        enable_json=enable_json,
        include_sensitive=is_dev,
    )

    logger = logging.getLogger("hello_server.startup")
    logger.debug(
        "Logging initialized",
        extra={"environment": settings.environment, "json_logging": enable_json, "log_level": log_level},
    )
