"""Structured logging configuration for the workflow service.

This module provides:
- JSON structured logs for machine parsing
- Colored console output when DEBUG is enabled
- Optional rotating file handler (10MB max, 5 backups)
- Redaction of credentials that leak into task templates or messages
- Scoped structured context via LogContext

Structured context is passed with ``extra={"context": {...}}`` and is
emitted as a ``context`` object by the JSON formatter.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, ClassVar

from poweragent import __version__
from poweragent.core.config import settings


class LogLevel(str, Enum):
    """Log level enumeration for type-safe log level configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SensitiveDataFilter(logging.Filter):
    """Redact credentials from log messages before they reach any handler.

    Delegate task templates and synthesis instructions are free text typed
    by users, and occasionally carry API keys or tokens.

    Examples:
        >>> logger = logging.getLogger("poweragent")
        >>> logger.addFilter(SensitiveDataFilter())
        >>> logger.info("api_key=sk-123")
        # Logs: "api_key: [REDACTED]"
    """

    SENSITIVE_PATTERNS: ClassVar[list[str]] = [
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "bearer",
    ]

    _REGEXES: ClassVar[list[tuple[str, re.Pattern[str]]]] = [
        (pattern, re.compile(rf"{pattern}[:=]\s*[\"']?[^\s\"']+", re.IGNORECASE))
        for pattern in SENSITIVE_PATTERNS
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact sensitive values in the record message and string args.

        Returns:
            Always True; records are rewritten, never dropped.
        """
        record.msg = self.redact(str(record.msg))
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self.redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True

    @classmethod
    def redact(cls, text: str) -> str:
        """Replace ``key: value`` / ``key=value`` pairs with a redaction marker."""
        for pattern, regex in cls._REGEXES:
            text = regex.sub(f"{pattern}: [REDACTED]", text)
        return text


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Merge scoped LogContext values with per-call ``extra`` context."""
    scoped = getattr(record, "scoped_context", None) or {}
    explicit = getattr(record, "context", None) or {}
    return {**scoped, **explicit}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Format:
        {
            "timestamp": "2025-01-12T10:30:45.123Z",
            "level": "INFO",
            "logger": "poweragent.services.workflow.resolver",
            "message": "Execution plan resolved",
            "service": "PowerAgent Workflow API",
            "version": "0.1.0",
            "context": {"steps": 7, "levels": 6}
        }
    """

    def __init__(
        self,
        service_name: str = "PowerAgent Workflow API",
        service_version: str = __version__,
    ) -> None:
        super().__init__()
        self.service_name = service_name
        self.service_version = service_version

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line."""
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "version": self.service_version,
        }

        context = record_context(record)
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if record.levelno >= logging.ERROR:
            log_entry["source"] = {
                "function": record.funcName,
                "line": record.lineno,
                "file": record.pathname,
            }

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Human-readable colored console output for local development."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[41m",  # Red background
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a colored level name and inline context."""
        color = self.COLORS.get(record.levelname, self.RESET)
        line = super().format(record)
        line = line.replace(record.levelname, f"{color}{record.levelname}{self.RESET}", 1)

        context = record_context(record)
        if context:
            line = f"{line} | Context: {json.dumps(context, default=str)}"
        return line


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    service_name: str = "PowerAgent Workflow API",
    enable_json: bool = True,
    enable_console: bool = True,
) -> logging.Logger:
    """Configure root logging with structured handlers.

    Args:
        log_level: Logging level name. Defaults to settings.LOG_LEVEL.
        log_file: Optional path for a rotating file handler. No file
            handler is installed when omitted.
        service_name: Service name embedded in JSON records.
        enable_json: Use JSON formatting (file handler, and console
            handler outside DEBUG).
        enable_console: Install a stdout handler.

    Returns:
        The configured root logger.
    """
    if log_level is None:
        log_level = settings.LOG_LEVEL
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    sensitive_filter = SensitiveDataFilter()
    plain_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if log_file is not None:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=str(log_file_path),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            JSONFormatter(service_name=service_name) if enable_json else plain_formatter
        )
        file_handler.addFilter(sensitive_filter)
        logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        if settings.DEBUG:
            console_handler.setFormatter(ColoredConsoleFormatter())
        elif enable_json:
            console_handler.setFormatter(JSONFormatter(service_name=service_name))
        else:
            console_handler.setFormatter(plain_formatter)
        console_handler.addFilter(sensitive_filter)
        logger.addHandler(console_handler)

    logger.info(
        f"Logging initialized - Level: {log_level}",
        extra={
            "context": {
                "log_level": log_level,
                "log_file": log_file,
                "service": service_name,
            }
        },
    )

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name.

    Examples:
        >>> from poweragent.core.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Validating workflow")
    """
    return logging.getLogger(name)


class LogContext:
    """Attach structured context to every record created inside a block.

    Examples:
        >>> logger = get_logger(__name__)
        >>> with LogContext(logger, workflow_digest="3f1a", operation="plan"):
        ...     logger.info("Resolving execution order")
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        self.logger = logger
        self.context = context
        self.old_factory = logging.getLogRecordFactory()

    def __enter__(self) -> LogContext:
        old_factory = self.old_factory
        context = self.context

        # Stored apart from "context" so that extra={"context": ...} on the
        # same record does not collide inside Logger.makeRecord.
        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = old_factory(*args, **kwargs)
            existing = getattr(record, "scoped_context", None) or {}
            record.scoped_context = {**existing, **context}
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, *args: Any) -> None:
        logging.setLogRecordFactory(self.old_factory)


__all__ = [
    "ColoredConsoleFormatter",
    "JSONFormatter",
    "LogContext",
    "LogLevel",
    "SensitiveDataFilter",
    "get_logger",
    "record_context",
    "setup_logging",
]
