"""Structured logging utilities."""

import logging
import logging.handlers
import json
import sys
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from pathlib import Path


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

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

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        # Fields attached by LogContext or extra={"extra_fields": ...}
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class DetailedFormatter(logging.Formatter):
    """Human-readable detailed formatter."""

    def __init__(self) -> None:
        fmt = (
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | "
            "%(message)s"
        )
        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")


class SimpleFormatter(logging.Formatter):
    """Simple formatter for console output."""

    def __init__(self) -> None:
        fmt = "%(levelname)-8s | %(name)s | %(message)s"
        super().__init__(fmt=fmt)


def setup_logging(
    level: str = "INFO",
    format: str = "simple",
    log_file: Optional[Path] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Format type (simple, detailed, json)
        log_file: Optional log file path
        max_file_size_mb: Max log file size in MB
        backup_count: Number of backup files to keep
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)

    if format == "json":
        console_handler.setFormatter(StructuredFormatter())
    elif format == "detailed":
        console_handler.setFormatter(DetailedFormatter())
    else:
        console_handler.setFormatter(SimpleFormatter())

    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )

        # Always use structured format for file logs
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


_context_fields: ContextVar[Dict[str, Any]] = ContextVar("log_context_fields", default={})
_factory_installed = False


def _install_record_factory() -> None:
    """Install (once) a record factory that copies context fields onto records."""
    global _factory_installed
    if _factory_installed:
        return

    old_factory = logging.getLogRecordFactory()

    def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
        record = old_factory(*args, **kwargs)
        fields = _context_fields.get()
        if fields:
            if not hasattr(record, "extra_fields"):
                record.extra_fields = {}
            record.extra_fields.update(fields)
        return record

    logging.setLogRecordFactory(record_factory)
    _factory_installed = True


class LogContext:
    """Context manager for adding structured fields to logs.

    Fields live in a ``ContextVar``, so concurrently running asyncio tasks
    each see only their own fields. ``StructuredFormatter`` merges them into
    the JSON line.
    """

    def __init__(self, logger: logging.Logger, **fields: Any) -> None:
        self.logger = logger
        self.fields = fields
        self._token: Optional[Token] = None

    def __enter__(self) -> "LogContext":
        _install_record_factory()
        merged = {**_context_fields.get(), **self.fields}
        self._token = _context_fields.set(merged)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._token is not None:
            _context_fields.reset(self._token)
            self._token = None
