"""Shared utilities: configuration loading, logging and base errors."""

from .config import ConfigLoader
from .logging import setup_logging, LogContext
from .logging_config import LoggingConfig
from .errors import (
    MediaMetaError, ConfigurationError, GazetteerError, FileProcessingError,
    TagReadError, ProbeError, RasterDecodeError, ToolNotFoundError,
)

__all__ = [
    'ConfigLoader',
    'LoggingConfig',
    'setup_logging',
    'LogContext',
    'MediaMetaError',
    'ConfigurationError',
    'GazetteerError',
    'FileProcessingError',
    'TagReadError',
    'ProbeError',
    'RasterDecodeError',
    'ToolNotFoundError',
]
