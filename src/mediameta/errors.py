"""Error classification for extraction stages."""

import sqlite3

from mediameta.common.errors import (
    GazetteerError,
    ProbeError,
    RasterDecodeError,
    TagReadError,
    ToolNotFoundError,
)


def classify_error(exception: BaseException) -> str:
    """
    Classify an exception into an error category.

    Args:
        exception: The exception to classify

    Returns:
        Error category string: 'tool_missing', 'tag_read', 'probe', 'raster',
        'gazetteer', 'parse', 'persistence', 'permission', 'io' or 'unknown'
    """
    if isinstance(exception, ToolNotFoundError):
        return 'tool_missing'
    elif isinstance(exception, TagReadError):
        return 'tag_read'
    elif isinstance(exception, ProbeError):
        return 'probe'
    elif isinstance(exception, RasterDecodeError):
        return 'raster'
    elif isinstance(exception, GazetteerError):
        return 'gazetteer'
    elif isinstance(exception, sqlite3.Error):
        return 'persistence'
    elif isinstance(exception, PermissionError):
        return 'permission'
    elif isinstance(exception, OSError):
        return 'io'
    elif isinstance(exception, (ValueError, KeyError, TypeError)):
        return 'parse'
    else:
        return 'unknown'
