"""Base error definitions for mediameta."""

from typing import Any, Dict


class MediaMetaError(Exception):
    """Base exception for all mediameta errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class ConfigurationError(MediaMetaError):
    """Configuration is invalid or missing."""
    pass


class GazetteerError(MediaMetaError):
    """Offline gazetteer could not be loaded."""
    pass


class FileProcessingError(MediaMetaError):
    """Base exception for errors raised while reading an asset file."""
    pass


class TagReadError(FileProcessingError):
    """Embedded tags could not be read (unreadable or corrupt input)."""
    pass


class ProbeError(FileProcessingError):
    """Container probe failed (invalid media)."""
    pass


class RasterDecodeError(FileProcessingError):
    """Raster header could not be decoded."""
    pass


class ToolNotFoundError(FileProcessingError):
    """Required external tool is not available."""
    pass

