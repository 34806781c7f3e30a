"""Edge case handling for paired assets."""

from .live_photos import LivePhotoLink, LivePhotoLinker

__all__ = [
    'LivePhotoLink',
    'LivePhotoLinker',
]
