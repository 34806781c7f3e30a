"""Data Access Layer (DAL) for database operations."""

from .assets import AssetDAL
from .exif import ExifDAL

__all__ = [
    'AssetDAL',
    'ExifDAL',
]
