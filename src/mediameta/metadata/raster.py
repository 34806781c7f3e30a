"""Raster header decoding using Pillow."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from ..common.errors import RasterDecodeError

logger = logging.getLogger(__name__)

# EXIF tag id for Orientation
_ORIENTATION_TAG = 0x0112


@dataclass(frozen=True)
class RasterHeader:
    width: int
    height: int
    orientation: Optional[int] = None


def decode_raster_header(file_path: Union[str, Path]) -> RasterHeader:
    """
    Read pixel dimensions and EXIF orientation from an image header.

    Pillow opens images lazily, so pixel data is not decoded. Headers over
    Pillow's decompression-bomb limit are reported as decode failures.

    Raises:
        RasterDecodeError: If the file cannot be opened as an image
    """
    try:
        with Image.open(file_path) as img:
            width, height = img.size
            orientation = img.getexif().get(_ORIENTATION_TAG)
    except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as e:
        raise RasterDecodeError(
            f"Failed to decode image header: {e}", file_path=str(file_path)
        ) from e

    logger.debug(
        f"Decoded raster header: {{'path': {str(file_path)!r}, 'width': {width}, 'height': {height}}}"
    )
    return RasterHeader(
        width=width,
        height=height,
        orientation=int(orientation) if orientation is not None else None,
    )
