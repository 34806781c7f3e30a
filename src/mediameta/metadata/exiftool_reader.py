"""Embedded tag reading using ExifTool."""

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, Union

from ..common.errors import TagReadError, ToolNotFoundError

logger = logging.getLogger(__name__)

# "#" suffix asks exiftool for the raw numeric value instead of the
# print-converted one ("Rotate 90 CW", "37 deg 46' 29.64\" N")
READ_TAGS = (
    'DateTimeOriginal',
    'CreateDate',
    'ModifyDate',
    'Make',
    'Model',
    'LensModel',
    'ExposureTime',
    'FNumber#',
    'FocalLength#',
    'ISO#',
    'Orientation#',
    'GPSLatitude#',
    'GPSLongitude#',
    'ExifImageWidth',
    'ExifImageHeight',
    'ImageWidth',
    'ImageHeight',
    'MediaGroupUUID',
    'ContentIdentifier',
)


def read_tags(
    file_path: Union[str, Path],
    exiftool_path: str = 'exiftool',
    timeout: float = 30,
) -> Dict[str, Any]:
    """
    Read embedded tags from a media file.

    Args:
        file_path: Path to the media file
        exiftool_path: exiftool binary name or path
        timeout: Seconds before the invocation is abandoned

    Returns:
        Mapping of tag name to value (tags the file does not carry are absent)

    Raises:
        ToolNotFoundError: If exiftool is not available
        TagReadError: If exiftool fails, times out or reports an error
    """
    command = [exiftool_path, '-json', '-m']
    command.extend(f'-{name}' for name in READ_TAGS)
    command.append(str(file_path))

    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            encoding='utf-8',
            check=True,
            timeout=timeout
        )
    except FileNotFoundError as e:
        raise ToolNotFoundError(
            f"exiftool not found: {exiftool_path}", tool='exiftool'
        ) from e
    except subprocess.CalledProcessError as e:
        raise TagReadError(
            f"exiftool failed: {(e.stderr or '').strip()}",
            file_path=str(file_path),
            returncode=e.returncode
        ) from e
    except subprocess.TimeoutExpired as e:
        raise TagReadError(
            f"exiftool timed out after {timeout}s", file_path=str(file_path)
        ) from e

    try:
        data = json.loads(result.stdout or '[]')
    except json.JSONDecodeError as e:
        raise TagReadError(
            f"Failed to parse exiftool output: {e}", file_path=str(file_path)
        ) from e

    if not data:
        return {}

    # ExifTool returns array with single object
    tags = dict(data[0])
    if 'Error' in tags:
        raise TagReadError(f"exiftool error: {tags['Error']}", file_path=str(file_path))

    tags.pop('SourceFile', None)
    logger.debug(f"Read tags: {{'path': {str(file_path)!r}, 'count': {len(tags)}}}")
    return tags
