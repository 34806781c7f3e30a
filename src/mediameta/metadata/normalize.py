"""Normalization of durations, frame rates, timestamps and numeric tags."""

import logging
import math
import re
from datetime import datetime
from typing import Any, Optional

logger = logging.getLogger(__name__)

# "+0200" / "-0530" at the end of a timestamp
_BASIC_OFFSET = re.compile(r'([+-])(\d{2})(\d{2})$')
# "2023:07:01 12:30:00..." -> date part uses colons
_EXIF_DATE = re.compile(r'^(\d{4}):(\d{2}):(\d{2})([ T].*)?$')


def format_duration(seconds: float) -> str:
    """
    Format a duration as ``H:MM:SS.000000``.

    The fractional part is truncated; hours are not padded.

    Example: 3661 -> "1:01:01.000000"

    Raises:
        ValueError: If seconds is negative
    """
    total = int(seconds)
    if total < 0:
        raise ValueError(f"Duration must be non-negative: {seconds}")

    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}.000000"


def parse_frame_rate(rate: Optional[str]) -> Optional[int]:
    """
    Parse an ffprobe ``num/den`` rate string into a rounded frame rate.

    ffprobe returns "30000/1001" or "25/1". Anything that is not exactly two
    integer parts (or has a zero denominator) yields None.
    """
    if not rate or not isinstance(rate, str):
        return None

    parts = rate.split('/')
    if len(parts) != 2:
        return None

    try:
        numerator = int(parts[0])
        denominator = int(parts[1])
    except ValueError:
        logger.debug(f"Could not parse frame rate: {rate!r}")
        return None

    if denominator == 0:
        return None

    # Half-up, not banker's rounding
    return int(math.floor(numerator / denominator + 0.5))


def _fromisoformat(value: str) -> Optional[datetime]:
    value = value.strip()
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    value = _BASIC_OFFSET.sub(r'\1\2:\3', value)
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def parse_exif_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an exiftool timestamp.

    Accepts "2023:07:01 12:30:00", optionally with sub-seconds and a
    "+02:00" / "Z" offset, as well as plain ISO strings. Unparseable values
    (including exiftool's "0000:00:00 00:00:00") yield None.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    match = _EXIF_DATE.match(value.strip())
    if match:
        year, month, day, rest = match.groups()
        value = f"{year}-{month}-{day}{(rest or '').replace(' ', 'T', 1)}"

    parsed = _fromisoformat(value)
    if parsed is None:
        logger.debug(f"Unparseable timestamp: {value!r}")
    return parsed


def parse_container_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a container tag timestamp.

    ffprobe reports ``creation_time`` as "2023-07-01T12:30:00.000000Z" and
    Apple's ``com.apple.quicktime.creationdate`` as "2023-07-01T14:30:00+0200".
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    return _fromisoformat(value)


def parse_number(value: Any) -> Optional[float]:
    """Parse a numeric tag value, tolerating a unit suffix ("4.2 mm")."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return float(value.split()[0])
    except ValueError:
        return None


def parse_int(value: Any) -> Optional[int]:
    number = parse_number(value)
    return int(number) if number is not None else None


def to_text(value: Any) -> Optional[str]:
    """Stringify a tag value; integral floats lose their ".0"."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None
