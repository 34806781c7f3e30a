"""GPS coordinates from the two textual encodings found in container tags.

Encoding A (generic ``location`` tag): latitude and longitude, each a signed
decimal, terminated by ``/`` -- ``+37.3349-122.0090/``.

Encoding B (``com.apple.quicktime.location.ISO6709``): same, with a third
signed altitude component before the ``/`` -- ``+37.3349-122.0090+024.000/``.
The altitude is parsed and dropped.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

LOCATION_TAG = 'location'
ISO6709_TAG = 'com.apple.quicktime.location.ISO6709'

_SIGNED_DECIMAL = r'([+-]\d+(?:\.\d+)?)'
_TWO_COMPONENTS = re.compile(rf'{_SIGNED_DECIMAL}{_SIGNED_DECIMAL}/')
_THREE_COMPONENTS = re.compile(rf'{_SIGNED_DECIMAL}{_SIGNED_DECIMAL}{_SIGNED_DECIMAL}/')


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


def parse_lat_lon(text: str) -> Optional[Coordinates]:
    """Encoding A. A string with any other component count yields None."""
    match = _TWO_COMPONENTS.fullmatch(text.strip())
    if match is None:
        return None
    return Coordinates(float(match.group(1)), float(match.group(2)))


def parse_iso6709(text: str) -> Optional[Coordinates]:
    """Encoding B. A string with any other component count yields None."""
    match = _THREE_COMPONENTS.fullmatch(text.strip())
    if match is None:
        return None
    return Coordinates(float(match.group(1)), float(match.group(2)))


_PARSERS: Dict[str, Callable[[str], Optional[Coordinates]]] = {
    LOCATION_TAG: parse_lat_lon,
    ISO6709_TAG: parse_iso6709,
}


def parse(tag: str, text: Any) -> Optional[Coordinates]:
    """
    Parse ``text`` with the encoding that belongs to ``tag``.

    There is no cross-fallback: an encoding is only ever tried against its
    own tag, and an unknown tag yields None.
    """
    parser = _PARSERS.get(tag)
    if parser is None or not isinstance(text, str):
        return None
    return parser(text)


def parse_container_location(tags: Optional[Mapping[str, Any]]) -> Optional[Coordinates]:
    """
    Coordinates from container-level tags.

    When the ``location`` tag exists it is the only one consulted, even if
    it does not parse; the ISO6709 tag is used only when it is absent.
    """
    if not tags:
        return None
    if tags.get(LOCATION_TAG):
        return parse(LOCATION_TAG, tags[LOCATION_TAG])
    if tags.get(ISO6709_TAG):
        return parse(ISO6709_TAG, tags[ISO6709_TAG])
    return None
