"""Country, state and city names for a coordinate pair."""

import logging
from dataclasses import dataclass
from typing import Optional

from .countries import country_name
from .gazetteer import GeoPlace
from .index import GeocodingIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPlace:
    country: Optional[str]
    state: Optional[str]
    city: Optional[str]


def compose_state(admin2_name: Optional[str], admin1_name: Optional[str]) -> str:
    """
    Join the second- and first-level admin names.

    Example: ("Los Angeles County", "California")
        -> "Los Angeles County, California"
    """
    return ", ".join(name for name in (admin2_name, admin1_name) if name)


def place_from_geoname(place: GeoPlace) -> ResolvedPlace:
    return ResolvedPlace(
        country=country_name(place.country_code),
        state=compose_state(
            place.admin2.name if place.admin2 else None,
            place.admin1.name if place.admin1 else None,
        ),
        city=place.name,
    )


class ReverseGeocoder:
    """Resolves coordinates to place names using a shared GeocodingIndex."""

    def __init__(self, index: GeocodingIndex):
        self.index = index

    @property
    def is_ready(self) -> bool:
        return self.index.is_ready

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[ResolvedPlace]:
        """Place names for the nearest gazetteer entry, None when not ready."""
        place = self.index.lookup(latitude, longitude)
        if place is None:
            return None

        resolved = place_from_geoname(place)
        logger.debug(
            f"Reverse geocoded: {{'latitude': {latitude}, 'longitude': {longitude}, "
            f"'city': {resolved.city!r}, 'country': {resolved.country!r}}}"
        )
        return resolved
