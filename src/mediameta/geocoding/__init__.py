"""Offline reverse geocoding."""

from .gazetteer import AdminCode, GeoPlace, load_places
from .index import GeocodingIndex, ReadinessHandle
from .places import ResolvedPlace, ReverseGeocoder, compose_state

__all__ = [
    'AdminCode',
    'GeoPlace',
    'GeocodingIndex',
    'ReadinessHandle',
    'ResolvedPlace',
    'ReverseGeocoder',
    'compose_state',
    'load_places',
]
