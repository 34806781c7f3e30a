"""In-memory nearest-place index over the GeoNames gazetteer."""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..common.errors import GazetteerError
from ..config import GeocodingConfig
from .gazetteer import GeoPlace, load_places

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0088


class ReadinessHandle:
    """
    One-shot readiness flag.

    Once set it stays set; setting it again is harmless. It cannot be
    cleared.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class _Snapshot:
    places: List[GeoPlace]
    latitudes: np.ndarray
    longitudes: np.ndarray


def _build_snapshot(places: List[GeoPlace]) -> _Snapshot:
    return _Snapshot(
        places=places,
        latitudes=np.radians(np.array([p.latitude for p in places], dtype=np.float64)),
        longitudes=np.radians(np.array([p.longitude for p in places], dtype=np.float64)),
    )


def haversine_km(lat: float, lon: float, latitudes: np.ndarray, longitudes: np.ndarray) -> np.ndarray:
    """Great-circle distance from one point (degrees) to arrays of points (radians)."""
    lat_r = np.radians(lat)
    lon_r = np.radians(lon)
    dlat = latitudes - lat_r
    dlon = longitudes - lon_r
    a = np.sin(dlat / 2) ** 2 + np.cos(lat_r) * np.cos(latitudes) * np.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


class GeocodingIndex:
    """
    Nearest-place lookup, loaded once per process.

    Readers call ``lookup`` at any time; before the warm-up has finished it
    returns None instead of blocking.
    """

    def __init__(self, config: GeocodingConfig):
        self.config = config
        self.readiness = ReadinessHandle()
        self._snapshot: Optional[_Snapshot] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_ready(self) -> bool:
        return self.readiness.is_set()

    def load(self) -> None:
        """
        Load the gazetteer synchronously and mark the index ready.

        Raises:
            GazetteerError: If the gazetteer cannot be loaded
        """
        places = load_places(self.config.dump_path, self.config.cities_file_stem)
        snapshot = _build_snapshot(places)
        # Publish the complete snapshot before signalling readiness
        self._snapshot = snapshot
        self.readiness.set()

    async def initialize(self) -> None:
        """
        Warm up the index without blocking the event loop.

        A load failure is logged and leaves the index not ready for the rest
        of the process lifetime.
        """
        if self.config.disabled:
            logger.info("Reverse geocoding disabled: {'reason': 'config'}")
            return
        if self.is_ready:
            return

        logger.info(
            f"Loading gazetteer: {{'directory': {str(self.config.dump_path)!r}, "
            f"'tier': {self.config.cities_file_stem!r}}}"
        )
        try:
            await asyncio.to_thread(self.load)
        except GazetteerError as e:
            logger.error(f"Reverse geocoding unavailable: {{'error': {e.message!r}, 'context': {e.context!r}}}")
            return

        logger.info(f"Reverse geocoding ready: {{'places': {len(self._snapshot.places)}}}")

    def start(self) -> asyncio.Task:
        """Schedule ``initialize`` as a background task on the running loop."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.initialize())
        return self._task

    def lookup(self, latitude: float, longitude: float) -> Optional[GeoPlace]:
        """Nearest place by great-circle distance, or None when not ready."""
        if not self.readiness.is_set():
            return None
        snapshot = self._snapshot
        if snapshot is None or not snapshot.places:
            return None

        distances = haversine_km(latitude, longitude, snapshot.latitudes, snapshot.longitudes)
        return snapshot.places[int(np.argmin(distances))]
