"""Shared fixtures: migrated database, tiny gazetteer, fake tools."""

import struct
import zlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from mediameta.config import GeocodingConfig
from mediameta.dal.assets import AssetDAL
from mediameta.dal.exif import ExifDAL
from mediameta.database import DatabaseConnection
from mediameta.geocoding.index import GeocodingIndex
from mediameta.geocoding.places import ReverseGeocoder
from mediameta.metadata.ffprobe import ProbeFormat, ProbeResult, ProbeStream
from mediameta.metadata.raster import RasterHeader
from mediameta.migrations import MigrationRunner
from mediameta.models import AssetRef, AssetType


def city_line(
    geoname_id: int,
    name: str,
    latitude: float,
    longitude: float,
    country: str,
    admin1: str = "",
    admin2: str = "",
    population: int = 1000,
    timezone_name: str = "UTC",
) -> str:
    """One GeoNames cities-file line (19 tab-separated columns)."""
    columns = [
        str(geoname_id), name, name, "", str(latitude), str(longitude),
        "P", "PPL", country, "", admin1, admin2, "", "",
        str(population), "", "0", timezone_name, "2024-01-01",
    ]
    return "\t".join(columns)


GAZETTEER_CITIES = [
    city_line(5368361, "Los Angeles", 34.05223, -118.24368, "US", "CA", "037", 3971883, "America/Los_Angeles"),
    city_line(2988507, "Paris", 48.85341, 2.3488, "FR", "11", "75", 2138551, "Europe/Paris"),
    city_line(5391959, "San Francisco", 37.77493, -122.41942, "US", "CA", "075", 864816, "America/Los_Angeles"),
    city_line(6691831, "Vatican City", 41.90268, 12.45414, "VA", "", "", 829, "Europe/Vatican"),
    city_line(3042030, "Ramsey", 54.32167, -4.38667, "IM", "00", "", 7309, "Europe/Isle_of_Man"),
]

GAZETTEER_ADMIN1 = [
    "US.CA\tCalifornia\tCalifornia\t5332921",
    "FR.11\tÎle-de-France\tIle-de-France\t3012874",
]

GAZETTEER_ADMIN2 = [
    "US.CA.037\tLos Angeles County\tLos Angeles County\t5368381",
    "US.CA.075\tCity and County of San Francisco\tCity and County of San Francisco\t5391997",
    "FR.11.75\tParis\tParis\t2968815",
]


def write_gazetteer(directory: Path, cities_stem: str = "cities1000") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / f"{cities_stem}.txt").write_text("\n".join(GAZETTEER_CITIES) + "\n", encoding="utf-8")
    (directory / "admin1CodesASCII.txt").write_text("\n".join(GAZETTEER_ADMIN1) + "\n", encoding="utf-8")
    (directory / "admin2Codes.txt").write_text("\n".join(GAZETTEER_ADMIN2) + "\n", encoding="utf-8")
    return directory


class FakeTagReader:
    """Stands in for exiftool: returns fixed tags per path or raises."""

    def __init__(self, tags: Optional[Dict[str, Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.tags = tags or {}
        self.error = error
        self.calls: List[str] = []

    def __call__(self, path: str) -> Dict[str, Any]:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return dict(self.tags.get(path, {}))


class FakeRasterDecoder:
    def __init__(self, header: Optional[RasterHeader] = None, error: Optional[Exception] = None):
        self.header = header or RasterHeader(width=4032, height=3024, orientation=6)
        self.error = error
        self.calls: List[str] = []

    def __call__(self, path: str) -> RasterHeader:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return self.header


class FakeProber:
    def __init__(self, result: Optional[ProbeResult] = None, error: Optional[Exception] = None):
        self.result = result or probe_result()
        self.error = error
        self.calls: List[str] = []

    def __call__(self, path: str) -> ProbeResult:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return self.result


def probe_result(
    duration: Optional[float] = 3.2,
    size: Optional[int] = 1_048_576,
    tags: Optional[Dict[str, Any]] = None,
    streams: Optional[List[ProbeStream]] = None,
) -> ProbeResult:
    if streams is None:
        streams = [
            ProbeStream(codec_type="video", width=1920, height=1080, rotation=90, r_frame_rate="30000/1001"),
            ProbeStream(codec_type="audio"),
        ]
    return ProbeResult(
        format=ProbeFormat(duration=duration, size=size, tags=tags or {}),
        streams=streams,
    )


@pytest.fixture
def db(tmp_path):
    """Migrated SQLite database in a temporary directory."""
    connection = DatabaseConnection(tmp_path / "test.db")
    connection.connect()
    MigrationRunner(connection).apply_migrations()
    yield connection
    connection.close()


@pytest.fixture
def assets(db):
    return AssetDAL(db)


@pytest.fixture
def exif(db):
    return ExifDAL(db)


@pytest.fixture
def make_asset(assets, tmp_path):
    """Insert an asset backed by a real file and return its AssetRef."""

    def _make(
        asset_id: str,
        asset_type: AssetType = AssetType.IMAGE,
        name: Optional[str] = None,
        content: bytes = b"\x00" * 128,
        **fields: Any,
    ) -> AssetRef:
        suffix = ".mov" if asset_type is AssetType.VIDEO else ".jpg"
        path = tmp_path / "media" / (name or f"{asset_id}{suffix}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

        fields.setdefault("file_created_at", datetime(2020, 1, 1, tzinfo=timezone.utc))
        fields.setdefault("file_modified_at", datetime(2020, 1, 2, tzinfo=timezone.utc))
        asset = AssetRef(id=asset_id, type=asset_type, original_path=str(path), **fields)
        assets.insert_asset(asset)
        return asset

    return _make


@pytest.fixture
def gazetteer_dir(tmp_path):
    return write_gazetteer(tmp_path / "reverse-geocoding-dump")


@pytest.fixture
def geocoding_config(gazetteer_dir):
    return GeocodingConfig(dump_directory=str(gazetteer_dir))


@pytest.fixture
def ready_index(geocoding_config):
    index = GeocodingIndex(geocoding_config)
    index.load()
    return index


@pytest.fixture
def cold_index(tmp_path):
    """Index whose warm-up has not run."""
    return GeocodingIndex(GeocodingConfig(dump_directory=str(tmp_path / "missing")))


@pytest.fixture
def ready_geocoder(ready_index):
    return ReverseGeocoder(ready_index)


@pytest.fixture
def cold_geocoder(cold_index):
    return ReverseGeocoder(cold_index)


@pytest.fixture
def fakes():
    """Fake tool classes, so tests can build them with their own data."""

    class Fakes:
        TagReader = FakeTagReader
        RasterDecoder = FakeRasterDecoder
        Prober = FakeProber
        probe = staticmethod(probe_result)

    return Fakes


@pytest.fixture
def gazetteer_data():
    """Raw gazetteer lines and writers for tests that build their own dumps."""

    class GazetteerData:
        cities = GAZETTEER_CITIES
        admin1 = GAZETTEER_ADMIN1
        admin2 = GAZETTEER_ADMIN2
        line = staticmethod(city_line)
        write = staticmethod(write_gazetteer)

    return GazetteerData


@pytest.fixture
def oversized_png(tmp_path):
    """Write a tiny PNG whose IHDR claims far more pixels than Pillow accepts."""

    def _write(name: str = "panorama.png", width: int = 30000, height: int = 20000) -> Path:
        path = tmp_path / "media" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", (1, 1)).save(path, "PNG")

        data = bytearray(path.read_bytes())
        # Signature (8) + length (4) + b"IHDR" (4), then width and height
        data[16:24] = struct.pack(">II", width, height)
        data[29:33] = struct.pack(">I", zlib.crc32(bytes(data[12:29])) & 0xFFFFFFFF)
        path.write_bytes(bytes(data))
        return path

    return _write
