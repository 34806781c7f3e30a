"""GeoNames dump loading.

The cities files (``cities1000.txt`` ...) are tab-separated with 19 columns:

    geonameid, name, asciiname, alternatenames, latitude, longitude,
    feature class, feature code, country code, cc2, admin1 code,
    admin2 code, admin3 code, admin4 code, population, elevation, dem,
    timezone, modification date

``admin1CodesASCII.txt`` and ``admin2Codes.txt`` map ``CC.A1`` and
``CC.A1.A2`` to ``name, asciiname, geonameid``.
"""

import io
import logging
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, TextIO

from ..common.errors import GazetteerError

logger = logging.getLogger(__name__)

CITY_COLUMNS = 19
ADMIN1_FILE = 'admin1CodesASCII'
ADMIN2_FILE = 'admin2Codes'


@dataclass(frozen=True)
class AdminCode:
    code: str
    name: Optional[str] = None
    ascii_name: Optional[str] = None
    geoname_id: Optional[int] = None


@dataclass(frozen=True)
class GeoPlace:
    geoname_id: int
    name: str
    ascii_name: str
    country_code: str
    admin1: Optional[AdminCode]
    admin2: Optional[AdminCode]
    admin3: Optional[AdminCode]
    admin4: Optional[AdminCode]
    population: int
    latitude: float
    longitude: float
    timezone: Optional[str]


def locate_dump_file(directory: Path, stem: str) -> Optional[Path]:
    """
    Find ``<stem>.txt`` or ``<stem>.zip`` either directly in ``directory``
    or one level below it (``directory/<stem>/<stem>.txt``).
    """
    candidates = [
        directory / f"{stem}.txt",
        directory / f"{stem}.zip",
        directory / stem / f"{stem}.txt",
        directory / stem / f"{stem}.zip",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


@contextmanager
def open_dump_file(path: Path) -> Iterator[TextIO]:
    """Open a plain or zipped dump file as UTF-8 text."""
    if path.suffix == '.zip':
        with zipfile.ZipFile(path) as archive:
            member = f"{path.stem}.txt"
            if member not in archive.namelist():
                raise GazetteerError(
                    f"Archive does not contain {member}", path=str(path)
                )
            with archive.open(member) as raw:
                yield io.TextIOWrapper(raw, encoding='utf-8')
    else:
        with open(path, 'r', encoding='utf-8') as f:
            yield f


def _int_or_none(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


def load_admin_codes(path: Optional[Path]) -> Dict[str, AdminCode]:
    """Parse an admin1/admin2 code file; a missing file yields an empty map."""
    if path is None:
        return {}

    codes: Dict[str, AdminCode] = {}
    with open_dump_file(path) as f:
        for line in f:
            columns = line.rstrip('\n').split('\t')
            if len(columns) < 4:
                continue
            key, name, ascii_name, geoname_id = columns[:4]
            codes[key] = AdminCode(
                code=key.rsplit('.', 1)[-1],
                name=name or None,
                ascii_name=ascii_name or None,
                geoname_id=_int_or_none(geoname_id),
            )
    return codes


def _admin(codes: Dict[str, AdminCode], key: str, code: str) -> Optional[AdminCode]:
    if not code:
        return None
    return codes.get(key) or AdminCode(code=code)


def parse_city_line(
    line: str,
    admin1_codes: Dict[str, AdminCode],
    admin2_codes: Dict[str, AdminCode],
) -> GeoPlace:
    """
    Parse one cities-file line.

    Raises:
        ValueError: If the line does not have the expected shape
    """
    columns = line.rstrip('\n').split('\t')
    if len(columns) != CITY_COLUMNS:
        raise ValueError(f"Expected {CITY_COLUMNS} columns, got {len(columns)}")

    country = columns[8]
    admin1_code, admin2_code = columns[10], columns[11]
    admin3_code, admin4_code = columns[12], columns[13]

    return GeoPlace(
        geoname_id=int(columns[0]),
        name=columns[1],
        ascii_name=columns[2],
        country_code=country,
        admin1=_admin(admin1_codes, f"{country}.{admin1_code}", admin1_code),
        admin2=_admin(admin2_codes, f"{country}.{admin1_code}.{admin2_code}", admin2_code),
        admin3=AdminCode(code=admin3_code) if admin3_code else None,
        admin4=AdminCode(code=admin4_code) if admin4_code else None,
        population=_int_or_none(columns[14]) or 0,
        latitude=float(columns[4]),
        longitude=float(columns[5]),
        timezone=columns[17] or None,
    )


def load_places(directory: Path, cities_stem: str) -> List[GeoPlace]:
    """
    Load every place of the chosen cities tier, with admin names attached.

    Raises:
        GazetteerError: If the cities file is missing, unreadable or yields
            no places
    """
    cities_path = locate_dump_file(directory, cities_stem)
    if cities_path is None:
        raise GazetteerError(
            f"Gazetteer file not found: {cities_stem}", directory=str(directory)
        )

    admin_codes = {}
    for stem in (ADMIN1_FILE, ADMIN2_FILE):
        path = locate_dump_file(directory, stem)
        if path is None:
            logger.warning(
                f"Gazetteer admin file missing: {{'file': {stem!r}, 'directory': {str(directory)!r}}}"
            )
        try:
            admin_codes[stem] = load_admin_codes(path)
        except (OSError, zipfile.BadZipFile, UnicodeDecodeError) as e:
            raise GazetteerError(f"Failed to read {stem}: {e}", path=str(path)) from e

    places: List[GeoPlace] = []
    skipped = 0
    try:
        with open_dump_file(cities_path) as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    places.append(
                        parse_city_line(line, admin_codes[ADMIN1_FILE], admin_codes[ADMIN2_FILE])
                    )
                except ValueError:
                    skipped += 1
    except (OSError, zipfile.BadZipFile, UnicodeDecodeError) as e:
        raise GazetteerError(
            f"Failed to read gazetteer: {e}", path=str(cities_path)
        ) from e

    if skipped:
        logger.warning(
            f"Skipped malformed gazetteer lines: {{'path': {str(cities_path)!r}, 'count': {skipped}}}"
        )
    if not places:
        raise GazetteerError("Gazetteer contains no places", path=str(cities_path))

    logger.info(
        f"Loaded gazetteer: {{'path': {str(cities_path)!r}, 'places': {len(places)}}}"
    )
    return places
