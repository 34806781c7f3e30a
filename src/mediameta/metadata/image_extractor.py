"""Metadata extraction for still images."""

import asyncio
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from ..common.errors import RasterDecodeError, TagReadError, ToolNotFoundError
from ..dal.assets import AssetDAL
from ..dal.exif import PLACE_COLUMNS, ExifDAL
from ..edge_cases.live_photos import LivePhotoLinker
from ..geocoding.places import ReverseGeocoder
from ..models import AssetRef, MetadataRecord
from ..outcomes import JobResult
from .fallback import first_present, stored, tag
from .normalize import parse_exif_datetime, parse_int, parse_number, to_text
from .raster import RasterHeader

logger = logging.getLogger(__name__)

TagReader = Callable[[str], Dict[str, Any]]
RasterDecoder = Callable[[str], RasterHeader]

JOB_NAME = 'extract-exif'


# Field resolvers: each is an ordered fallback chain for one field

def resolve_file_created_at(tags: Mapping[str, Any], asset: AssetRef) -> Optional[datetime]:
    return first_present([
        tag(tags, 'DateTimeOriginal', parse_exif_datetime),
        tag(tags, 'CreateDate', parse_exif_datetime),
        stored(asset.file_created_at),
    ])


def resolve_file_modified_at(tags: Mapping[str, Any], asset: AssetRef) -> Optional[datetime]:
    return first_present([
        tag(tags, 'ModifyDate', parse_exif_datetime),
        stored(asset.file_modified_at),
    ])


def resolve_width(tags: Mapping[str, Any]) -> Optional[int]:
    return first_present([
        tag(tags, 'ExifImageWidth', parse_int),
        tag(tags, 'ImageWidth', parse_int),
    ])


def resolve_height(tags: Mapping[str, Any]) -> Optional[int]:
    return first_present([
        tag(tags, 'ExifImageHeight', parse_int),
        tag(tags, 'ImageHeight', parse_int),
    ])


def resolve_live_photo_cid(tags: Mapping[str, Any]) -> Optional[str]:
    return first_present([
        tag(tags, 'MediaGroupUUID', to_text),
        tag(tags, 'ContentIdentifier', to_text),
    ])


def build_image_record(
    asset: AssetRef,
    file_name: str,
    tags: Mapping[str, Any],
    file_size: int,
    file_created_at: Optional[datetime],
    file_modified_at: Optional[datetime],
) -> MetadataRecord:
    """Map embedded tags onto a fresh record (place and raster fields unset)."""
    return MetadataRecord(
        asset_id=asset.id,
        image_name=Path(file_name).stem,
        file_size_in_byte=file_size,
        make=first_present([tag(tags, 'Make', to_text)]),
        model=first_present([tag(tags, 'Model', to_text)]),
        lens_model=first_present([tag(tags, 'LensModel', to_text)]),
        exposure_time=first_present([tag(tags, 'ExposureTime', to_text)]),
        f_number=first_present([tag(tags, 'FNumber', parse_number)]),
        focal_length=first_present([tag(tags, 'FocalLength', parse_number)]),
        iso=first_present([tag(tags, 'ISO', parse_int)]),
        exif_image_width=resolve_width(tags),
        exif_image_height=resolve_height(tags),
        orientation=first_present([tag(tags, 'Orientation', to_text)]),
        date_time_original=file_created_at,
        modify_date=file_modified_at,
        latitude=first_present([tag(tags, 'GPSLatitude', parse_number)]),
        longitude=first_present([tag(tags, 'GPSLongitude', parse_number)]),
        live_photo_cid=resolve_live_photo_cid(tags),
    )


def apply_raster_header(record: MetadataRecord, header: RasterHeader) -> None:
    """Fill only the dimension/orientation fields that are still empty."""
    if record.exif_image_width is None:
        record.exif_image_width = header.width or None
    if record.exif_image_height is None:
        record.exif_image_height = header.height or None
    if record.orientation is None and header.orientation is not None:
        record.orientation = str(header.orientation)


def needs_raster_fallback(record: MetadataRecord) -> bool:
    return (
        record.exif_image_width is None
        or record.exif_image_height is None
        or record.orientation is None
    )


def enrich_place(record: MetadataRecord, geocoder: ReverseGeocoder) -> bool:
    """Set city/state/country when the index is ready; False if skipped."""
    if not geocoder.is_ready or not record.has_coordinates:
        return False

    place = geocoder.reverse_geocode(record.latitude, record.longitude)
    if place is None:
        return False

    record.city = place.city
    record.state = place.state
    record.country = place.country
    return True


class ImageMetadataExtractor:
    """
    Builds and persists the metadata record of one still image.

    Stages: ``tags`` (degrades), ``dates``, ``stat`` (fatal), ``live_photo``,
    ``geocode``, ``raster`` (degrades), ``persist``.
    """

    def __init__(
        self,
        assets: AssetDAL,
        exif: ExifDAL,
        geocoder: ReverseGeocoder,
        linker: LivePhotoLinker,
        tag_reader: TagReader,
        raster_decoder: RasterDecoder,
    ):
        self.assets = assets
        self.exif = exif
        self.geocoder = geocoder
        self.linker = linker
        self.tag_reader = tag_reader
        self.raster_decoder = raster_decoder

    async def read_tags(self, asset: AssetRef, result: JobResult) -> Dict[str, Any]:
        try:
            tags = await asyncio.to_thread(self.tag_reader, asset.original_path)
        except (TagReadError, ToolNotFoundError) as e:
            logger.warning(
                f"Tag read failed, continuing without tags: {{'path': {asset.original_path!r}, 'error': {e.message!r}}}"
            )
            result.degraded('tags', e)
            return {}

        result.ok('tags')
        return tags

    async def extract(self, asset: AssetRef, file_name: str) -> JobResult:
        result = JobResult(job=JOB_NAME, asset_id=asset.id)

        tags = await self.read_tags(asset, result)

        file_created_at = resolve_file_created_at(tags, asset)
        file_modified_at = resolve_file_modified_at(tags, asset)
        self.assets.save(asset.id, file_created_at=file_created_at)
        asset.file_created_at = file_created_at
        result.ok('dates')

        try:
            stat = await asyncio.to_thread(os.stat, asset.original_path)
        except OSError as e:
            logger.error(f"Cannot stat asset file: {{'path': {asset.original_path!r}, 'error': {str(e)!r}}}")
            result.failed('stat', e)
            return result
        result.ok('stat')

        record = build_image_record(
            asset, file_name, tags, stat.st_size, file_created_at, file_modified_at
        )

        if self.linker.link_image(asset, record.live_photo_cid):
            result.ok('live_photo')
        else:
            result.skipped('live_photo')

        geocoded = enrich_place(record, self.geocoder)
        if geocoded:
            result.ok('geocode')
        else:
            result.skipped('geocode')

        if needs_raster_fallback(record):
            try:
                header = await asyncio.to_thread(self.raster_decoder, asset.original_path)
            except RasterDecodeError as e:
                logger.warning(
                    f"Raster fallback failed: {{'path': {asset.original_path!r}, 'error': {e.message!r}}}"
                )
                result.degraded('raster', e)
            else:
                apply_raster_header(record, header)
                result.ok('raster')

        # Place names resolved by an earlier run survive a skipped lookup
        self.exif.upsert(record, keep=() if geocoded else PLACE_COLUMNS)
        result.ok('persist')
        return result
