"""Metadata extraction for videos."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from ..common.errors import ProbeError, TagReadError, ToolNotFoundError
from ..dal.assets import AssetDAL
from ..dal.exif import ExifDAL
from ..edge_cases.live_photos import LivePhotoLinker
from ..geocoding.places import ReverseGeocoder
from ..models import AssetRef, MetadataRecord
from ..outcomes import JobResult
from .fallback import first_present, stored, tag
from .ffprobe import ProbeResult, ProbeStream
from .image_extractor import TagReader, enrich_place
from .location import parse_container_location
from .normalize import format_duration, parse_container_datetime, parse_frame_rate, to_text

logger = logging.getLogger(__name__)

Prober = Callable[[str], ProbeResult]

JOB_NAME = 'extract-video-metadata'

APPLE_CREATION_DATE_TAG = 'com.apple.quicktime.creationdate'
CREATION_TIME_TAG = 'creation_time'


def resolve_video_created_at(
    container_tags: Mapping[str, Any], asset: AssetRef
) -> Optional[datetime]:
    return first_present([
        tag(container_tags, APPLE_CREATION_DATE_TAG, parse_container_datetime),
        tag(container_tags, CREATION_TIME_TAG, parse_container_datetime),
        stored(asset.file_created_at),
    ])


def resolve_duration(probe: ProbeResult, asset: AssetRef) -> Optional[str]:
    """Formatted container duration, else the asset's stored string unchanged."""
    if probe.format.duration is not None and probe.format.duration >= 0:
        return format_duration(probe.format.duration)
    return asset.duration


def scan_streams(record: MetadataRecord, streams: Iterable[ProbeStream]) -> None:
    """
    Copy dimensions, rotation and frame rate from video streams.

    Every stream overwrites the previous one, so the last one wins;
    fps only changes when a stream carries a well-formed rate.
    """
    for stream in streams:
        record.exif_image_width = stream.width or None
        record.exif_image_height = stream.height or None
        record.orientation = str(stream.rotation) if stream.rotation is not None else None

        fps = parse_frame_rate(stream.r_frame_rate)
        if fps is not None:
            record.fps = fps


class VideoMetadataExtractor:
    """
    Builds and persists the metadata record of one video.

    Stages: ``visibility``, ``probe`` (fatal), ``tags`` (degrades),
    ``live_photo``, ``location``, ``geocode``, ``persist``.
    """

    def __init__(
        self,
        assets: AssetDAL,
        exif: ExifDAL,
        geocoder: ReverseGeocoder,
        linker: LivePhotoLinker,
        tag_reader: TagReader,
        prober: Prober,
    ):
        self.assets = assets
        self.exif = exif
        self.geocoder = geocoder
        self.linker = linker
        self.tag_reader = tag_reader
        self.prober = prober

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

        # Hidden videos are the motion half of an already linked Live Photo
        if not asset.is_visible:
            result.skipped('visibility', 'asset is hidden')
            return result

        try:
            probe = await asyncio.to_thread(self.prober, asset.original_path)
        except (ProbeError, ToolNotFoundError) as e:
            logger.error(
                f"Container probe failed: {{'path': {asset.original_path!r}, 'error': {e.message!r}}}"
            )
            result.failed('probe', e)
            return result
        result.ok('probe')

        duration = resolve_duration(probe, asset)
        file_created_at = resolve_video_created_at(probe.format.tags, asset)

        tags = await self.read_tags(asset, result)

        record = MetadataRecord(
            asset_id=asset.id,
            description='',
            image_name=Path(file_name).stem or None,
            file_size_in_byte=probe.format.size,
            date_time_original=file_created_at,
            modify_date=None,
            live_photo_cid=first_present([tag(tags, 'ContentIdentifier', to_text)]),
        )

        if self.linker.link_video(asset, record.live_photo_cid):
            result.ok('live_photo')
        else:
            result.skipped('live_photo')

        coordinates = parse_container_location(probe.format.tags)
        if coordinates is not None:
            record.latitude = coordinates.latitude
            record.longitude = coordinates.longitude
            result.ok('location')
        else:
            result.skipped('location')

        if enrich_place(record, self.geocoder):
            result.ok('geocode')
        else:
            result.skipped('geocode')

        scan_streams(record, probe.video_streams)

        self.exif.upsert(record)
        self.assets.save(asset.id, duration=duration, file_created_at=file_created_at)
        asset.duration = duration
        asset.file_created_at = file_created_at
        result.ok('persist')
        return result
