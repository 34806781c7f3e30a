"""Job handlers for metadata extraction and reverse geocoding.

An external dispatcher delivers one job per asset and calls the matching
coroutine from ``MetadataExtractionProcessor.handlers()``. Handlers never
raise: every failure is logged together with the job's stage outcomes.
"""

import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable, Dict, Optional

from .common.logging import LogContext
from .config import MediaMetaConfig
from .dal.assets import AssetDAL
from .dal.exif import ExifDAL
from .database import DatabaseConnection
from .edge_cases.live_photos import LivePhotoLinker
from .geocoding.index import GeocodingIndex
from .geocoding.places import ReverseGeocoder
from .metadata.exiftool_reader import read_tags
from .metadata.ffprobe import probe_container
from .metadata.image_extractor import ImageMetadataExtractor, RasterDecoder, TagReader
from .metadata.raster import decode_raster_header
from .metadata.video_extractor import Prober, VideoMetadataExtractor
from .models import AssetJob, ReverseGeocodingJob
from .outcomes import JobResult
from .tool_checker import warn_missing_tools

logger = logging.getLogger(__name__)

EXTRACT_EXIF = 'extract-exif'
EXTRACT_VIDEO_METADATA = 'extract-video-metadata'
REVERSE_GEOCODING = 'reverse-geocoding'

Handler = Callable[..., Awaitable[None]]


class MetadataExtractionProcessor:
    """Owns the shared geocoding index and the two extractors."""

    def __init__(
        self,
        config: MediaMetaConfig,
        assets: AssetDAL,
        exif: ExifDAL,
        index: Optional[GeocodingIndex] = None,
        tag_reader: Optional[TagReader] = None,
        raster_decoder: Optional[RasterDecoder] = None,
        prober: Optional[Prober] = None,
    ):
        self.config = config
        self.assets = assets
        self.exif = exif
        self.index = index or GeocodingIndex(config.geocoding)
        self.geocoder = ReverseGeocoder(self.index)

        extraction = config.extraction
        if tag_reader is None:
            tag_reader = partial(
                read_tags,
                exiftool_path=extraction.exiftool_path,
                timeout=extraction.tool_timeout_seconds,
            )
        if prober is None:
            prober = partial(
                probe_container,
                ffprobe_path=extraction.ffprobe_path,
                timeout=extraction.tool_timeout_seconds,
            )

        linker = LivePhotoLinker(assets)
        self.image_extractor = ImageMetadataExtractor(
            assets, exif, self.geocoder, linker, tag_reader,
            raster_decoder or decode_raster_header,
        )
        self.video_extractor = VideoMetadataExtractor(
            assets, exif, self.geocoder, linker, tag_reader, prober,
        )
        self._video_slots = asyncio.Semaphore(extraction.video_concurrency)

    @classmethod
    def from_config(cls, config: MediaMetaConfig, db: DatabaseConnection) -> "MetadataExtractionProcessor":
        """Build a processor on real tools, warning about any that are missing."""
        warn_missing_tools(config.extraction.exiftool_path, config.extraction.ffprobe_path)
        return cls(config, AssetDAL(db), ExifDAL(db))

    def start(self) -> asyncio.Task:
        """Begin loading the geocoding index in the background."""
        return self.index.start()

    async def _run(self, job_name: str, asset_id: str, work: Callable[[], Awaitable[JobResult]]) -> None:
        with LogContext(logger, job=job_name, asset_id=asset_id):
            try:
                result = await work()
            except Exception as e:
                logger.exception(f"Metadata job crashed: {{'job': {job_name!r}, 'asset_id': {asset_id!r}}}")
                result = JobResult(job=job_name, asset_id=asset_id)
                result.failed('job', e)
            result.log(logger)

    async def extract_exif_info(self, job: AssetJob) -> None:
        await self._run(
            EXTRACT_EXIF,
            job.asset.id,
            lambda: self.image_extractor.extract(job.asset, job.file_name),
        )

    async def extract_video_metadata(self, job: AssetJob) -> None:
        async def work() -> JobResult:
            async with self._video_slots:
                return await self.video_extractor.extract(job.asset, job.file_name)

        await self._run(EXTRACT_VIDEO_METADATA, job.asset.id, work)

    async def _reverse_geocode(self, job: ReverseGeocodingJob) -> JobResult:
        result = JobResult(job=REVERSE_GEOCODING, asset_id=job.asset_id)

        place = self.geocoder.reverse_geocode(job.latitude, job.longitude)
        if place is None:
            result.skipped('geocode', 'index not ready')
            return result
        result.ok('geocode')

        updated = self.exif.update_place(job.asset_id, place.city, place.state, place.country)
        if updated:
            result.ok('persist')
        else:
            result.skipped('persist', 'no metadata record')
        return result

    async def reverse_geocoding(self, job: ReverseGeocodingJob) -> None:
        await self._run(REVERSE_GEOCODING, job.asset_id, lambda: self._reverse_geocode(job))

    def handlers(self) -> Dict[str, Handler]:
        """Job name to handler mapping for the dispatcher."""
        return {
            EXTRACT_EXIF: self.extract_exif_info,
            EXTRACT_VIDEO_METADATA: self.extract_video_metadata,
            REVERSE_GEOCODING: self.reverse_geocoding,
        }
