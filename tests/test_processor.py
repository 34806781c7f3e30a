"""Tests for the job handlers."""

import asyncio
import logging
import threading
import time

import pytest

from mediameta.config import ExtractionConfig, GeocodingConfig, MediaMetaConfig
from mediameta.models import AssetJob, AssetType, MetadataRecord, ReverseGeocodingJob
from mediameta.processor import (
    EXTRACT_EXIF,
    EXTRACT_VIDEO_METADATA,
    REVERSE_GEOCODING,
    MetadataExtractionProcessor,
)


@pytest.fixture
def build(assets, exif, geocoding_config, fakes):
    def _build(index=None, tags=None, tag_error=None, prober=None, video_concurrency=2):
        config = MediaMetaConfig(
            geocoding=geocoding_config,
            extraction=ExtractionConfig(video_concurrency=video_concurrency),
        )
        return MetadataExtractionProcessor(
            config,
            assets,
            exif,
            index=index,
            tag_reader=fakes.TagReader(tags=tags, error=tag_error),
            raster_decoder=fakes.RasterDecoder(),
            prober=prober or fakes.Prober(),
        )

    return _build


def test_handlers_cover_every_job(build):
    processor = build()

    handlers = processor.handlers()

    assert set(handlers) == {EXTRACT_EXIF, EXTRACT_VIDEO_METADATA, REVERSE_GEOCODING}
    assert handlers[EXTRACT_EXIF] == processor.extract_exif_info


@pytest.mark.asyncio
async def test_extract_exif_persists_record(build, make_asset, exif, caplog):
    asset = make_asset("a1", name="IMG_0001.JPG")
    processor = build(tags={asset.original_path: {"Make": "Apple", "ISO": 64}})

    with caplog.at_level(logging.INFO, logger="mediameta.processor"):
        await processor.extract_exif_info(AssetJob(asset=asset, file_name="IMG_0001.JPG"))

    record = exif.get("a1")
    assert record.make == "Apple"
    assert record.image_name == "IMG_0001"
    assert any("Metadata job completed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_unexpected_error_is_logged_not_raised(build, make_asset, exif, caplog):
    asset = make_asset("a1")
    processor = build(tag_error=RuntimeError("boom"))

    with caplog.at_level(logging.ERROR, logger="mediameta.processor"):
        await processor.extract_exif_info(AssetJob(asset=asset, file_name="a1.jpg"))

    assert exif.get("a1") is None
    messages = [r.getMessage() for r in caplog.records]
    assert any("Metadata job crashed" in m for m in messages)
    assert any("Metadata job failed" in m and "'job': 'failed'" in m for m in messages)


@pytest.mark.asyncio
async def test_hidden_video_is_skipped(build, make_asset, exif, fakes):
    prober = fakes.Prober()
    asset = make_asset("v1", AssetType.VIDEO, is_visible=False)
    processor = build(prober=prober)

    await processor.extract_video_metadata(AssetJob(asset=asset, file_name="v1.mov"))

    assert prober.calls == []
    assert exif.get("v1") is None


@pytest.mark.asyncio
async def test_video_jobs_respect_concurrency_limit(build, make_asset, fakes):
    active = 0
    peak = 0
    lock = threading.Lock()
    result = fakes.probe()

    def slow_prober(path):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.05)
        with lock:
            active -= 1
        return result

    processor = build(prober=slow_prober, video_concurrency=1)
    jobs = [
        AssetJob(asset=make_asset(f"v{i}", AssetType.VIDEO), file_name=f"v{i}.mov")
        for i in range(3)
    ]

    await asyncio.gather(*(processor.extract_video_metadata(job) for job in jobs))

    assert peak == 1


class TestReverseGeocodingJob:
    @pytest.mark.asyncio
    async def test_updates_place_fields(self, build, ready_index, make_asset, exif):
        make_asset("a1")
        exif.upsert(MetadataRecord(asset_id="a1", make="Canon", latitude=48.86, longitude=2.35))
        processor = build(index=ready_index)

        await processor.reverse_geocoding(ReverseGeocodingJob(asset_id="a1", latitude=48.86, longitude=2.35))

        record = exif.get("a1")
        assert record.city == "Paris"
        assert record.state == "Paris, Île-de-France"
        assert record.country == "France"
        assert record.make == "Canon"

    @pytest.mark.asyncio
    async def test_not_ready_leaves_record_alone(self, build, make_asset, exif, caplog):
        make_asset("a1")
        exif.upsert(MetadataRecord(asset_id="a1", latitude=48.86, longitude=2.35))
        processor = build()

        with caplog.at_level(logging.INFO, logger="mediameta.processor"):
            await processor.reverse_geocoding(
                ReverseGeocodingJob(asset_id="a1", latitude=48.86, longitude=2.35)
            )

        assert exif.get("a1").city is None
        assert any("'geocode': 'skipped'" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_missing_record(self, build, ready_index, exif):
        processor = build(index=ready_index)

        await processor.reverse_geocoding(ReverseGeocodingJob(asset_id="ghost", latitude=48.86, longitude=2.35))

        assert exif.count() == 0


@pytest.mark.asyncio
async def test_start_warms_up_index(build):
    processor = build()

    await processor.start()

    assert processor.index.is_ready is True
    assert processor.geocoder.is_ready is True


@pytest.mark.asyncio
async def test_disabled_geocoding(assets, exif, gazetteer_dir):
    config = MediaMetaConfig(geocoding=GeocodingConfig(disabled=True, dump_directory=str(gazetteer_dir)))
    processor = MetadataExtractionProcessor(config, assets, exif)

    await processor.start()

    assert processor.index.is_ready is False
