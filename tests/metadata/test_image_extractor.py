"""Tests for still-image metadata extraction."""

import os
from datetime import datetime, timezone

import pytest

from mediameta.common.errors import RasterDecodeError, TagReadError, ToolNotFoundError
from mediameta.edge_cases.live_photos import LivePhotoLinker
from mediameta.metadata.image_extractor import (
    ImageMetadataExtractor,
    resolve_file_created_at,
    resolve_height,
    resolve_live_photo_cid,
    resolve_width,
)
from mediameta.metadata.raster import decode_raster_header
from mediameta.models import AssetRef, AssetType, MetadataRecord
from mediameta.outcomes import StageStatus

FULL_TAGS = {
    "DateTimeOriginal": "2023:07:01 12:30:00",
    "CreateDate": "2023:07:01 12:31:00",
    "ModifyDate": "2023:07:02 08:00:00",
    "Make": "Apple",
    "Model": "iPhone 14 Pro",
    "LensModel": "iPhone 14 Pro back triple camera 6.86mm f/1.78",
    "ExposureTime": "1/120",
    "FNumber": 1.78,
    "FocalLength": "6.86 mm",
    "ISO": 64,
    "Orientation": 6,
    "ExifImageWidth": 4032,
    "ExifImageHeight": 3024,
    "GPSLatitude": 34.0522,
    "GPSLongitude": -118.2437,
}


@pytest.fixture
def build(assets, exif, cold_geocoder, fakes):
    def _build(tags=None, tag_error=None, decoder=None, geocoder=None):
        reader = fakes.TagReader(tags=tags, error=tag_error)
        decoder = decoder or fakes.RasterDecoder()
        extractor = ImageMetadataExtractor(
            assets, exif, geocoder or cold_geocoder, LivePhotoLinker(assets), reader, decoder
        )
        return extractor, reader, decoder

    return _build


def asset_ref(**fields):
    defaults = dict(id="a1", type=AssetType.IMAGE, original_path="/a.jpg")
    defaults.update(fields)
    return AssetRef(**defaults)


class TestResolvers:
    def test_date_time_original_first(self):
        assert resolve_file_created_at(FULL_TAGS, asset_ref()) == datetime(2023, 7, 1, 12, 30)

    def test_create_date_second(self):
        tags = {"CreateDate": "2022:01:01 00:00:00"}
        assert resolve_file_created_at(tags, asset_ref()) == datetime(2022, 1, 1)

    def test_unparseable_date_counts_as_absent(self):
        tags = {"DateTimeOriginal": "0000:00:00 00:00:00", "CreateDate": "2022:01:01 00:00:00"}
        assert resolve_file_created_at(tags, asset_ref()) == datetime(2022, 1, 1)

    def test_stored_value_last(self):
        stored = datetime(2019, 5, 5, tzinfo=timezone.utc)
        assert resolve_file_created_at({}, asset_ref(file_created_at=stored)) == stored

    def test_nothing_available(self):
        assert resolve_file_created_at({"DateTimeOriginal": ""}, asset_ref()) is None

    def test_dimensions_prefer_exif_tags(self):
        tags = {"ExifImageWidth": 4032, "ImageWidth": 100, "ImageHeight": 50}
        assert resolve_width(tags) == 4032
        assert resolve_height(tags) == 50

    def test_live_photo_cid(self):
        assert resolve_live_photo_cid({"MediaGroupUUID": "M", "ContentIdentifier": "C"}) == "M"
        assert resolve_live_photo_cid({"MediaGroupUUID": "", "ContentIdentifier": "C"}) == "C"
        assert resolve_live_photo_cid({}) is None


class TestImageExtraction:
    @pytest.mark.asyncio
    async def test_full_record(self, build, make_asset, exif, assets):
        asset = make_asset("img-1", name="IMG_0001.HEIC", content=b"x" * 2048)
        extractor, _, decoder = build(tags={asset.original_path: FULL_TAGS})

        result = await extractor.extract(asset, "IMG_0001.HEIC")

        assert result.status is StageStatus.OK
        record = exif.get("img-1")
        assert record.image_name == "IMG_0001"
        assert record.file_size_in_byte == 2048
        assert record.make == "Apple"
        assert record.model == "iPhone 14 Pro"
        assert record.exposure_time == "1/120"
        assert record.f_number == 1.78
        assert record.focal_length == 6.86
        assert record.iso == 64
        assert record.orientation == "6"
        assert (record.exif_image_width, record.exif_image_height) == (4032, 3024)
        assert record.date_time_original == datetime(2023, 7, 1, 12, 30)
        assert record.modify_date == datetime(2023, 7, 2, 8, 0)
        assert (record.latitude, record.longitude) == (34.0522, -118.2437)
        assert decoder.calls == []

        assert assets.get_asset("img-1").file_created_at == datetime(2023, 7, 1, 12, 30)

    @pytest.mark.asyncio
    async def test_stored_dates_used_without_tags(self, build, make_asset, exif, assets):
        asset = make_asset("img-2")
        extractor, _, _ = build(tags={})

        await extractor.extract(asset, "img-2.jpg")

        record = exif.get("img-2")
        assert record.date_time_original == datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert record.modify_date == datetime(2020, 1, 2, tzinfo=timezone.utc)
        assert assets.get_asset("img-2").file_created_at == datetime(2020, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_raster_fallback_fills_only_missing(self, build, make_asset, exif, fakes):
        asset = make_asset("img-3")
        decoder = fakes.RasterDecoder()
        tags = {"ExifImageWidth": 800, "Orientation": 1}
        extractor, _, _ = build(tags={asset.original_path: tags}, decoder=decoder)

        result = await extractor.extract(asset, "img-3.jpg")

        record = exif.get("img-3")
        assert decoder.calls == [asset.original_path]
        assert record.exif_image_width == 800
        assert record.exif_image_height == 3024
        assert record.orientation == "1"
        assert result.outcome("raster").status is StageStatus.OK

    @pytest.mark.asyncio
    async def test_raster_failure_degrades(self, build, make_asset, exif, fakes):
        asset = make_asset("img-4")
        decoder = fakes.RasterDecoder(error=RasterDecodeError("corrupt"))
        extractor, _, _ = build(tags={}, decoder=decoder)

        result = await extractor.extract(asset, "img-4.jpg")

        record = exif.get("img-4")
        assert record is not None
        assert record.exif_image_width is None
        assert record.exif_image_height is None
        assert record.orientation is None
        assert result.status is StageStatus.DEGRADED
        assert result.outcome("raster").error_category == "raster"

    @pytest.mark.asyncio
    async def test_oversized_image_degrades(self, build, make_asset, exif, oversized_png):
        asset = make_asset("img-big", name="panorama.png")
        oversized_png("panorama.png")
        extractor, _, _ = build(tags={}, decoder=decode_raster_header)

        result = await extractor.extract(asset, "panorama.png")

        record = exif.get("img-big")
        assert record is not None
        assert record.exif_image_width is None
        assert result.outcome("raster").status is StageStatus.DEGRADED
        assert result.status is StageStatus.DEGRADED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [TagReadError("unreadable"), ToolNotFoundError("no exiftool")])
    async def test_tag_read_failure_degrades(self, build, make_asset, exif, error):
        asset = make_asset("img-5", content=b"y" * 10)
        extractor, _, _ = build(tag_error=error)

        result = await extractor.extract(asset, "img-5.jpg")

        record = exif.get("img-5")
        assert record.file_size_in_byte == 10
        assert record.make is None
        assert record.exif_image_width == 4032  # from the raster header
        assert result.outcome("tags").status is StageStatus.DEGRADED
        assert result.status is StageStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_stat_failure_aborts_after_saving_date(self, build, make_asset, exif, assets):
        asset = make_asset("img-6")
        os.remove(asset.original_path)
        extractor, _, _ = build(tags={asset.original_path: {"DateTimeOriginal": "2021:03:03 03:03:03"}})

        result = await extractor.extract(asset, "img-6.jpg")

        assert result.status is StageStatus.FAILED
        assert result.outcome("stat").error_category == "io"
        assert exif.get("img-6") is None
        assert assets.get_asset("img-6").file_created_at == datetime(2021, 3, 3, 3, 3, 3)

    @pytest.mark.asyncio
    async def test_rerun_keeps_single_row(self, build, make_asset, exif):
        asset = make_asset("img-7")
        extractor, _, _ = build(tags={asset.original_path: FULL_TAGS})

        await extractor.extract(asset, "img-7.jpg")
        await extractor.extract(asset, "img-7.jpg")

        assert exif.count() == 1

    @pytest.mark.asyncio
    async def test_place_enrichment_when_ready(self, build, make_asset, exif, ready_geocoder):
        asset = make_asset("img-8")
        extractor, _, _ = build(tags={asset.original_path: FULL_TAGS}, geocoder=ready_geocoder)

        await extractor.extract(asset, "img-8.jpg")

        record = exif.get("img-8")
        assert record.city == "Los Angeles"
        assert record.state == "Los Angeles County, California"
        assert record.country == "United States of America"

    @pytest.mark.asyncio
    async def test_no_place_when_index_not_ready(self, build, make_asset, exif):
        asset = make_asset("img-9")
        extractor, _, _ = build(tags={asset.original_path: FULL_TAGS})

        result = await extractor.extract(asset, "img-9.jpg")

        record = exif.get("img-9")
        assert record.latitude == 34.0522
        assert record.city is None
        assert record.state is None
        assert record.country is None
        assert result.outcome("geocode").status is StageStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_cold_rerun_keeps_resolved_place(self, build, make_asset, exif, ready_geocoder):
        asset = make_asset("img-11")
        tags = {asset.original_path: FULL_TAGS}
        warm, _, _ = build(tags=tags, geocoder=ready_geocoder)
        cold, _, _ = build(tags=tags)

        await warm.extract(asset, "img-11.jpg")
        result = await cold.extract(asset, "img-11.jpg")

        record = exif.get("img-11")
        assert result.outcome("geocode").status is StageStatus.SKIPPED
        assert record.city == "Los Angeles"
        assert record.state == "Los Angeles County, California"
        assert record.country == "United States of America"
        assert record.make == "Apple"

    @pytest.mark.asyncio
    async def test_cold_rerun_keeps_reverse_geocoded_place(self, build, make_asset, exif):
        asset = make_asset("img-12")
        extractor, _, _ = build(tags={asset.original_path: FULL_TAGS})
        await extractor.extract(asset, "img-12.jpg")
        exif.update_place("img-12", "Paris", "Paris, Île-de-France", "France")

        await extractor.extract(asset, "img-12.jpg")

        record = exif.get("img-12")
        assert (record.city, record.state, record.country) == ("Paris", "Paris, Île-de-France", "France")

    @pytest.mark.asyncio
    async def test_no_place_without_both_coordinates(self, build, make_asset, exif, ready_geocoder):
        asset = make_asset("img-10")
        tags = {"GPSLatitude": 34.0522}
        extractor, _, _ = build(tags={asset.original_path: tags}, geocoder=ready_geocoder)

        await extractor.extract(asset, "img-10.jpg")

        assert exif.get("img-10").city is None


class TestImageLivePhotoPairing:
    @pytest.mark.asyncio
    async def test_links_to_existing_video(self, build, make_asset, exif, assets):
        video = make_asset("vid-1", AssetType.VIDEO)
        exif.upsert(MetadataRecord(asset_id="vid-1", live_photo_cid="CID-1"))
        image = make_asset("img-1")
        extractor, _, _ = build(tags={image.original_path: {"MediaGroupUUID": "CID-1"}})

        result = await extractor.extract(image, "img-1.jpg")

        assert assets.get_asset("img-1").live_photo_video_id == "vid-1"
        assert assets.get_asset("vid-1").is_visible is False
        assert exif.get("img-1").live_photo_cid == "CID-1"
        assert result.outcome("live_photo").status is StageStatus.OK
        assert video.id == "vid-1"

    @pytest.mark.asyncio
    async def test_already_linked_image_is_left_alone(self, build, make_asset, exif, assets):
        make_asset("vid-2", AssetType.VIDEO)
        exif.upsert(MetadataRecord(asset_id="vid-2", live_photo_cid="CID-2"))
        image = make_asset("img-2", live_photo_video_id="vid-other")
        extractor, _, _ = build(tags={image.original_path: {"MediaGroupUUID": "CID-2"}})

        await extractor.extract(image, "img-2.jpg")

        assert assets.get_asset("img-2").live_photo_video_id == "vid-other"
        assert assets.get_asset("vid-2").is_visible is True

    @pytest.mark.asyncio
    async def test_no_match_yet(self, build, make_asset, assets):
        image = make_asset("img-3")
        extractor, _, _ = build(tags={image.original_path: {"ContentIdentifier": "LONELY"}})

        result = await extractor.extract(image, "img-3.jpg")

        assert assets.get_asset("img-3").live_photo_video_id is None
        assert result.outcome("live_photo").status is StageStatus.SKIPPED
