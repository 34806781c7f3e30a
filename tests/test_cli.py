"""Tests for the command line entry point."""

import json
import logging
from pathlib import Path

import pytest
from PIL import Image

from mediameta.cli import (
    build_parser,
    extract_command,
    infer_asset_type,
    init_db_command,
    main,
    open_database,
    register_asset,
    reverse_geocode_command,
)
from mediameta.config import DatabaseConfig, ExtractionConfig, GeocodingConfig, MediaMetaConfig
from mediameta.dal.exif import ExifDAL
from mediameta.models import AssetType, MetadataRecord


@pytest.fixture
def cli_config(tmp_path, gazetteer_dir):
    return MediaMetaConfig(
        database=DatabaseConfig(path=str(tmp_path / "cli" / "mediameta.db")),
        geocoding=GeocodingConfig(dump_directory=str(gazetteer_dir)),
        extraction=ExtractionConfig(
            exiftool_path=str(tmp_path / "no-exiftool"),
            ffprobe_path=str(tmp_path / "no-ffprobe"),
        ),
    )


@pytest.mark.parametrize("name,expected", [
    ("IMG_0001.JPG", AssetType.IMAGE),
    ("IMG_0001.HEIC", AssetType.IMAGE),
    ("IMG_0001.MOV", AssetType.VIDEO),
    ("clip.mp4", AssetType.VIDEO),
])
def test_infer_asset_type(name, expected):
    assert infer_asset_type(Path(name)) is expected


def test_parser_extract_arguments():
    args = build_parser().parse_args(["extract", "photo.jpg", "--type", "video", "--wait-geocoder", "0"])

    assert args.command == "extract"
    assert args.path == Path("photo.jpg")
    assert args.type == "video"
    assert args.wait_geocoder == 0.0


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_register_asset_is_idempotent(assets, tmp_path):
    path = tmp_path / "clip.mov"
    path.write_bytes(b"\x00")

    first = register_asset(assets, path, None, None)
    second = register_asset(assets, path, None, None)

    assert first.type is AssetType.VIDEO
    assert second.id == first.id
    assert first.file_created_at.tzinfo is not None


def test_init_db_command(cli_config):
    assert init_db_command(cli_config) == 0
    assert cli_config.database.resolved_path.exists()


@pytest.mark.asyncio
async def test_extract_without_tools_uses_raster_header(cli_config, tmp_path, capsys):
    image_path = tmp_path / "IMG_0042.png"
    Image.new("RGB", (64, 48), color="white").save(image_path)

    exit_code = await extract_command(cli_config, image_path, wait_geocoder=5)

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["asset"]["type"] == "IMAGE"
    assert output["metadata"]["image_name"] == "IMG_0042"
    assert output["metadata"]["exif_image_width"] == 64
    assert output["metadata"]["exif_image_height"] == 48
    assert output["metadata"]["make"] is None


@pytest.mark.asyncio
async def test_extract_missing_file(cli_config, tmp_path):
    assert await extract_command(cli_config, tmp_path / "missing.jpg", wait_geocoder=0) == 1


@pytest.mark.asyncio
async def test_reverse_geocode_command(cli_config, tmp_path, capsys):
    image_path = tmp_path / "IMG_0043.png"
    Image.new("RGB", (8, 8)).save(image_path)
    await extract_command(cli_config, image_path, asset_id="a1", wait_geocoder=5)
    capsys.readouterr()

    db = open_database(cli_config)
    try:
        exif = ExifDAL(db)
        record = exif.get("a1")
        exif.upsert(MetadataRecord(**{**record.to_dict(), "latitude": 48.86, "longitude": 2.35}))
    finally:
        db.close()

    exit_code = await reverse_geocode_command(cli_config, "a1")

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["metadata"]["city"] == "Paris"
    assert output["metadata"]["country"] == "France"


@pytest.mark.asyncio
async def test_reverse_geocode_without_coordinates(cli_config):
    assert await reverse_geocode_command(cli_config, "unknown") == 1


def test_main_missing_config_file(tmp_path, capsys):
    exit_code = main(["--config", str(tmp_path / "missing.toml"), "init-db"])

    assert exit_code == 1
    assert "Configuration error" in capsys.readouterr().err


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_main_init_db(tmp_path, monkeypatch, restore_root_logging):
    monkeypatch.chdir(tmp_path)
    config_file = tmp_path / "config.toml"
    config_file.write_text('[logging]\nlevel = "WARNING"\nformat = "simple"\n', encoding="utf-8")
    db_path = tmp_path / "main" / "mediameta.db"

    exit_code = main(["--config", str(config_file), "--database-path", str(db_path), "init-db"])

    assert exit_code == 0
    assert db_path.exists()
