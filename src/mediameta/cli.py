"""Command line entry point: initialize the database and run single jobs."""

import argparse
import asyncio
import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .common import ConfigLoader, MediaMetaError, setup_logging
from .config import APP_NAME, MediaMetaConfig
from .dal.assets import AssetDAL
from .dal.exif import ExifDAL
from .database import DatabaseConnection
from .migrations import MigrationRunner
from .models import AssetJob, AssetRef, AssetType, ReverseGeocodingJob
from .processor import MetadataExtractionProcessor

logger = logging.getLogger(__package__ or __name__)

VIDEO_EXTENSIONS = frozenset({
    '.mov', '.mp4', '.m4v', '.3gp', '.avi', '.mkv', '.webm', '.mts', '.m2ts', '.wmv', '.mpg', '.mpeg',
})


def infer_asset_type(path: Path) -> AssetType:
    """Guess the asset type from the file extension."""
    return AssetType.VIDEO if path.suffix.lower() in VIDEO_EXTENSIONS else AssetType.IMAGE


def open_database(config: MediaMetaConfig) -> DatabaseConnection:
    """Connect and bring the schema up to date."""
    db = DatabaseConnection(config.database.resolved_path)
    db.connect()
    MigrationRunner(db).apply_migrations()
    return db


def register_asset(
    assets: AssetDAL,
    path: Path,
    asset_type: Optional[AssetType],
    asset_id: Optional[str],
) -> AssetRef:
    """Return the stored asset for ``path``, inserting it when unknown."""
    existing = assets.get_asset(asset_id) if asset_id else assets.get_asset_by_path(str(path))
    if existing is not None:
        return existing

    stat = path.stat()
    asset = AssetRef(
        id=asset_id or str(uuid.uuid4()),
        type=asset_type or infer_asset_type(path),
        original_path=str(path),
        file_created_at=datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
        file_modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )
    assets.insert_asset(asset)
    logger.info(f"Registered asset: {{'asset_id': {asset.id!r}, 'type': {asset.type.value!r}, 'path': {str(path)!r}}}")
    return asset


def print_asset(assets: AssetDAL, exif: ExifDAL, asset_id: str) -> bool:
    """Print the stored asset and its metadata record as JSON."""
    asset = assets.get_asset(asset_id)
    record = exif.get(asset_id)
    output = {
        'asset': assets.to_dict(asset) if asset else None,
        'metadata': record.to_dict() if record else None,
    }
    print(json.dumps(output, indent=2, default=str))
    return record is not None


async def _wait_for_geocoder(processor: MetadataExtractionProcessor, seconds: float) -> None:
    task = processor.start()
    if seconds <= 0:
        return
    try:
        await asyncio.wait_for(asyncio.shield(task), timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning(f"Geocoder not ready, extracting without places: {{'waited_seconds': {seconds}}}")


async def extract_command(
    config: MediaMetaConfig,
    path: Path,
    asset_type: Optional[AssetType] = None,
    asset_id: Optional[str] = None,
    wait_geocoder: float = 60.0,
) -> int:
    """Run the extraction job matching the asset type for one file."""
    if not path.is_file():
        logger.error(f"File does not exist: {{'path': {str(path)!r}}}")
        return 1

    db = open_database(config)
    try:
        assets = AssetDAL(db)
        exif = ExifDAL(db)
        asset = register_asset(assets, path.resolve(), asset_type, asset_id)

        processor = MetadataExtractionProcessor.from_config(config, db)
        await _wait_for_geocoder(processor, wait_geocoder)

        job = AssetJob(asset=asset, file_name=path.name)
        if asset.type is AssetType.VIDEO:
            await processor.extract_video_metadata(job)
        else:
            await processor.extract_exif_info(job)

        return 0 if print_asset(assets, exif, asset.id) else 1
    finally:
        db.close()


async def reverse_geocode_command(config: MediaMetaConfig, asset_id: str) -> int:
    """Re-resolve the place fields of a stored record from its coordinates."""
    db = open_database(config)
    try:
        assets = AssetDAL(db)
        exif = ExifDAL(db)
        record = exif.get(asset_id)
        if record is None or not record.has_coordinates:
            logger.error(f"No coordinates stored for asset: {{'asset_id': {asset_id!r}}}")
            return 1

        processor = MetadataExtractionProcessor.from_config(config, db)
        await processor.index.initialize()
        if not processor.index.is_ready:
            logger.error("Reverse geocoding unavailable: {'reason': 'index not loaded'}")
            return 1

        await processor.reverse_geocoding(
            ReverseGeocodingJob(asset_id=asset_id, latitude=record.latitude, longitude=record.longitude)
        )
        print_asset(assets, exif, asset_id)
        return 0
    finally:
        db.close()


def init_db_command(config: MediaMetaConfig) -> int:
    db = open_database(config)
    try:
        version = MigrationRunner(db).get_current_version()
    finally:
        db.close()
    logger.info(f"Database ready: {{'path': {str(config.database.resolved_path)!r}, 'schema_version': {version}}}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Extract and normalize photo and video metadata"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (defaults.toml)"
    )
    parser.add_argument(
        "--database-path",
        type=Path,
        help="Path to SQLite database file (overrides config)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create or upgrade the database schema")

    extract = subparsers.add_parser("extract", help="Extract metadata for one file")
    extract.add_argument("path", type=Path, help="Media file to extract")
    extract.add_argument(
        "--type",
        choices=[t.value.lower() for t in AssetType],
        help="Asset type (default: inferred from the file extension)"
    )
    extract.add_argument("--asset-id", help="Asset id (default: looked up by path, or generated)")
    extract.add_argument(
        "--wait-geocoder",
        type=float,
        default=60.0,
        metavar="SECONDS",
        help="How long to wait for the gazetteer to load before extracting (default: 60)"
    )

    reverse = subparsers.add_parser("reverse-geocode", help="Re-resolve place names of a stored asset")
    reverse.add_argument("asset_id", help="Asset id")

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = ConfigLoader(MediaMetaConfig, app_name=APP_NAME).load(defaults_path=args.config)
    except MediaMetaError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1

    if args.database_path:
        config.database.path = str(args.database_path)

    setup_logging(
        level=config.logging.level,
        format=config.logging.format,
        log_file=config.logging.file_path,
    )

    try:
        if args.command == "init-db":
            return init_db_command(config)
        if args.command == "extract":
            asset_type = AssetType(args.type.upper()) if args.type else None
            return asyncio.run(
                extract_command(config, args.path, asset_type, args.asset_id, args.wait_geocoder)
            )
        if args.command == "reverse-geocode":
            return asyncio.run(reverse_geocode_command(config, args.asset_id))
    except Exception as e:
        logger.exception(f"Command failed: {{'command': {args.command!r}, 'error': {str(e)!r}}}")
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
