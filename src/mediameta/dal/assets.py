"""Data Access Layer for the assets table."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..database import DatabaseConnection
from ..models import AssetRef, AssetType

logger = logging.getLogger(__name__)

# Columns this package is allowed to write through save()
WRITABLE_FIELDS = frozenset({
    'is_visible',
    'live_photo_video_id',
    'file_created_at',
    'file_modified_at',
    'duration',
})


def _to_db(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_asset(row) -> AssetRef:
    return AssetRef(
        id=row['id'],
        type=AssetType(row['type']),
        original_path=row['original_path'],
        is_visible=bool(row['is_visible']),
        file_created_at=_parse_timestamp(row['file_created_at']),
        file_modified_at=_parse_timestamp(row['file_modified_at']),
        duration=row['duration'],
        live_photo_video_id=row['live_photo_video_id'],
    )


class AssetDAL:
    """
    Asset access used by the extractors.

    Every write is committed on its own: the extractors never group an
    asset save, a metadata upsert and pairing writes into one transaction.
    """

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def insert_asset(self, asset: AssetRef) -> str:
        """Insert a new asset row (ingestion normally owns this)."""
        cursor = self.db.execute(
            """
            INSERT INTO assets (
                id, type, original_path, is_visible,
                file_created_at, file_modified_at, duration, live_photo_video_id
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                asset.id,
                asset.type.value,
                asset.original_path,
                int(asset.is_visible),
                _to_db(asset.file_created_at),
                _to_db(asset.file_modified_at),
                asset.duration,
                asset.live_photo_video_id,
            )
        )
        cursor.close()
        self.db.commit()
        logger.debug(f"Inserted asset: {{'asset_id': {asset.id!r}, 'type': {asset.type.value!r}}}")
        return asset.id

    def get_asset(self, asset_id: str) -> Optional[AssetRef]:
        cursor = self.db.execute("SELECT * FROM assets WHERE id = ?", (asset_id,))
        row = cursor.fetchone()
        cursor.close()
        return _row_to_asset(row) if row else None

    def get_asset_by_path(self, original_path: str) -> Optional[AssetRef]:
        cursor = self.db.execute("SELECT * FROM assets WHERE original_path = ?", (original_path,))
        row = cursor.fetchone()
        cursor.close()
        return _row_to_asset(row) if row else None

    def save(self, asset_id: str, **fields: Any) -> None:
        """
        Persist a partial update of one asset.

        Unlike a sparse update, ``None`` values are written (a reset is a
        legitimate update).

        Raises:
            ValueError: If a field outside WRITABLE_FIELDS is given
        """
        if not fields:
            return

        unknown = set(fields) - WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot save asset fields: {sorted(unknown)}")

        set_clause = ", ".join(f"{key} = ?" for key in fields)
        values = [_to_db(v) for v in fields.values()]
        values.append(asset_id)

        cursor = self.db.execute(f"UPDATE assets SET {set_clause} WHERE id = ?", values)
        cursor.close()
        self.db.commit()

        logger.debug(f"Saved asset: {{'asset_id': {asset_id!r}, 'fields': {sorted(fields)}}}")

    def find_live_photo_match(
        self,
        live_photo_cid: str,
        exclude_asset_id: str,
        asset_type: AssetType,
    ) -> Optional[AssetRef]:
        """
        Find another asset of ``asset_type`` whose stored metadata carries
        the same content identifier.
        """
        cursor = self.db.execute(
            """
            SELECT assets.*
            FROM assets
            JOIN exif ON exif.asset_id = assets.id
            WHERE exif.live_photo_cid = ?
              AND assets.id != ?
              AND assets.type = ?
            ORDER BY assets.id
            LIMIT 1
            """,
            (live_photo_cid, exclude_asset_id, asset_type.value)
        )
        row = cursor.fetchone()
        cursor.close()
        return _row_to_asset(row) if row else None

    def to_dict(self, asset: AssetRef) -> Dict[str, Any]:
        return {
            'id': asset.id,
            'type': asset.type.value,
            'original_path': asset.original_path,
            'is_visible': asset.is_visible,
            'file_created_at': _to_db(asset.file_created_at),
            'file_modified_at': _to_db(asset.file_modified_at),
            'duration': asset.duration,
            'live_photo_video_id': asset.live_photo_video_id,
        }
