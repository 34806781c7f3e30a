"""Data Access Layer for the exif table (one metadata record per asset)."""

import logging
from dataclasses import fields as dataclass_fields
from datetime import datetime
from typing import Any, Iterable, Optional

from ..database import DatabaseConnection
from ..models import MetadataRecord

logger = logging.getLogger(__name__)

RECORD_COLUMNS = tuple(f.name for f in dataclass_fields(MetadataRecord))
PLACE_COLUMNS = ('city', 'state', 'country')
_DATETIME_COLUMNS = ('date_time_original', 'modify_date')


def _to_db(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class ExifDAL:
    """Upsert-only access to metadata records, keyed by asset_id."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def upsert(self, record: MetadataRecord, keep: Iterable[str] = ()) -> None:
        """
        Insert the record or replace the columns of the existing row for the
        same asset_id. Re-running never creates a second row.

        Args:
            record: Record to write
            keep: Columns whose stored value survives when the row exists
                (a fresh row still gets the record's value)

        Raises:
            ValueError: If ``keep`` names an unknown column
        """
        keep = frozenset(keep)
        unknown = keep - set(RECORD_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown metadata columns: {sorted(unknown)}")

        data = record.to_dict()
        columns = ", ".join(RECORD_COLUMNS)
        placeholders = ", ".join("?" for _ in RECORD_COLUMNS)
        updates = ", ".join(
            f"{column} = excluded.{column}"
            for column in RECORD_COLUMNS
            if column != 'asset_id' and column not in keep
        )

        cursor = self.db.execute(
            f"""
            INSERT INTO exif ({columns})
            VALUES ({placeholders})
            ON CONFLICT (asset_id) DO UPDATE SET {updates}
            """,
            [_to_db(data[column]) for column in RECORD_COLUMNS]
        )
        cursor.close()
        self.db.commit()

        logger.debug(f"Upserted metadata record: {{'asset_id': {record.asset_id!r}}}")

    def update_place(
        self,
        asset_id: str,
        city: Optional[str],
        state: Optional[str],
        country: Optional[str],
    ) -> int:
        """
        Update only the place fields of an existing record.

        Returns:
            Number of rows updated (0 when the asset has no record yet)
        """
        cursor = self.db.execute(
            "UPDATE exif SET city = ?, state = ?, country = ? WHERE asset_id = ?",
            (city, state, country, asset_id)
        )
        count = cursor.rowcount
        cursor.close()
        self.db.commit()
        return count

    def get(self, asset_id: str) -> Optional[MetadataRecord]:
        cursor = self.db.execute("SELECT * FROM exif WHERE asset_id = ?", (asset_id,))
        row = cursor.fetchone()
        cursor.close()

        if row is None:
            return None

        values = {column: row[column] for column in RECORD_COLUMNS}
        for column in _DATETIME_COLUMNS:
            if values[column]:
                values[column] = datetime.fromisoformat(values[column])
        return MetadataRecord(**values)

    def count(self) -> int:
        cursor = self.db.execute("SELECT COUNT(*) FROM exif")
        (count,) = cursor.fetchone()
        cursor.close()
        return count
