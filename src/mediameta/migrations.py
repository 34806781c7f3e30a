"""Schema migrations for the reference SQLite store."""

import logging
import sqlite3
from pathlib import Path
from typing import List, Optional

from .database import DatabaseConnection

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).parent / "schema"


class MigrationRunner:
    """
    Applies ``NNN_name.sql`` files from the schema directory in order.

    Each migration runs in its own transaction and must insert its version
    into ``schema_version``. Running twice is a no-op.
    """

    def __init__(self, db: DatabaseConnection, schema_dir: Path = SCHEMA_DIR):
        self.db = db
        self.schema_dir = schema_dir

    def get_current_version(self) -> int:
        """Current schema version (0 when ``schema_version`` does not exist)."""
        try:
            cursor = self.db.execute("SELECT MAX(version) AS version FROM schema_version")
            row = cursor.fetchone()
            cursor.close()
        except sqlite3.OperationalError:
            return 0

        if row and row['version'] is not None:
            return row['version']
        return 0

    def _get_available_migrations(self) -> List[tuple[int, Path]]:
        migrations = []

        if not self.schema_dir.exists():
            logger.warning(f"Schema directory not found: {{'path': {str(self.schema_dir)!r}}}")
            return migrations

        for sql_file in self.schema_dir.glob("*.sql"):
            try:
                version = int(sql_file.stem.split('_')[0])
            except ValueError:
                logger.warning(f"Skipping invalid migration file: {sql_file.name}")
                continue
            migrations.append((version, sql_file))

        migrations.sort(key=lambda x: x[0])
        return migrations

    def apply_migrations(self, target_version: Optional[int] = None) -> int:
        """
        Apply pending migrations up to ``target_version`` (None = latest).

        Returns:
            Schema version after applying

        Raises:
            sqlite3.Error: If a migration fails
        """
        current_version = self.get_current_version()
        available = self._get_available_migrations()

        if not available:
            logger.info("No migrations found")
            return current_version

        if target_version is None:
            target_version = available[-1][0]

        pending = [
            (version, path) for version, path in available
            if current_version < version <= target_version
        ]

        if not pending:
            logger.debug(f"Schema up to date: {{'version': {current_version}}}")
            return current_version

        for version, migration_path in pending:
            logger.info(f"Applying migration: {{'version': {version}, 'file': {migration_path.name!r}}}")
            sql = migration_path.read_text(encoding='utf-8')
            with self.db.transaction() as cursor:
                for statement in _split_statements(sql):
                    cursor.execute(statement)

        logger.info(f"Schema migrated: {{'version': {target_version}}}")
        return target_version


def _split_statements(sql: str) -> List[str]:
    """Split a migration script on ``;`` (scripts contain no triggers)."""
    lines = [line for line in sql.splitlines() if not line.strip().startswith('--')]
    return [s.strip() for s in "\n".join(lines).split(';') if s.strip()]
