"""Media catalog persistence."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from mediasync.config import MediaSyncConfig
from mediasync.media import (
    CatalogStatus,
    CreatorKind,
    MediaKind,
    MetadataProvider,
    SourceType,
)

logger = logging.getLogger(__name__)

EXPECTED_COLUMNS = {
    "id",
    "media_name",
    "creator",
    "creator_id",
    "type",
    "source",
    "source_uri",
    "metadata_id",
    "metadata",
    "status",
    "created_at",
    "updated_at",
}


@dataclass
class CatalogRecord:
    """One row of the media table."""

    id: str
    name: str
    creator_id: str
    media_kind: MediaKind
    source_type: SourceType
    source_uri: str
    metadata_provider: MetadataProvider
    metadata_id: str
    creator_kind: CreatorKind = CreatorKind.EXTERNAL_BOARD
    status: int = CatalogStatus.PENDING_IDENTIFICATION
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class CatalogStore:
    """Stores media records in SQLite."""

    def __init__(self, config: MediaSyncConfig | None = None, db_path: Path | None = None):
        if db_path is None:
            if config is None:
                msg = "CatalogStore needs a config or a db_path"
                raise ValueError(msg)
            db_path = config.catalog_db
        self.db_path = db_path
        self._init_database()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection that is properly closed with transaction support."""
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS media (
                    id TEXT PRIMARY KEY,
                    media_name TEXT NOT NULL,
                    creator INTEGER NOT NULL,
                    creator_id TEXT NOT NULL,
                    type INTEGER NOT NULL,
                    source INTEGER NOT NULL,
                    source_uri TEXT NOT NULL,
                    metadata_id TEXT NOT NULL,
                    metadata INTEGER NOT NULL,
                    status INTEGER NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """,
            )

            # Not unique: dedup is done by the reconciler
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_media_creator_id ON media(creator_id)",
            )

    def find_by_creator_id(self, creator_id: str) -> list[str]:
        """Return ids of records created from this card, lowest id first."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT id FROM media WHERE creator_id = ? ORDER BY id",
                (creator_id,),
            )
            return [row[0] for row in cursor.fetchall()]

    def insert_record(self, record: CatalogRecord) -> None:
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO media
                    (id, media_name, creator, creator_id, type, source, source_uri,
                     metadata_id, metadata, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    record.id,
                    record.name,
                    int(record.creator_kind),
                    record.creator_id,
                    int(record.media_kind),
                    int(record.source_type),
                    record.source_uri,
                    record.metadata_id,
                    int(record.metadata_provider),
                    int(record.status),
                    record.created_at.isoformat(),
                    record.updated_at.isoformat(),
                ),
            )

        logger.debug("Inserted catalog record: %s", record)

    def update_metadata(
        self,
        media_id: str,
        metadata_provider: MetadataProvider,
        metadata_id: str,
    ) -> None:
        """Refresh the metadata provider and id of an existing record."""
        with self._get_connection() as conn:
            conn.execute(
                """
                UPDATE media SET metadata_id = ?, metadata = ?, updated_at = ?
                WHERE id = ?
            """,
                (
                    metadata_id,
                    int(metadata_provider),
                    datetime.now(UTC).isoformat(),
                    media_id,
                ),
            )

        logger.debug("Updated metadata for catalog record %s", media_id)

    def get_record(self, media_id: str) -> CatalogRecord | None:
        with self._get_connection() as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute("SELECT * FROM media WHERE id = ?", (media_id,))
            row = cursor.fetchone()
            if not row:
                return None
            return self._row_to_record(row)

    def get_all_records(self) -> list[CatalogRecord]:
        with self._get_connection() as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute("SELECT * FROM media ORDER BY created_at DESC")
            return [self._row_to_record(row) for row in cursor.fetchall()]

    def get_catalog_stats(self) -> dict[str, int]:
        """Count records per media kind."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT type, COUNT(*) FROM media GROUP BY type",
            )

            stats = {}
            for media_type, count in cursor.fetchall():
                try:
                    stats[MediaKind(media_type).name.lower()] = count
                except ValueError:
                    stats[f"unknown ({media_type})"] = count
            return stats

    def check_database_health(self) -> dict[str, Any]:
        """Check database health and return diagnostic information."""
        health_info: dict[str, Any] = {
            "database_exists": self.db_path.exists(),
            "database_readable": False,
            "table_exists": False,
            "missing_columns": [],
            "integrity_check": False,
            "total_records": 0,
            "duplicate_creator_ids": 0,
        }

        if not health_info["database_exists"]:
            return health_info

        try:
            with self._get_connection() as conn:
                health_info["database_readable"] = True

                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name='media'
                """,
                )
                health_info["table_exists"] = cursor.fetchone() is not None

                if health_info["table_exists"]:
                    cursor = conn.execute("PRAGMA table_info(media)")
                    existing_columns = {row[1] for row in cursor.fetchall()}
                    health_info["missing_columns"] = sorted(
                        EXPECTED_COLUMNS - existing_columns,
                    )

                    cursor = conn.execute("SELECT COUNT(*) FROM media")
                    health_info["total_records"] = cursor.fetchone()[0]

                    cursor = conn.execute(
                        """
                        SELECT COUNT(*) FROM (
                            SELECT creator_id FROM media
                            GROUP BY creator_id HAVING COUNT(*) > 1
                        )
                    """,
                    )
                    health_info["duplicate_creator_ids"] = cursor.fetchone()[0]

                cursor = conn.execute("PRAGMA integrity_check")
                result = cursor.fetchone()
                health_info["integrity_check"] = result[0] == "ok" if result else False

        except sqlite3.Error as e:
            health_info["error"] = str(e)
            logger.exception("Catalog health check failed")

        return health_info

    def _row_to_record(self, row: sqlite3.Row) -> CatalogRecord:
        return CatalogRecord(
            id=row["id"],
            name=row["media_name"],
            creator_id=row["creator_id"],
            creator_kind=CreatorKind(row["creator"]),
            media_kind=MediaKind(row["type"]),
            source_type=SourceType(row["source"]),
            source_uri=row["source_uri"],
            metadata_provider=MetadataProvider(row["metadata"]),
            metadata_id=row["metadata_id"],
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
