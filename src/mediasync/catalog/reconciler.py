"""Find-or-create of catalog records for cards."""

import logging
import sqlite3
import uuid

from mediasync.catalog.store import CatalogRecord, CatalogStore
from mediasync.error_handling import PersistenceError
from mediasync.media import CatalogStatus, CreatorKind, MediaDescriptor

logger = logging.getLogger(__name__)


class CatalogReconciler:
    """Maps an external card id to a stable catalog id.

    Re-running with the same card is safe: the first sighting inserts a record,
    later sightings only refresh its metadata provider and id.
    """

    def __init__(self, store: CatalogStore):
        self.store = store

    def reconcile(self, creator_id: str, descriptor: MediaDescriptor) -> str:
        """Return the catalog id for a card, creating the record if needed.

        Raises:
            PersistenceError: If the insert or update fails.
        """
        existing_id = self._find_existing(creator_id)

        if existing_id is not None:
            logger.info(
                "updating existing database entry for media '%s' (id: %s)",
                descriptor.name,
                existing_id,
            )
            try:
                self.store.update_metadata(
                    existing_id,
                    descriptor.metadata_provider,
                    descriptor.metadata_id,
                )
            except sqlite3.Error as e:
                msg = f"failed to update media '{descriptor.name}' (id: {existing_id})"
                raise PersistenceError(msg, original_error=e) from e
            return existing_id

        media_id = str(uuid.uuid4())
        record = CatalogRecord(
            id=media_id,
            name=descriptor.name,
            creator_id=creator_id,
            creator_kind=CreatorKind.EXTERNAL_BOARD,
            media_kind=descriptor.media_kind,
            source_type=descriptor.source_type,
            source_uri=descriptor.source_uri,
            metadata_provider=descriptor.metadata_provider,
            metadata_id=descriptor.metadata_id,
            status=CatalogStatus.PENDING_IDENTIFICATION,
        )

        logger.info("creating database entry for media '%s'", descriptor.name)
        try:
            self.store.insert_record(record)
        except sqlite3.Error as e:
            msg = f"failed to create media '{descriptor.name}'"
            raise PersistenceError(msg, original_error=e) from e
        return media_id

    def _find_existing(self, creator_id: str) -> str | None:
        try:
            matches = self.store.find_by_creator_id(creator_id)
        except sqlite3.Error as e:
            # Treated as not found, so a new record is inserted
            logger.warning("failed to search for existing row: %s", e)
            return None

        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                "found %d records for card %s, using %s",
                len(matches),
                creator_id,
                matches[0],
            )
        return matches[0]
