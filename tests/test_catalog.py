"""Tests for the catalog store and card reconciliation."""

import sqlite3
from unittest.mock import Mock

import pytest

from mediasync.catalog.reconciler import CatalogReconciler
from mediasync.catalog.store import CatalogRecord, CatalogStore
from mediasync.error_handling import PersistenceError
from mediasync.media import (
    CatalogStatus,
    CreatorKind,
    MediaDescriptor,
    MediaKind,
    MetadataProvider,
    SourceType,
)


@pytest.fixture
def store(config):
    """Create catalog store instance."""
    return CatalogStore(config)


@pytest.fixture
def reconciler(store):
    return CatalogReconciler(store)


@pytest.fixture
def descriptor():
    return MediaDescriptor(
        name="Example Show",
        media_kind=MediaKind.TV,
        metadata_provider=MetadataProvider.TVDB,
        metadata_id="12345",
        source_type=SourceType.TORRENT,
        source_uri="magnet:?xt=urn:btih:deadbeef",
    )


def make_record(record_id, creator_id="card-1", name="Example Show"):
    return CatalogRecord(
        id=record_id,
        name=name,
        creator_id=creator_id,
        media_kind=MediaKind.TV,
        source_type=SourceType.HTTP,
        source_uri="https://example.com/x",
        metadata_provider=MetadataProvider.TVDB,
        metadata_id="1",
    )


class TestCatalogStore:
    """Test CatalogStore functionality."""

    def test_creates_database(self, store, config):
        assert store.db_path == config.catalog_db
        assert config.catalog_db.exists()

    def test_insert_and_get_record(self, store):
        store.insert_record(make_record("a"))

        record = store.get_record("a")
        assert record is not None
        assert record.name == "Example Show"
        assert record.creator_kind == CreatorKind.EXTERNAL_BOARD
        assert record.status == CatalogStatus.PENDING_IDENTIFICATION
        assert record.source_type == SourceType.HTTP

    def test_get_missing_record(self, store):
        assert store.get_record("missing") is None

    def test_find_by_creator_id_orders_by_id(self, store):
        store.insert_record(make_record("c"))
        store.insert_record(make_record("a"))
        store.insert_record(make_record("b", creator_id="card-2"))

        assert store.find_by_creator_id("card-1") == ["a", "c"]
        assert store.find_by_creator_id("card-3") == []

    def test_update_metadata(self, store):
        store.insert_record(make_record("a"))

        store.update_metadata("a", MetadataProvider.IMDB, "tt1")

        record = store.get_record("a")
        assert record.metadata_provider == MetadataProvider.IMDB
        assert record.metadata_id == "tt1"

    def test_catalog_stats(self, store):
        store.insert_record(make_record("a"))
        movie = make_record("b", creator_id="card-2")
        movie.media_kind = MediaKind.MOVIE
        store.insert_record(movie)
        store.insert_record(make_record("c", creator_id="card-3"))

        assert store.get_catalog_stats() == {"tv": 2, "movie": 1}

    def test_health_check(self, store):
        store.insert_record(make_record("a"))
        store.insert_record(make_record("b"))

        health = store.check_database_health()

        assert health["database_readable"]
        assert health["table_exists"]
        assert health["missing_columns"] == []
        assert health["integrity_check"]
        assert health["total_records"] == 2
        assert health["duplicate_creator_ids"] == 1

    def test_duplicate_id_raises(self, store):
        store.insert_record(make_record("a"))

        with pytest.raises(sqlite3.IntegrityError):
            store.insert_record(make_record("a", creator_id="card-2"))


class TestCatalogReconciler:
    """Test find-or-create reconciliation."""

    def test_inserts_new_record(self, reconciler, store, descriptor):
        media_id = reconciler.reconcile("card-1", descriptor)

        record = store.get_record(media_id)
        assert record.name == "Example Show"
        assert record.creator_id == "card-1"
        assert record.creator_kind == CreatorKind.EXTERNAL_BOARD
        assert record.media_kind == MediaKind.TV
        assert record.source_type == SourceType.TORRENT
        assert record.source_uri == "magnet:?xt=urn:btih:deadbeef"
        assert record.metadata_provider == MetadataProvider.TVDB
        assert record.metadata_id == "12345"
        assert record.status == CatalogStatus.PENDING_IDENTIFICATION

    def test_reconcile_is_idempotent(self, reconciler, store, descriptor):
        first = reconciler.reconcile("card-1", descriptor)
        second = reconciler.reconcile("card-1", descriptor)

        assert first == second
        assert store.find_by_creator_id("card-1") == [first]

    def test_distinct_cards_get_distinct_ids(self, reconciler, descriptor):
        first = reconciler.reconcile("card-1", descriptor)
        second = reconciler.reconcile("card-2", descriptor)

        assert first != second

    def test_rerun_only_refreshes_metadata(self, reconciler, store, descriptor):
        media_id = reconciler.reconcile("card-1", descriptor)
        with sqlite3.connect(store.db_path) as conn:
            conn.execute("UPDATE media SET status = 7 WHERE id = ?", (media_id,))

        changed = MediaDescriptor(
            name="Renamed Show",
            media_kind=MediaKind.MOVIE,
            metadata_provider=MetadataProvider.IMDB,
            metadata_id="tt999",
            source_type=SourceType.HTTP,
            source_uri="https://example.com/other",
        )
        assert reconciler.reconcile("card-1", changed) == media_id

        record = store.get_record(media_id)
        assert record.metadata_provider == MetadataProvider.IMDB
        assert record.metadata_id == "tt999"
        assert record.name == "Example Show"
        assert record.media_kind == MediaKind.TV
        assert record.source_uri == "magnet:?xt=urn:btih:deadbeef"
        assert record.status == 7

    def test_duplicate_rows_use_lowest_id(self, reconciler, store, descriptor):
        store.insert_record(make_record("bbb"))
        store.insert_record(make_record("aaa"))

        assert reconciler.reconcile("card-1", descriptor) == "aaa"
        assert store.get_record("aaa").metadata_id == "12345"
        assert store.get_record("bbb").metadata_id == "1"

    def test_query_failure_falls_through_to_insert(self, descriptor):
        store = Mock(spec=CatalogStore)
        store.find_by_creator_id.side_effect = sqlite3.OperationalError("locked")

        media_id = CatalogReconciler(store).reconcile("card-1", descriptor)

        store.insert_record.assert_called_once()
        inserted = store.insert_record.call_args.args[0]
        assert inserted.id == media_id
        assert inserted.creator_id == "card-1"
        store.update_metadata.assert_not_called()

    def test_insert_failure_raises_persistence_error(self, descriptor):
        store = Mock(spec=CatalogStore)
        store.find_by_creator_id.return_value = []
        store.insert_record.side_effect = sqlite3.OperationalError("disk full")

        with pytest.raises(PersistenceError) as exc_info:
            CatalogReconciler(store).reconcile("card-1", descriptor)

        assert isinstance(exc_info.value.original_error, sqlite3.OperationalError)

    def test_update_failure_raises_persistence_error(self, descriptor):
        store = Mock(spec=CatalogStore)
        store.find_by_creator_id.return_value = ["a"]
        store.update_metadata.side_effect = sqlite3.OperationalError("readonly")

        with pytest.raises(PersistenceError):
            CatalogReconciler(store).reconcile("card-1", descriptor)
