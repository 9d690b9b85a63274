"""Tests for the MinIO-backed object store."""

from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
import urllib3
from minio.error import MinioException

from mediasync.error_handling import ConfigurationError, ObjectStoreError
from mediasync.services.objectstore import MinioObjectStore


def listing(*keys):
    return [SimpleNamespace(object_name=key) for key in keys]


class TestClientCreation:
    @patch("mediasync.services.objectstore.Minio")
    def test_client_built_on_first_use(self, mock_minio, config):
        store = MinioObjectStore(config)
        mock_minio.assert_not_called()

        assert store.client is mock_minio.return_value
        assert store.client is mock_minio.return_value
        mock_minio.assert_called_once_with(
            "s3.example.com",
            access_key="access",
            secret_key="secret",
            secure=True,
        )
        assert store.bucket_name == "triton-media"

    @patch("mediasync.services.objectstore.Minio")
    def test_http_endpoint_disables_tls(self, mock_minio, config):
        config.s3_endpoint = "http://minio.local:9000"

        MinioObjectStore(config).client

        assert mock_minio.call_args.args == ("minio.local:9000",)
        assert mock_minio.call_args.kwargs["secure"] is False

    def test_missing_credentials(self, config):
        config.s3_secret_key = None
        store = MinioObjectStore(config)

        with pytest.raises(ConfigurationError):
            store.client

    def test_missing_credentials_fail_listing(self, config):
        config.s3_endpoint = None
        store = MinioObjectStore(config)

        with pytest.raises(ObjectStoreError) as exc_info:
            list(store.list_keys("tv/Show"))

        assert isinstance(exc_info.value.original_error, ConfigurationError)

    def test_unparseable_endpoint(self, config):
        config.s3_endpoint = "s3.example.com"

        with pytest.raises(ConfigurationError):
            MinioObjectStore(config).client


class TestListKeys:
    """Test recursive key listing."""

    def test_lists_recursively(self, config):
        client = Mock()
        client.list_objects.return_value = listing("tv/Show/a.mkv", "tv/Show/b.mkv")
        store = MinioObjectStore(config, client=client)

        keys = list(store.list_keys("tv/Show"))

        assert keys == ["tv/Show/a.mkv", "tv/Show/b.mkv"]
        client.list_objects.assert_called_once_with(
            "triton-media",
            prefix="tv/Show",
            recursive=True,
        )

    def test_minio_error(self, config):
        client = Mock()
        client.list_objects.side_effect = MinioException("access denied")
        store = MinioObjectStore(config, client=client)

        with pytest.raises(ObjectStoreError) as exc_info:
            list(store.list_keys("tv/Show"))

        assert "tv/Show" in exc_info.value.message

    def test_error_mid_listing_keeps_earlier_keys(self, config):
        def objects(*args, **kwargs):
            yield from listing("tv/Show/a.mkv")
            raise urllib3.exceptions.ProtocolError("connection reset")

        client = Mock()
        client.list_objects.side_effect = objects
        store = MinioObjectStore(config, client=client)

        received = []
        with pytest.raises(ObjectStoreError):
            for key in store.list_keys("tv/Show"):
                received.append(key)

        assert received == ["tv/Show/a.mkv"]
