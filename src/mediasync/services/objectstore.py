"""S3-compatible object storage via MinIO."""

import logging
from collections.abc import Iterator
from typing import Protocol
from urllib.parse import urlsplit

import urllib3
from minio import Minio
from minio.error import MinioException

from mediasync.config import MediaSyncConfig
from mediasync.error_handling import ConfigurationError, ObjectStoreError

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    def list_keys(self, prefix: str) -> Iterator[str]:
        """Yield every key at or below ``prefix``, recursively, in listing order."""
        ...


class MinioObjectStore:
    """Lists keys of one bucket."""

    def __init__(self, config: MediaSyncConfig, client: Minio | None = None):
        self.config = config
        self.bucket_name = config.bucket_name
        self._client = client

    @property
    def client(self) -> Minio:
        """Client built on first use; a missing S3 setup fails listings, not startup."""
        if self._client is None:
            self._client = self._create_client(self.config)
        return self._client

    @staticmethod
    def _create_client(config: MediaSyncConfig) -> Minio:
        if not config.s3_configured:
            msg = "S3 endpoint and credentials are not configured"
            raise ConfigurationError(
                msg,
                solution="Set s3_endpoint, s3_access_key and s3_secret_key",
            )

        endpoint = urlsplit(config.s3_endpoint)
        if not endpoint.netloc:
            msg = f"failed to parse S3 endpoint '{config.s3_endpoint}'"
            raise ConfigurationError(
                msg,
                solution="Use a full URL such as https://s3.example.com",
            )

        return Minio(
            endpoint.netloc,
            access_key=config.s3_access_key,
            secret_key=config.s3_secret_key,
            secure=endpoint.scheme == "https",
        )

    def list_keys(self, prefix: str) -> Iterator[str]:
        """Yield object keys under a prefix.

        Raises:
            ObjectStoreError: If S3 is not configured, or if listing fails,
                possibly after some keys were already yielded.
        """
        try:
            client = self.client
        except ConfigurationError as e:
            raise ObjectStoreError(
                e.message,
                solution=e.solution,
                original_error=e,
            ) from e

        try:
            for obj in client.list_objects(
                self.bucket_name,
                prefix=prefix,
                recursive=True,
            ):
                yield obj.object_name
        except (MinioException, urllib3.exceptions.HTTPError) as e:
            msg = f"failed to read objects under '{prefix}' in '{self.bucket_name}'"
            raise ObjectStoreError(msg, original_error=e) from e
