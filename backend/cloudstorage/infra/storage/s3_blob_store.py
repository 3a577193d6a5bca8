"""S3-backed :class:`BlobStore` adapter (boto3)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, BinaryIO

from botocore.exceptions import BotoCoreError, ClientError

from cloudstorage.services._shared.errors import NotFoundError, StorageError
from cloudstorage.services._shared.ports.blob_store import BlobStore

log = logging.getLogger(__name__)

_MISSING_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3BlobStore(BlobStore):
    """
    Store file bytes as objects in a single bucket.

    :param client: A boto3 S3 client (``boto3.client("s3", ...)``).
    :param bucket: Target bucket name.
    """

    def __init__(self, client: Any, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    def put(
        self,
        key: str,
        stream: BinaryIO,
        content_type: str,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=stream.read(),
                ContentType=content_type,
                Metadata=dict(metadata or {}),
            )
        except (ClientError, BotoCoreError) as exc:
            log.error("S3 put failed", extra={"storage_key": key, "error": str(exc)})
            raise StorageError() from exc

    def open(self, key: str) -> BinaryIO:
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                raise NotFoundError("Blob", key) from exc
            log.error("S3 get failed", extra={"storage_key": key, "error": str(exc)})
            raise StorageError() from exc
        except BotoCoreError as exc:
            raise StorageError() from exc
        # botocore StreamingBody; send_file reads it in blocks and closes it.
        return obj["Body"]

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError() from exc

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return False
            raise StorageError() from exc
        except BotoCoreError as exc:
            raise StorageError() from exc
        return True
