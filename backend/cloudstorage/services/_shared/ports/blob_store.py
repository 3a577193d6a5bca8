from __future__ import annotations

import io
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import BinaryIO, Protocol

from cloudstorage.services._shared.errors import NotFoundError


class BlobStore(Protocol):
    """
    Port for the object store holding file bytes.

    Adapters raise :class:`~cloudstorage.services._shared.errors.StorageError`
    for backend failures and ``NotFoundError("Blob", key)`` for missing keys.
    """

    def put(
        self,
        key: str,
        stream: BinaryIO,
        content_type: str,
        metadata: Mapping[str, str] | None = None,
    ) -> None: ...

    def open(self, key: str) -> BinaryIO: ...

    def delete(self, key: str) -> None: ...

    def exists(self, key: str) -> bool: ...


@dataclass(slots=True)
class StoredBlob:
    data: bytes
    content_type: str
    metadata: dict[str, str] = field(default_factory=dict)


class InMemoryBlobStore(BlobStore):
    """Process-local blob store used in development and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._blobs: dict[str, StoredBlob] = {}

    def put(
        self,
        key: str,
        stream: BinaryIO,
        content_type: str,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        data = stream.read()
        with self._lock:
            self._blobs[key] = StoredBlob(data, content_type, dict(metadata or {}))

    def open(self, key: str) -> BinaryIO:
        with self._lock:
            blob = self._blobs.get(key)
        if blob is None:
            raise NotFoundError("Blob", key)
        return io.BytesIO(blob.data)

    def delete(self, key: str) -> None:
        with self._lock:
            self._blobs.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._blobs

    def get(self, key: str) -> StoredBlob | None:
        """Return the stored blob record (test helper)."""
        with self._lock:
            return self._blobs.get(key)
