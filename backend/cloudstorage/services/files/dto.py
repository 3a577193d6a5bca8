"""DTOs for the files service."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO

from cloudstorage.services.authorization.engine import ShareOut


@dataclass(frozen=True, slots=True)
class FileOut:
    """Resource metadata as seen by one caller."""

    id: int
    name: str
    size: int
    content_type: str
    file_type: str
    description: str | None
    tags: list[str]
    is_public: bool
    owner_id: int
    owner_name: str
    download_count: int
    last_accessed_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    user_permission: str | None
    # Only populated for the owner or an admin.
    shared_with: list[ShareOut] | None = None


@dataclass(frozen=True, slots=True)
class FilePage:
    items: Sequence[FileOut]
    page: int
    pages: int
    total: int
    has_next: bool
    has_prev: bool


@dataclass(slots=True)
class FileUploadIn:
    filename: str
    content_type: str
    stream: BinaryIO
    description: str | None = None
    is_public: bool = False
    tags: list[str] = field(default_factory=list)


@dataclass(slots=True)
class FileDownload:
    """Open blob stream plus the headers needed to serve it."""

    stream: BinaryIO
    name: str
    content_type: str
    size: int
