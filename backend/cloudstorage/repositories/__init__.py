"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from cloudstorage.repositories.base import (
    BaseRepository,
    Page,
    Pagination,
    apply_sorting,
    paginate_select,
)
from cloudstorage.repositories.resource import ResourceRepository, ResourceShareRepository
from cloudstorage.repositories.user import UserRepository

__all__ = [
    # Base
    "BaseRepository",
    "Page",
    "Pagination",
    "paginate_select",
    "apply_sorting",
    # Domain
    "ResourceRepository",
    "ResourceShareRepository",
    "UserRepository",
]
