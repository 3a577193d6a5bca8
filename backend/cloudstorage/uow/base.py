"""
Abstract Unit of Work contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cloudstorage.repositories import (
        ResourceRepository,
        ResourceShareRepository,
        UserRepository,
    )


class UnitOfWork(ABC):
    """
    Transactional boundary for one use-case.

    Repositories exposed by every implementation share one session:

    - ``users``: accounts and the refresh-token slot.
    - ``resources``: file metadata.
    - ``shares``: per-user grants on resources.
    """

    users: UserRepository
    resources: ResourceRepository
    shares: ResourceShareRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
