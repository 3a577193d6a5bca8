"""Repositories for file metadata and share grants."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast

from sqlalchemy import String, and_, cast as sql_cast, exists, false, not_, or_, select, update
from sqlalchemy.sql import Select

from cloudstorage.models.resource import (
    DOCUMENT_CONTENT_PREFIXES,
    DOCUMENT_CONTENT_TYPES,
    Resource,
    ResourceShare,
)
from cloudstorage.repositories.base import BaseRepository


def _escape_like(fragment: str) -> str:
    """Make ``%`` and ``_`` in user input match literally under ``escape="\\"``."""
    return fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _type_clause(file_type: str) -> Any:
    image = Resource.content_type.like("image/%")
    video = Resource.content_type.like("video/%")
    audio = Resource.content_type.like("audio/%")
    document = or_(
        Resource.content_type.in_(sorted(DOCUMENT_CONTENT_TYPES)),
        *(Resource.content_type.like(f"{prefix}%") for prefix in DOCUMENT_CONTENT_PREFIXES),
    )
    clauses = {"image": image, "video": video, "audio": audio, "document": document}
    if file_type == "other":
        return not_(or_(*clauses.values()))
    return clauses[file_type]


class ResourceRepository(BaseRepository[Resource]):
    """Persistence for :class:`Resource`. Soft-deleted rows are hidden by default."""

    model = Resource

    def _sortable_fields(self):
        return {
            "name": Resource.name,
            "size": Resource.size,
            "created_at": Resource.created_at,
            "download_count": Resource.download_count,
        }

    def _updatable_fields(self):
        return {"name", "description", "is_public", "tags"}

    # ---------------------------- Lookups ----------------------------

    def get_active(self, resource_id: int) -> Resource | None:
        """Return a non-deleted resource by id."""
        stmt = select(Resource).where(Resource.id == resource_id, Resource.is_deleted == false())
        return cast(Resource | None, self.session.execute(stmt).scalars().first())

    def get_active_for_update(self, resource_id: int) -> Resource | None:
        stmt = (
            select(Resource)
            .where(Resource.id == resource_id, Resource.is_deleted == false())
            .with_for_update()
        )
        return cast(Resource | None, self.session.execute(stmt).scalars().first())

    # ---------------------------- Listing ----------------------------

    def visible_select(
        self,
        *,
        actor_id: int | None,
        search: str | None = None,
        file_type: str | None = None,
    ) -> Select[Any]:
        """
        Build the listing query for a caller.

        Anonymous callers see public rows only. Authenticated callers also see
        rows they own and rows shared with them. Deleted rows never appear.

        :param actor_id: Authenticated user id, ``None`` for anonymous callers.
        :type actor_id: int | None
        :param search: Case-insensitive fragment matched against name,
            description and tags.
        :type search: str | None
        :param file_type: One of ``image``, ``document``, ``video``, ``audio``, ``other``.
        :type file_type: str | None
        :returns: Unsorted, unpaginated select.
        :rtype: :class:`sqlalchemy.sql.Select`
        """
        visibility = Resource.is_public.is_(True)
        if actor_id is not None:
            shared = exists().where(
                and_(ResourceShare.resource_id == Resource.id, ResourceShare.user_id == actor_id)
            )
            visibility = or_(visibility, Resource.owner_id == actor_id, shared)

        stmt = select(Resource).where(Resource.is_deleted == false(), visibility)

        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            stmt = stmt.where(
                or_(
                    Resource.name.ilike(pattern, escape="\\"),
                    Resource.description.ilike(pattern, escape="\\"),
                    sql_cast(Resource.tags, String).ilike(pattern, escape="\\"),
                )
            )
        if file_type:
            stmt = stmt.where(_type_clause(file_type))
        return stmt

    # ---------------------------- Counters ----------------------------

    def record_download(self, resource_id: int, when: datetime) -> bool:
        """Atomically bump ``download_count`` and stamp ``last_accessed_at``."""
        result = self.session.execute(
            update(Resource)
            .where(Resource.id == resource_id, Resource.is_deleted == false())
            .values(download_count=Resource.download_count + 1, last_accessed_at=when)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class ResourceShareRepository(BaseRepository[ResourceShare]):
    """Persistence for :class:`ResourceShare` grants."""

    model = ResourceShare

    def get_grant(self, resource_id: int, user_id: int) -> ResourceShare | None:
        stmt = select(ResourceShare).where(
            ResourceShare.resource_id == resource_id, ResourceShare.user_id == user_id
        )
        return cast(ResourceShare | None, self.session.execute(stmt).scalars().first())
