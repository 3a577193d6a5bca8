"""
FilesService
============

Resource CRUD around the authorization core. Every read or mutation of a
resource is decided by :class:`~cloudstorage.services.authorization.AuthorizationEngine`
first; blob bytes go through the :class:`BlobStore` port.

Anonymous callers are represented by ``actor=None``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any, BinaryIO
from uuid import uuid4

from werkzeug.utils import secure_filename

from cloudstorage.models.resource import Permission, Resource
from cloudstorage.services._shared.base import BaseService
from cloudstorage.services._shared.errors import (
    AuthenticationRequired,
    AuthorizationError,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from cloudstorage.services._shared.ports.blob_store import BlobStore
from cloudstorage.services.authorization.engine import Actor, AuthorizationEngine, ShareOut
from cloudstorage.services.files.dto import FileDownload, FileOut, FilePage, FileUploadIn

log = logging.getLogger(__name__)

SORTABLE_FIELDS = ("name", "size", "created_at", "download_count")
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MAX_NAME_LENGTH = 255


def _stream_size(stream: BinaryIO) -> int:
    """Measure a seekable stream and rewind it."""
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


class FilesService(BaseService):
    """
    List, upload, read, download, update, delete and share resources.

    :param engine: Authorization engine; also owns grant maintenance.
    :param blobs: Blob store adapter.
    """

    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        blobs: BlobStore,
        max_limit: int = MAX_LIMIT,
    ) -> None:
        super().__init__()
        self.engine = engine
        self.blobs = blobs
        self.max_limit = max_limit

    # ------------------------------------------------------------------ #
    # Projection
    # ------------------------------------------------------------------ #

    def _to_out(self, actor: Actor | None, resource: Resource) -> FileOut:
        shared_with = None
        if self.engine.can_manage(actor, resource):
            shared_with = [
                ShareOut(
                    resource_id=resource.id,
                    user_id=share.user_id,
                    email=share.user.email,
                    name=share.user.name,
                    permission=share.permission,
                    granted_at=share.granted_at,
                )
                for share in resource.shares
            ]
        return FileOut(
            id=resource.id,
            name=resource.name,
            size=resource.size,
            content_type=resource.content_type,
            file_type=resource.file_type,
            description=resource.description,
            tags=list(resource.tags or []),
            is_public=bool(resource.is_public),
            owner_id=resource.owner_id,
            owner_name=resource.owner.name,
            download_count=resource.download_count,
            last_accessed_at=resource.last_accessed_at,
            created_at=resource.created_at,
            updated_at=resource.updated_at,
            user_permission=self.engine.effective_permission(actor, resource),
            shared_with=shared_with,
        )

    def _require(
        self, actor: Actor | None, resource: Resource | None, resource_id: int, permission: Permission
    ) -> Resource:
        """Resolve the access decision for one resource or raise."""
        if resource is None:
            raise NotFoundError("Resource", resource_id)
        if self.engine.has_access(actor, resource, permission):
            return resource
        if actor is None:
            raise AuthenticationRequired()
        raise AuthorizationError()

    def _require_manage(self, actor: Actor, resource: Resource | None, resource_id: int) -> Resource:
        if resource is None:
            raise NotFoundError("Resource", resource_id)
        if not self.engine.can_manage(actor, resource):
            raise AuthorizationError("Only the owner or an admin can do this.")
        return resource

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def list_files(
        self,
        actor: Actor | None,
        *,
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
        search: str | None = None,
        file_type: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> FilePage:
        """
        Page through the resources visible to ``actor``.

        Anonymous callers only see public resources.
        """
        field = sort_by if sort_by in SORTABLE_FIELDS else "created_at"
        token = f"-{field}" if sort_order == "desc" else field
        pagination = self.ensure_pagination(
            page=page, limit=limit, sort=[token], max_limit=self.max_limit
        )

        with self.ro_uow() as uow:
            stmt = uow.resources.visible_select(
                actor_id=actor.id if actor else None, search=search, file_type=file_type
            )
            result = uow.resources.paginate(pagination, stmt=stmt)
            items = [self._to_out(actor, r) for r in result.items]
            return FilePage(
                items=items,
                page=result.page,
                pages=result.pages,
                total=result.total,
                has_next=result.has_next,
                has_prev=result.has_prev,
            )

    def get_file(self, actor: Actor | None, resource_id: int) -> FileOut:
        with self.ro_uow() as uow:
            resource = self._require(
                actor, uow.resources.get_active(resource_id), resource_id, Permission.READ
            )
            return self._to_out(actor, resource)

    def download(self, actor: Actor | None, resource_id: int) -> FileDownload:
        """
        Open the blob of a readable resource and count the download.

        :raises AuthenticationRequired: Anonymous caller on a private resource.
        :raises AuthorizationError: Authenticated caller without read access.
        :raises NotFoundError: Missing resource or missing blob.
        """
        with self.ro_uow() as uow:
            resource = self._require(
                actor, uow.resources.get_active(resource_id), resource_id, Permission.READ
            )
            key, name = resource.storage_key, resource.name
            content_type, size = resource.content_type, resource.size

        stream = self.blobs.open(key)

        with self.rw_uow() as uow:
            uow.resources.record_download(resource_id, self.now_utc())

        log.info(
            "File downloaded",
            extra={"resource_id": resource_id, "user_id": actor.id if actor else None},
        )
        return FileDownload(stream=stream, name=name, content_type=content_type, size=size)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def upload(self, actor: Actor, dto: FileUploadIn) -> FileOut:
        """
        Store the bytes and create the metadata row.

        The row is only committed when the blob write succeeded.

        :raises InvalidInputError: The file name is longer than 255 characters.
        :raises StorageError: The blob store rejected the write.
        """
        if len(dto.filename) > MAX_NAME_LENGTH:
            raise InvalidInputError(f"File name must be at most {MAX_NAME_LENGTH} characters.")
        filename = secure_filename(dto.filename) or "file"
        key = f"{uuid4().hex}_{filename}"
        size = _stream_size(dto.stream)

        with self.rw_uow() as uow:
            resource = uow.resources.model(
                storage_key=key,
                name=dto.filename,
                size=size,
                content_type=dto.content_type or "application/octet-stream",
                description=dto.description,
                tags=list(dto.tags),
                owner_id=actor.id,
                is_public=dto.is_public,
            )
            uow.resources.add(resource)
            try:
                self.blobs.put(
                    key,
                    dto.stream,
                    resource.content_type,
                    {"owner_id": str(actor.id), "original_name": filename},
                )
            except StorageError:
                log.error("Blob write failed", extra={"user_id": actor.id, "storage_key": key})
                raise
            out = self._to_out(actor, resource)

        log.info("File uploaded", extra={"resource_id": out.id, "user_id": actor.id, "size": size})
        return out

    def update_file(self, actor: Actor, resource_id: int, changes: Mapping[str, Any]) -> FileOut:
        """
        Edit metadata. Needs write access or the admin role; flipping
        ``is_public`` needs the owner or an admin.
        """
        with self.rw_uow() as uow:
            resource = uow.resources.get_active_for_update(resource_id)
            if resource is None:
                raise NotFoundError("Resource", resource_id)
            if not (actor.is_admin or self.engine.has_access(actor, resource, Permission.WRITE)):
                raise AuthorizationError()
            if "is_public" in changes and not self.engine.can_manage(actor, resource):
                raise AuthorizationError("Only the owner or an admin can change visibility.")
            if changes:
                uow.resources.update(resource, **dict(changes))
            out = self._to_out(actor, resource)

        log.info(
            "File updated",
            extra={"resource_id": resource_id, "user_id": actor.id, "fields": sorted(changes)},
        )
        return out

    def delete_file(self, actor: Actor, resource_id: int) -> None:
        """Remove the blob and soft-delete the row. Owner or admin only."""
        with self.rw_uow() as uow:
            resource = self._require_manage(
                actor, uow.resources.get_active_for_update(resource_id), resource_id
            )
            try:
                self.blobs.delete(resource.storage_key)
            except StorageError:
                log.warning(
                    "Blob delete failed; soft-deleting anyway",
                    extra={"resource_id": resource_id, "storage_key": resource.storage_key},
                )
            resource.soft_delete()

        log.info("File deleted", extra={"resource_id": resource_id, "user_id": actor.id})

    # ------------------------------------------------------------------ #
    # Sharing
    # ------------------------------------------------------------------ #

    def share(
        self, actor: Actor, resource_id: int, email: str, permission: Permission | str
    ) -> ShareOut:
        """
        Grant ``permission`` to the active account behind ``email``.

        :raises NotFoundError: Unknown resource or no active account for ``email``.
        :raises InvalidShare: ``email`` belongs to the owner.
        """
        with self.ro_uow() as uow:
            self._require_manage(actor, uow.resources.get_active(resource_id), resource_id)
            target = uow.users.get_by_email(email)
            if target is None or not target.is_active:
                raise NotFoundError("User", email)
            target_id = target.id

        return self.engine.set_share(resource_id, target_id, permission)

    def unshare(self, actor: Actor, resource_id: int, user_id: int) -> bool:
        with self.ro_uow() as uow:
            self._require_manage(actor, uow.resources.get_active(resource_id), resource_id)
        return self.engine.revoke_share(resource_id, user_id)
