"""File metadata (resources) and per-user share grants."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from cloudstorage.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, utcnow

if TYPE_CHECKING:
    from .user import User


class Permission(StrEnum):
    """Access level requested on, or granted for, a resource."""

    READ = "read"
    WRITE = "write"


FILE_TYPES = ("image", "document", "video", "audio", "other")

DOCUMENT_CONTENT_TYPES = frozenset({"application/pdf", "application/msword", "application/rtf"})
DOCUMENT_CONTENT_PREFIXES = ("application/vnd.", "text/")


def classify_content_type(content_type: str | None) -> str:
    """Bucket a MIME type into one of :data:`FILE_TYPES`."""
    ct = (content_type or "").lower()
    for prefix in ("image", "video", "audio"):
        if ct.startswith(f"{prefix}/"):
            return prefix
    if ct in DOCUMENT_CONTENT_TYPES or ct.startswith(DOCUMENT_CONTENT_PREFIXES):
        return "document"
    return "other"


class Resource(PKMixin, TimestampMixin, ReprMixin, db.Model):
    """
    Metadata of one stored file.

    Notes
    -----
    - ``owner_id`` is immutable once set.
    - Soft-deleted rows stay in the table and are filtered out of all
      normal queries.
    - Sharing grants live in :class:`ResourceShare`, one per user.
    """

    __tablename__ = "resources"

    storage_key: Mapped[str] = mapped_column(String(400), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    content_type: Mapped[str] = mapped_column(
        String(127), nullable=False, default="application/octet-stream"
    )
    description: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    download_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    last_accessed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("storage_key", name="uq_resources_storage_key"),
        Index("ix_resources_owner_id", "owner_id"),
        Index("ix_resources_is_public_is_deleted", "is_public", "is_deleted"),
    )

    # Relationships
    owner: Mapped[User] = relationship("User", lazy="selectin")
    shares: Mapped[list[ResourceShare]] = relationship(
        "ResourceShare",
        back_populates="resource",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ResourceShare.id",
    )

    @property
    def file_type(self) -> str:
        return classify_content_type(self.content_type)

    def soft_delete(self) -> None:
        self.is_deleted = True
        self.deleted_at = utcnow()

    @validates("owner_id")
    def _freeze_owner(self, key: str, value: int) -> int:
        current = self.owner_id
        if current is not None and value != current:
            raise ValueError("Resource owner cannot be changed.")
        return value


class ResourceShare(PKMixin, ReprMixin, db.Model):
    """
    Explicit grant of ``read`` or ``write`` on a resource for one user.

    The unique ``(resource_id, user_id)`` pair makes re-sharing replace the
    previous grant instead of adding a second one.
    """

    __tablename__ = "resource_shares"

    resource_id: Mapped[int] = mapped_column(
        ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    permission: Mapped[str] = mapped_column(String(8), nullable=False)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("resource_id", "user_id", name="uq_resource_shares_resource_user"),
        CheckConstraint("permission IN ('read', 'write')", name="permission_valid"),
    )

    resource: Mapped[Resource] = relationship("Resource", back_populates="shares")
    user: Mapped[User] = relationship("User", lazy="selectin")

    @validates("permission")
    def _validate_permission(self, key: str, value: str) -> str:
        return Permission(value).value
