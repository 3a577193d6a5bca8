"""File (resource) schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    post_dump,
    validate,
    validates_schema,
)

from cloudstorage.models.resource import FILE_TYPES
from cloudstorage.schemas.common import JSONList
from cloudstorage.services.files.service import MAX_LIMIT, SORTABLE_FIELDS


def _tag_field() -> fields.String:
    return fields.String(validate=validate.Length(min=1, max=50))


class FileListQuerySchema(Schema):
    """Query parameters accepted by ``GET /files``."""

    class Meta:
        unknown = EXCLUDE

    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(load_default=20, validate=validate.Range(min=1, max=MAX_LIMIT))
    search = fields.String(load_default=None, validate=validate.Length(max=100))
    file_type = fields.String(
        data_key="type", load_default=None, validate=validate.OneOf(FILE_TYPES)
    )
    sort_by = fields.String(load_default="created_at", validate=validate.OneOf(SORTABLE_FIELDS))
    sort_order = fields.String(load_default="desc", validate=validate.OneOf(["asc", "desc"]))


class FileUploadFormSchema(Schema):
    """Multipart form fields sent next to the ``file`` part."""

    description = fields.String(load_default=None, validate=validate.Length(max=500))
    is_public = fields.Boolean(load_default=False)
    tags = JSONList(_tag_field(), load_default=list, validate=validate.Length(max=20))


class FileUpdateSchema(Schema):
    name = fields.String(validate=validate.Length(min=1, max=255))
    description = fields.String(allow_none=True, validate=validate.Length(max=500))
    is_public = fields.Boolean()
    tags = fields.List(_tag_field(), validate=validate.Length(max=20))

    @validates_schema
    def require_any(self, data: dict[str, Any], **_: Any) -> None:
        if not data:
            raise ValidationError("Provide at least one field to update.")


class ShareCreateSchema(Schema):
    email = fields.Email(required=True, validate=validate.Length(max=254))
    permission = fields.String(load_default="read", validate=validate.OneOf(["read", "write"]))


class ShareSchema(Schema):
    user_id = fields.Integer(required=True)
    email = fields.String(required=True)
    name = fields.String(required=True)
    permission = fields.String(required=True)
    granted_at = fields.DateTime(required=True)


class FileSchema(Schema):
    """Resource metadata as returned to one caller."""

    id = fields.Integer(required=True)
    name = fields.String(required=True)
    size = fields.Integer(required=True)
    content_type = fields.String(required=True)
    file_type = fields.String(required=True)
    description = fields.String(allow_none=True)
    tags = fields.List(fields.String())
    is_public = fields.Boolean()
    owner_id = fields.Integer()
    owner_name = fields.String()
    download_count = fields.Integer()
    last_accessed_at = fields.DateTime(allow_none=True)
    created_at = fields.DateTime(allow_none=True)
    updated_at = fields.DateTime(allow_none=True)
    user_permission = fields.String(allow_none=True)
    shared_with = fields.List(fields.Nested(ShareSchema), allow_none=True)

    @post_dump
    def hide_shares(self, data: dict[str, Any], **_: Any) -> dict[str, Any]:
        if data.get("shared_with") is None:
            data.pop("shared_with", None)
        return data
