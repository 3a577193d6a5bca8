"""User resource schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from cloudstorage.schemas.common import TrimmedString


class PreferencesSchema(Schema):
    theme = fields.String(validate=validate.OneOf(["light", "dark", "system"]))
    language = fields.String(validate=validate.Length(min=2, max=10))


class ProfileUpdateSchema(Schema):
    """Fields a user may change on their own profile."""

    name = TrimmedString(validate=validate.Length(min=2, max=50))
    preferences = fields.Nested(PreferencesSchema)

    @validates_schema
    def require_any(self, data: dict[str, Any], **_: Any) -> None:
        if not data:
            raise ValidationError("Provide at least one of: name, preferences.")


class UserSchema(Schema):
    """Public representation of a user."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    name = fields.String(required=True)
    role = fields.String(required=True)
    avatar_url = fields.String(allow_none=True)
    is_email_verified = fields.Boolean()
    is_active = fields.Boolean()
    has_password = fields.Boolean()
    is_federated = fields.Boolean()
    preferences = fields.Dict()
    last_login_at = fields.DateTime(allow_none=True)
    created_at = fields.DateTime(allow_none=True)
