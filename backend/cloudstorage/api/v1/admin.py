"""Administrative endpoints (admin role only)."""

from __future__ import annotations

from flask import Blueprint
from marshmallow import Schema, fields, validate

from cloudstorage.api.deps import json_body, json_response, services, timing
from cloudstorage.api.security import require_role
from cloudstorage.schemas import UserSchema

bp = Blueprint("admin", __name__)


class AccountStatusSchema(Schema):
    email = fields.Email(required=True, validate=validate.Length(max=254))
    is_active = fields.Boolean(required=True)


status_schema = AccountStatusSchema()
user_schema = UserSchema()


@bp.put("/users/status")
@require_role("admin")
@timing
def set_account_status():
    """Activate or deactivate an account; deactivation ends its session."""

    data = status_schema.load(json_body())
    user = services().credentials.set_active(data["email"], active=data["is_active"])
    return json_response({"data": {"user": user_schema.dump(user)}})
