"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from cloudstorage.schemas.common import TrimmedString

PASSWORD_RULE = validate.Regexp(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).+$",
    error="Password must contain an upper-case letter, a lower-case letter and a digit.",
)


def new_password_field(**kwargs) -> fields.String:
    return fields.String(
        required=True,
        validate=[validate.Length(min=6, max=128), PASSWORD_RULE],
        load_only=True,
        **kwargs,
    )


class RegisterSchema(Schema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = new_password_field()
    name = TrimmedString(required=True, validate=validate.Length(min=2, max=50))


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Optional body for clients that do not use the refresh cookie."""

    refresh_token = fields.String(load_default=None)


class ChangePasswordSchema(Schema):
    # Federated-only accounts have no current password and send an empty one.
    current_password = fields.String(load_default="", load_only=True)
    new_password = new_password_field()


class VerifyEmailSchema(Schema):
    token = fields.String(required=True, validate=validate.Length(min=1, max=256))


class ForgotPasswordSchema(Schema):
    email = fields.Email(required=True, validate=validate.Length(max=254))


class ResetPasswordSchema(Schema):
    token = fields.String(required=True, validate=validate.Length(min=1, max=256))
    password = new_password_field()


class TokenPairSchema(Schema):
    """Response payload carrying an access/refresh pair."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")
    expires_in = fields.Integer(required=True)
