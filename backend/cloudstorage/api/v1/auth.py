"""Authentication and profile endpoints."""

from __future__ import annotations

import logging
import secrets
from urllib.parse import urlencode

from flask import Blueprint, current_app, redirect, request

from cloudstorage.api.cookies import (
    clear_auth_cookies,
    clear_oauth_state_cookie,
    set_auth_cookies,
    set_oauth_state_cookie,
)
from cloudstorage.api.deps import json_body, json_response, services, timing
from cloudstorage.api.security import current_actor, require_auth
from cloudstorage.core.extensions import limiter
from cloudstorage.schemas import (
    ChangePasswordSchema,
    ForgotPasswordSchema,
    LoginSchema,
    ProfileUpdateSchema,
    RefreshSchema,
    RegisterSchema,
    ResetPasswordSchema,
    TokenPairSchema,
    UserSchema,
    VerifyEmailSchema,
)
from cloudstorage.services._shared.errors import (
    FederatedLoginFailed,
    FederatedLoginNotConfigured,
    ServiceError,
)
from cloudstorage.services.auth.dto import AuthResult, ProfileUpdateIn
from cloudstorage.services.credentials.dto import LocalAccountIn

log = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
profile_update_schema = ProfileUpdateSchema()
change_password_schema = ChangePasswordSchema()
verify_email_schema = VerifyEmailSchema()
forgot_password_schema = ForgotPasswordSchema()
reset_password_schema = ResetPasswordSchema()
user_schema = UserSchema()
token_schema = TokenPairSchema()


def _auth_rate_limit() -> str:
    return str(current_app.config.get("AUTH_RATE_LIMIT", "10 per 15 minutes"))


def _session_response(result: AuthResult, *, status: int = 200):
    body = {
        "data": {
            "user": user_schema.dump(result.user),
            "tokens": token_schema.dump(result.tokens.to_dict()),
        }
    }
    return set_auth_cookies(json_response(body, status=status), result.tokens)


# --------------------------------------------------------------------------- #
# Session lifecycle
# --------------------------------------------------------------------------- #


@bp.post("/register")
@limiter.limit(_auth_rate_limit)
@timing
def register():
    """Create a local account and open its first session."""

    data = register_schema.load(json_body())
    result = services().gateway.register(
        LocalAccountIn(email=data["email"], password=data["password"], name=data["name"])
    )
    return _session_response(result, status=201)


@bp.post("/login")
@limiter.limit(_auth_rate_limit)
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    data = login_schema.load(json_body())
    result = services().gateway.login(data["email"], data["password"])
    return _session_response(result)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the refresh token (cookie first, then body)."""

    presented = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    if not presented:
        presented = refresh_schema.load(json_body()).get("refresh_token")
    pair = services().gateway.refresh(presented)
    body = {"data": {"tokens": token_schema.dump(pair.to_dict())}}
    return set_auth_cookies(json_response(body), pair)


@bp.post("/logout")
@require_auth
@timing
def logout():
    services().gateway.logout(current_actor().id)
    return clear_auth_cookies(json_response({"data": {"success": True}}))


# --------------------------------------------------------------------------- #
# Profile
# --------------------------------------------------------------------------- #


@bp.get("/profile")
@require_auth
@timing
def get_profile():
    user = services().gateway.get_profile(current_actor().id)
    return json_response({"data": {"user": user_schema.dump(user)}})


@bp.put("/profile")
@require_auth
@timing
def update_profile():
    data = profile_update_schema.load(json_body())
    user = services().gateway.update_profile(
        current_actor().id,
        ProfileUpdateIn(name=data.get("name"), preferences=data.get("preferences")),
    )
    return json_response({"data": {"user": user_schema.dump(user)}})


@bp.put("/change-password")
@require_auth
@timing
def change_password():
    """Change the password; every refresh session of the user ends."""

    data = change_password_schema.load(json_body())
    services().gateway.change_password(
        current_actor().id, data["current_password"], data["new_password"]
    )
    return json_response({"data": {"success": True}})


# --------------------------------------------------------------------------- #
# Email verification and password reset
# --------------------------------------------------------------------------- #


@bp.post("/verify-email")
@timing
def verify_email():
    data = verify_email_schema.load(json_body())
    user = services().credentials.verify_email(data["token"])
    return json_response({"data": {"user": user_schema.dump(user)}})


@bp.post("/forgot-password")
@limiter.limit(_auth_rate_limit)
@timing
def forgot_password():
    """Always 202, whether or not the email belongs to an account."""

    data = forgot_password_schema.load(json_body())
    services().credentials.request_password_reset(data["email"])
    return json_response({"data": {"success": True}}, status=202)


@bp.post("/reset-password")
@timing
def reset_password():
    data = reset_password_schema.load(json_body())
    services().credentials.reset_password(data["token"], data["password"])
    return json_response({"data": {"success": True}})


# --------------------------------------------------------------------------- #
# Federated login
# --------------------------------------------------------------------------- #


def _frontend_redirect(**params: str):
    target = current_app.config.get("FRONTEND_URL", "http://localhost:5173").rstrip("/")
    return redirect(f"{target}/?{urlencode(params)}", code=302)


@bp.get("/oauth/start")
@timing
def oauth_start():
    provider = services().identity_provider
    if provider is None:
        raise FederatedLoginNotConfigured()
    state = secrets.token_urlsafe(24)
    response = redirect(provider.authorization_url(state), code=302)
    return set_oauth_state_cookie(response, state)


@bp.get("/oauth/callback")
@limiter.exempt
@timing
def oauth_callback():
    svc = services()
    if svc.identity_provider is None:
        raise FederatedLoginNotConfigured()

    code = request.args.get("code")
    state = request.args.get("state")
    expected = request.cookies.get(current_app.config["OAUTH_STATE_COOKIE_NAME"])
    if not code or not state or not expected or not secrets.compare_digest(state, expected):
        log.warning("OAuth callback with missing or mismatched state")
        return clear_oauth_state_cookie(_frontend_redirect(error="oauth_failed"))

    try:
        profile = svc.identity_provider.fetch_profile(code)
    except FederatedLoginFailed:
        return clear_oauth_state_cookie(_frontend_redirect(error="oauth_failed"))

    try:
        result = svc.gateway.federated_callback(profile)
    except ServiceError as exc:
        log.warning("Federated account could not be signed in", extra={"code": exc.code})
        return clear_oauth_state_cookie(_frontend_redirect(error="oauth_callback_failed"))

    response = set_auth_cookies(_frontend_redirect(auth="success"), result.tokens)
    return clear_oauth_state_cookie(response)
