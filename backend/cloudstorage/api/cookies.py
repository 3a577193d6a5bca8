"""Token cookie helpers.

Both tokens travel as HTTP-only cookies. The refresh cookie is scoped to the
auth endpoints so it is never sent with ordinary API calls.
"""

from __future__ import annotations

from flask import Response, current_app

from cloudstorage.services.tokens.dto import TokenPair

OAUTH_STATE_MAX_AGE = 10 * 60


def _same_site() -> str:
    return "Strict" if current_app.config.get("COOKIE_SECURE") else "Lax"


def set_auth_cookies(response: Response, pair: TokenPair) -> Response:
    cfg = current_app.config
    secure = bool(cfg.get("COOKIE_SECURE"))
    response.set_cookie(
        cfg["ACCESS_COOKIE_NAME"],
        pair.access_token,
        max_age=int(cfg["ACCESS_TOKEN_TTL"]),
        httponly=True,
        secure=secure,
        samesite=_same_site(),
        path="/",
    )
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        pair.refresh_token,
        max_age=int(cfg["REFRESH_TOKEN_TTL"]),
        httponly=True,
        secure=secure,
        samesite=_same_site(),
        path=cfg["REFRESH_COOKIE_PATH"],
    )
    return response


def clear_auth_cookies(response: Response) -> Response:
    cfg = current_app.config
    response.delete_cookie(cfg["ACCESS_COOKIE_NAME"], path="/")
    response.delete_cookie(cfg["REFRESH_COOKIE_NAME"], path=cfg["REFRESH_COOKIE_PATH"])
    return response


def set_oauth_state_cookie(response: Response, state: str) -> Response:
    # Lax: the provider redirects back with a top-level cross-site navigation.
    cfg = current_app.config
    response.set_cookie(
        cfg["OAUTH_STATE_COOKIE_NAME"],
        state,
        max_age=OAUTH_STATE_MAX_AGE,
        httponly=True,
        secure=bool(cfg.get("COOKIE_SECURE")),
        samesite="Lax",
        path=cfg["REFRESH_COOKIE_PATH"],
    )
    return response


def clear_oauth_state_cookie(response: Response) -> Response:
    cfg = current_app.config
    response.delete_cookie(cfg["OAUTH_STATE_COOKIE_NAME"], path=cfg["REFRESH_COOKIE_PATH"])
    return response
