"""Service container: builds every collaborator once per application."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import cast

from flask import Flask, current_app

from cloudstorage.core.config import INSECURE_SECRETS
from cloudstorage.services._shared.ports import (
    BlobStore,
    IdentityProvider,
    InMemoryBlobStore,
    InMemorySessionStore,
    Mailer,
    SessionStore,
)
from cloudstorage.services.auth.gateway import AuthenticationGateway
from cloudstorage.services.authorization.engine import AuthorizationEngine
from cloudstorage.services.credentials.service import CredentialStore
from cloudstorage.services.files.service import FilesService
from cloudstorage.services.tokens.service import TokenService

log = logging.getLogger(__name__)

EXTENSION_KEY = "services"


@dataclass(slots=True)
class Services:
    """Everything the API layer talks to."""

    tokens: TokenService
    sessions: SessionStore
    mailer: Mailer
    blobs: BlobStore
    credentials: CredentialStore
    engine: AuthorizationEngine
    gateway: AuthenticationGateway
    files: FilesService
    identity_provider: IdentityProvider | None


def _check_secrets(app: Flask) -> None:
    access = app.config["JWT_ACCESS_SECRET"]
    refresh = app.config["JWT_REFRESH_SECRET"]
    if app.config.get("TESTING") or app.debug:
        return
    if {access, refresh, app.config.get("SECRET_KEY")} & INSECURE_SECRETS:
        raise RuntimeError("Refusing to start with placeholder secrets; set the JWT_* and SECRET_KEY variables.")
    if access == refresh:
        raise RuntimeError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ.")


def _build_signers(app: Flask) -> TokenService:
    from cloudstorage.infra.jwt.pyjwt_signer import PyJWTSigner

    common = {
        "issuer": app.config["JWT_ISSUER"],
        "audience": app.config["JWT_AUDIENCE"],
        "algorithm": app.config["JWT_ALGORITHM"],
    }
    return TokenService(
        access_signer=PyJWTSigner(name="access", secret=app.config["JWT_ACCESS_SECRET"], **common),
        refresh_signer=PyJWTSigner(name="refresh", secret=app.config["JWT_REFRESH_SECRET"], **common),
        access_ttl=int(app.config["ACCESS_TOKEN_TTL"]),
        refresh_ttl=int(app.config["REFRESH_TOKEN_TTL"]),
    )


def _build_session_store(app: Flask) -> SessionStore:
    backend = str(app.config.get("SESSION_STORE_BACKEND", "database")).lower()
    if backend == "database":
        from cloudstorage.infra.db.session_store import DatabaseSessionStore

        return DatabaseSessionStore()
    if backend == "redis":
        from cloudstorage.core.extensions import get_redis
        from cloudstorage.infra.redis.redis_session_store import RedisSessionStore

        return RedisSessionStore(r=get_redis(), ttl_seconds=int(app.config["REFRESH_TOKEN_TTL"]))
    if backend == "memory":
        return InMemorySessionStore()
    raise RuntimeError(f"Unknown SESSION_STORE_BACKEND: {backend!r}")


def _build_blob_store(app: Flask) -> BlobStore:
    backend = str(app.config.get("BLOB_STORE_BACKEND", "memory")).lower()
    if backend == "memory":
        return InMemoryBlobStore()
    if backend == "s3":
        import boto3

        from cloudstorage.infra.storage.s3_blob_store import S3BlobStore

        bucket = app.config.get("S3_BUCKET")
        if not bucket:
            raise RuntimeError("BLOB_STORE_BACKEND=s3 requires S3_BUCKET.")
        client = boto3.client(
            "s3",
            region_name=app.config.get("AWS_REGION"),
            endpoint_url=app.config.get("S3_ENDPOINT_URL") or None,
        )
        return S3BlobStore(client, bucket)
    raise RuntimeError(f"Unknown BLOB_STORE_BACKEND: {backend!r}")


def _build_mailer(app: Flask) -> Mailer:
    from cloudstorage.infra.mail.email_service import EmailService

    return EmailService(
        smtp_host=app.config.get("SMTP_HOST"),
        smtp_port=int(app.config.get("SMTP_PORT", 587)),
        smtp_user=app.config.get("SMTP_USER"),
        smtp_password=app.config.get("SMTP_PASSWORD"),
        smtp_use_tls=bool(app.config.get("SMTP_USE_TLS", True)),
        from_email=app.config.get("MAIL_FROM"),
        base_url=app.config.get("FRONTEND_URL", "http://localhost:5173"),
    )


def _build_identity_provider(app: Flask) -> IdentityProvider | None:
    client_id = app.config.get("GOOGLE_CLIENT_ID")
    client_secret = app.config.get("GOOGLE_CLIENT_SECRET")
    callback = app.config.get("GOOGLE_CALLBACK_URL")
    if not (client_id and client_secret and callback):
        return None
    from cloudstorage.infra.oauth.google import GoogleOAuthClient

    return GoogleOAuthClient(client_id=client_id, client_secret=client_secret, redirect_uri=callback)


def build_services(
    app: Flask,
    *,
    sessions: SessionStore | None = None,
    mailer: Mailer | None = None,
    blobs: BlobStore | None = None,
    identity_provider: IdentityProvider | None = None,
) -> Services:
    """
    Assemble the service graph from ``app.config``.

    Keyword overrides replace the configured adapter (tests inject
    recording or in-memory doubles this way).
    """
    tokens = _build_signers(app)
    sessions = sessions or _build_session_store(app)
    mailer = mailer or _build_mailer(app)
    blobs = blobs or _build_blob_store(app)
    credentials = CredentialStore(
        sessions=sessions,
        mailer=mailer,
        password_reset_ttl=int(app.config.get("PASSWORD_RESET_TTL", 3600)),
    )
    engine = AuthorizationEngine()
    return Services(
        tokens=tokens,
        sessions=sessions,
        mailer=mailer,
        blobs=blobs,
        credentials=credentials,
        engine=engine,
        gateway=AuthenticationGateway(tokens=tokens, credentials=credentials, sessions=sessions),
        files=FilesService(engine=engine, blobs=blobs),
        identity_provider=identity_provider or _build_identity_provider(app),
    )


def init_app(app: Flask) -> None:
    """Validate secrets and store the service graph on ``app.extensions``."""
    _check_secrets(app)
    app.extensions[EXTENSION_KEY] = build_services(app)
    log.info(
        "Services ready",
        extra={
            "session_store": app.config.get("SESSION_STORE_BACKEND"),
            "blob_store": app.config.get("BLOB_STORE_BACKEND"),
            "oauth_enabled": app.extensions[EXTENSION_KEY].identity_provider is not None,
        },
    )


def get_services(app: Flask | None = None) -> Services:
    target = app or current_app
    return cast(Services, target.extensions[EXTENSION_KEY])
