"""Liveness endpoint covering the database and the refresh-session backend."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from cloudstorage.api.deps import json_response, timing
from cloudstorage.core.extensions import db, get_redis

bp = Blueprint("health", __name__)


def _database_status() -> str:
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        return "fail"
    return "ok"


def _session_store_status(backend: str) -> str:
    # The database backend shares the connection checked above.
    if backend != "redis":
        return "ok"
    try:
        get_redis().ping()
    except (RedisError, RuntimeError):  # pragma: no cover - needs a live Redis
        current_app.logger.exception("healthcheck.redis_error")
        return "fail"
    return "ok"


@bp.get("/health")
@timing
def healthcheck():
    """Report overall status; any failing dependency answers 503."""

    backend = str(current_app.config.get("SESSION_STORE_BACKEND", "database")).lower()
    checks = {"db": _database_status(), "session_store": _session_store_status(backend)}
    healthy = all(value == "ok" for value in checks.values())
    payload = {
        "status": "ok" if healthy else "degraded",
        **checks,
        "session_backend": backend,
        "version": current_app.config.get("APP_VERSION", "dev"),
        "commit": current_app.config.get("APP_COMMIT", "unknown"),
    }
    return json_response(payload, status=200 if healthy else 503)
