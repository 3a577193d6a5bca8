"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

# Constraint names stay stable across SQLite and Postgres migrations
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
# Keyed on the client address; ProxyFix makes that the real caller behind nginx.
limiter = Limiter(key_func=get_remote_address)
redis_client: redis.Redis | None = None


def _connect_redis(app: Flask) -> redis.Redis | None:
    """Open the Redis connection used by the ``redis`` session backend."""
    redis_url = app.config.get("REDIS_URL")
    backend = str(app.config.get("SESSION_STORE_BACKEND", "database")).lower()
    if not redis_url:
        if backend == "redis":
            raise RuntimeError("SESSION_STORE_BACKEND=redis requires REDIS_URL.")
        return None

    client = redis.Redis.from_url(redis_url, decode_responses=False)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    return client


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, rate limiting and Redis.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. Importing
        :mod:`cloudstorage.models` registers the ``users``, ``resources`` and
        ``resource_shares`` tables on the shared metadata for Alembic.
    """
    db.init_app(app)

    from cloudstorage import models as _models  # noqa: F401

    migrate.init_app(app, db)
    limiter.init_app(app)

    global redis_client
    redis_client = _connect_redis(app)
    if redis_client is None:
        app.extensions.pop("redis_client", None)
    else:
        app.extensions["redis_client"] = redis_client


def get_redis() -> redis.Redis:
    """Return the initialized Redis client."""
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized; set REDIS_URL.")
    return redis_client
