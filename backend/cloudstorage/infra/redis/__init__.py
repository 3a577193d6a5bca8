from cloudstorage.infra.redis.redis_session_store import RedisSessionStore

__all__ = ["RedisSessionStore"]
