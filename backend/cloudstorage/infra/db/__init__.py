from cloudstorage.infra.db.session_store import DatabaseSessionStore

__all__ = ["DatabaseSessionStore"]
