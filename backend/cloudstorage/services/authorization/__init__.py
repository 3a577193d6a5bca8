from cloudstorage.models.resource import Permission
from cloudstorage.services.authorization.engine import Actor, AuthorizationEngine, ShareOut

__all__ = ["Actor", "AuthorizationEngine", "Permission", "ShareOut"]
