from cloudstorage.models.resource import Permission, Resource, ResourceShare
from cloudstorage.models.user import User

__all__ = [
    "Permission",
    "Resource",
    "ResourceShare",
    "User",
]
