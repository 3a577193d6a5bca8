from cloudstorage.services.auth.dto import AuthResult, ProfileUpdateIn
from cloudstorage.services.auth.gateway import AuthenticationGateway

__all__ = ["AuthResult", "AuthenticationGateway", "ProfileUpdateIn"]
