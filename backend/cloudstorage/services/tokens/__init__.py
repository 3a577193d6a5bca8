from cloudstorage.services.tokens.dto import TokenPair, VerifiedToken
from cloudstorage.services.tokens.service import TokenService

__all__ = ["TokenPair", "TokenService", "VerifiedToken"]
