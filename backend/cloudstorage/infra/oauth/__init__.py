from cloudstorage.infra.oauth.google import GoogleOAuthClient

__all__ = ["GoogleOAuthClient"]
