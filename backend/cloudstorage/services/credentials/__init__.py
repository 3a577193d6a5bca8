from cloudstorage.services.credentials.dto import FederatedAccountIn, LocalAccountIn, UserOut
from cloudstorage.services.credentials.service import CredentialStore

__all__ = ["CredentialStore", "FederatedAccountIn", "LocalAccountIn", "UserOut"]
