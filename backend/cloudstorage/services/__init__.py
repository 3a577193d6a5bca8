"""Service layer public API.

This package exposes the services wired by the application container so that
callers can import from :mod:`cloudstorage.services` without knowing the
internal structure.

Re-exports
----------
- Base primitives (from ``cloudstorage.services._shared.base``)
    * :class:`BaseService`

- Tokens (from ``cloudstorage.services.tokens``)
    * :class:`TokenService`, DTOs :class:`TokenPair`, :class:`VerifiedToken`

- Credentials (from ``cloudstorage.services.credentials``)
    * :class:`CredentialStore`
    * DTOs: :class:`LocalAccountIn`, :class:`FederatedAccountIn`, :class:`UserOut`

- Authorization (from ``cloudstorage.services.authorization``)
    * :class:`AuthorizationEngine`, :class:`Actor`, :class:`ShareOut`

- Authentication (from ``cloudstorage.services.auth``)
    * :class:`AuthenticationGateway`
    * DTOs: :class:`AuthResult`, :class:`ProfileUpdateIn`

- Files (from ``cloudstorage.services.files``)
    * :class:`FilesService`
    * DTOs: :class:`FileUploadIn`, :class:`FileOut`, :class:`FilePage`,
      :class:`FileDownload`
"""

from __future__ import annotations

# Base primitives
from ._shared.base import BaseService

# Authentication gateway + DTOs
from .auth.dto import AuthResult, ProfileUpdateIn
from .auth.gateway import AuthenticationGateway

# Authorization engine
from .authorization.engine import Actor, AuthorizationEngine, ShareOut

# Credentials + DTOs
from .credentials.dto import FederatedAccountIn, LocalAccountIn, UserOut
from .credentials.service import CredentialStore

# Files + DTOs
from .files.dto import FileDownload, FileOut, FilePage, FileUploadIn
from .files.service import FilesService

# Tokens + DTOs
from .tokens.dto import TokenPair, VerifiedToken
from .tokens.service import TokenService

__all__ = [
    # Base
    "BaseService",
    # Tokens
    "TokenService",
    "TokenPair",
    "VerifiedToken",
    # Credentials
    "CredentialStore",
    "LocalAccountIn",
    "FederatedAccountIn",
    "UserOut",
    # Authorization
    "AuthorizationEngine",
    "Actor",
    "ShareOut",
    # Authentication
    "AuthenticationGateway",
    "AuthResult",
    "ProfileUpdateIn",
    # Files
    "FilesService",
    "FileUploadIn",
    "FileOut",
    "FilePage",
    "FileDownload",
]
