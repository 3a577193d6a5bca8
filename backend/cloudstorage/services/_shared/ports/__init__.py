"""
cloudstorage.services._shared.ports
===================================

Ports (hexagonal interfaces) between the service layer and infrastructure.

Modules
-------
- :mod:`signer`: :class:`~.Signer`, one named signing key (access or refresh).
- :mod:`session_store`: :class:`~.SessionStore`, the single refresh-token slot
  per user, plus the in-memory adapter.
- :mod:`blob_store`: :class:`~.BlobStore`, file bytes, plus the in-memory adapter.
- :mod:`mailer`: :class:`~.Mailer`, verification and reset mail.
- :mod:`identity_provider`: :class:`~.IdentityProvider` and
  :class:`~.FederatedProfile` for federated login.

Concrete adapters live under ``cloudstorage.infra``.
"""

from __future__ import annotations

from .blob_store import BlobStore, InMemoryBlobStore
from .identity_provider import FederatedProfile, IdentityProvider
from .mailer import Mailer, RecordingMailer
from .session_store import InMemorySessionStore, SessionStore
from .signer import Signer

__all__ = [
    "BlobStore",
    "FederatedProfile",
    "IdentityProvider",
    "InMemoryBlobStore",
    "InMemorySessionStore",
    "Mailer",
    "RecordingMailer",
    "SessionStore",
    "Signer",
]
