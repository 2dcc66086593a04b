"""Signing provider protocol, HTTP transport, and the provider clients."""

from __future__ import annotations

from .dropbox_sign import DropboxSignClient
from .protocol import CreatedRequest, ProviderStatus, RecipientRef, SigningProvider
from .signwell import SignWellClient

__all__ = [
    "CreatedRequest",
    "DropboxSignClient",
    "ProviderStatus",
    "RecipientRef",
    "SignWellClient",
    "SigningProvider",
]
