"""
signable - generated legal documents to signable PDFs, with e-signature
request tracking.

Renders document text to a paginated PDF with computed signature-field
coordinates, sends it to an e-signature provider, and reconciles the
multi-party signing lifecycle from webhooks and status polls.
"""

from __future__ import annotations

from .api import open_orchestrator, open_store, render
from .constants import __version__
from .core.lifecycle import EventKind, SignatureEvent, judge_status, next_status
from .core.models import (
    Document,
    SignatureStatus,
    Signer,
    SignerRole,
    SignerStatus,
    SignerStatusCode,
)
from .core.pdf import PageSpec, SignatureField, layout
from .core.rendering import RenderedDocument, render_document
from .core.text import SanitizeMode, sanitize
from .errors import (
    ConfigError,
    DocumentNotFound,
    DuplicateSigningRequest,
    InvalidStateTransition,
    LayoutOverflow,
    ProviderError,
    SanitizationFailure,
    SignableError,
)
from .network import SignWellClient, SigningProvider
from .signing import SigningOrchestrator, StatusReconciler, handle_webhook, parse_webhook
from .storage import DocumentStore, InMemoryDocumentStore, JsonDocumentStore

__all__ = [
    "ConfigError",
    "Document",
    "DocumentNotFound",
    "DocumentStore",
    "DuplicateSigningRequest",
    "EventKind",
    "InMemoryDocumentStore",
    "InvalidStateTransition",
    "JsonDocumentStore",
    "LayoutOverflow",
    "PageSpec",
    "ProviderError",
    "RenderedDocument",
    "SanitizationFailure",
    "SanitizeMode",
    "SignWellClient",
    "SignableError",
    "SignatureEvent",
    "SignatureField",
    "SignatureStatus",
    "Signer",
    "SignerRole",
    "SignerStatus",
    "SignerStatusCode",
    "SigningOrchestrator",
    "SigningProvider",
    "StatusReconciler",
    "__version__",
    "handle_webhook",
    "judge_status",
    "layout",
    "next_status",
    "open_orchestrator",
    "open_store",
    "parse_webhook",
    "render",
    "render_document",
    "sanitize",
]
