"""High-level convenience API for the signing pipeline.

Provides :func:`render`, :func:`open_store`, :func:`provider_client`
and :func:`open_orchestrator`, which resolve configuration (provider
settings, store location) the same way the CLI does.

For lower-level control, construct a
:class:`~signable.network.signwell.SignWellClient` (or
:class:`~signable.network.dropbox_sign.DropboxSignClient`), a document
store and a :class:`~signable.signing.orchestrator.SigningOrchestrator` directly.
"""

from __future__ import annotations

__all__ = ["open_orchestrator", "open_store", "provider_client", "render"]

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .config import get_store_path, load_provider_settings
from .constants import PROVIDER_DROPBOX_SIGN
from .core.rendering import RenderedDocument, render_document
from .core.text import SanitizeMode
from .network.dropbox_sign import DropboxSignClient
from .network.signwell import SignWellClient
from .signing.orchestrator import SignersLoader, SigningOrchestrator
from .signing.reconciler import StatusReconciler, TransitionCallback
from .storage.json_store import JsonDocumentStore

if TYPE_CHECKING:
    from .config import ProviderSettings
    from .core.models import Signer
    from .core.pdf import PageSpec
    from .network.protocol import SigningProvider
    from .storage.protocol import DocumentStore

_logger = logging.getLogger(__name__)


def render(
    title: str,
    body: str,
    signers: list[Signer],
    *,
    plain: bool = False,
    page: PageSpec | None = None,
) -> RenderedDocument:
    """Render document text into a signable PDF.

    Args:
        title: Document title.
        body: Generated body text (markup unless *plain*).
        signers: Signers; one signature line and field each.
        plain: Treat the body as plain text (no markup stripping).
        page: Page spec (defaults to US Letter, 1-inch margins).
    """
    content_format = SanitizeMode.PLAIN if plain else SanitizeMode.MARKUP
    return render_document(title, body, signers, page=page, content_format=content_format)


def open_store(path: Path | str | None = None) -> JsonDocumentStore:
    """Open the JSON document store (configured location by default)."""
    store_path = Path(path) if path is not None else get_store_path()
    _logger.debug("Using document store %s", store_path)
    return JsonDocumentStore(store_path)


def provider_client(settings: ProviderSettings) -> SigningProvider:
    """Construct the client for the provider the settings name."""
    if settings.provider == PROVIDER_DROPBOX_SIGN:
        return DropboxSignClient(settings)
    return SignWellClient(settings)


def open_orchestrator(
    *,
    store: DocumentStore | None = None,
    settings: ProviderSettings | None = None,
    load_signers: SignersLoader | None = None,
    on_transition: TransitionCallback | None = None,
    page: PageSpec | None = None,
) -> SigningOrchestrator:
    """Build an orchestrator from saved configuration.

    Raises:
        ConfigError: If no API key is configured.
    """
    settings = settings or load_provider_settings()
    store = store if store is not None else open_store()
    client = provider_client(settings)
    reconciler = StatusReconciler(store, client, on_transition=on_transition)
    return SigningOrchestrator(
        client,
        store,
        load_signers=load_signers,
        page=page,
        test_mode=settings.test_mode,
        reconciler=reconciler,
    )
