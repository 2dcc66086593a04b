"""
Signing request orchestration.

Turns a stored :class:`~signable.core.models.Document` into a signing
request at the provider and drives the user-initiated operations on it
(status, cancel, remind, download). Status writes are delegated to the
:class:`~signable.signing.reconciler.StatusReconciler` so that every
change goes through the same compare-and-set path as webhook events.
"""

from __future__ import annotations

__all__ = ["RequestStatus", "SignersLoader", "SigningOrchestrator"]

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..core.lifecycle import is_terminal, judge_status
from ..core.models import Document, SignatureStatus, Signer, SignerStatus, ordered_signers
from ..core.rendering import render_document
from ..errors import DuplicateSigningRequest, ProviderError, SignableError
from .reconciler import StatusReconciler

if TYPE_CHECKING:
    from ..core.pdf import PageSpec, SignatureField
    from ..network.protocol import SigningProvider
    from ..storage.protocol import DocumentStore

_logger = logging.getLogger(__name__)

SignersLoader = Callable[[str], list[Signer]]


@dataclass(frozen=True)
class RequestStatus:
    """Read-only status report for one signing request.

    Attributes:
        provider_state: Provider's overall state string.
        signers: Per-signer status records reported by the provider.
        proposed_status: Coarse judgement (see
            :func:`~signable.core.lifecycle.judge_status`), or None when
            the report should leave the cached status alone.
    """

    provider_state: str
    signers: list[SignerStatus] = field(default_factory=list)
    proposed_status: SignatureStatus | None = None


def _ensure_no_active_request(document: Document) -> None:
    """Reject a new request while a non-terminal one is attached."""
    if document.signing_request_id and not is_terminal(document.signature_status):
        raise DuplicateSigningRequest(
            f"Document {document.id} already has an active signing request "
            f"({document.signing_request_id}, {document.signature_status.value}). "
            "Cancel it before sending again."
        )


class SigningOrchestrator:
    """Creates and manages provider signing requests for stored documents.

    Args:
        provider: Constructed provider client.
        store: Document store.
        load_signers: Callable returning the signers of a document; used
            when :meth:`create` is not given signers explicitly.
        page: Page spec for rendering (defaults to US Letter).
        test_mode: Create non-binding test requests.
        reconciler: Status writer; one sharing *store* and *provider* is
            built if omitted.
    """

    def __init__(
        self,
        provider: SigningProvider,
        store: DocumentStore,
        *,
        load_signers: SignersLoader | None = None,
        page: PageSpec | None = None,
        test_mode: bool = False,
        reconciler: StatusReconciler | None = None,
    ) -> None:
        self.provider = provider
        self.store = store
        self.load_signers = load_signers
        self.page = page
        self.test_mode = test_mode
        self.reconciler = reconciler or StatusReconciler(store, provider)

    # ── Create ──────────────────────────────────────────────────────

    def _resolve_signers(self, document_id: str, signers: list[Signer] | None) -> list[Signer]:
        if signers is None:
            if self.load_signers is None:
                raise SignableError(f"No signers given for document {document_id}")
            signers = self.load_signers(document_id)
        if not signers:
            raise SignableError(f"Document {document_id} has no signers")
        return ordered_signers(signers)

    def submit(
        self,
        title: str,
        pdf_bytes: bytes,
        signers: list[Signer],
        fields: list[SignatureField],
        message: str | None = None,
        subject: str | None = None,
    ) -> str:
        """Submit a rendered document to the provider.

        Returns:
            The provider's signing request id.

        Raises:
            ProviderError: On any non-2xx provider response.
        """
        created = self.provider.create_signing_request(
            title,
            pdf_bytes,
            ordered_signers(signers),
            fields,
            message=message,
            subject=subject,
            test_mode=self.test_mode,
        )
        return created.request_id

    def create(
        self,
        document_id: str,
        *,
        signers: list[Signer] | None = None,
        message: str | None = None,
        subject: str | None = None,
    ) -> str:
        """Render a document and send it for signature.

        Returns:
            The new signing request id.

        Raises:
            DocumentNotFound: If the document does not exist.
            DuplicateSigningRequest: If a non-terminal request is already
                attached. Checked before rendering or any provider call.
            ProviderError: If the provider rejects the request.
        """
        document = self.store.get(document_id)
        _ensure_no_active_request(document)

        resolved = self._resolve_signers(document_id, signers)
        rendered = render_document(
            document.title,
            document.body,
            resolved,
            page=self.page,
            content_format=document.content_format,
        )
        request_id = self.submit(
            document.title, rendered.pdf_bytes, resolved, rendered.fields, message, subject
        )

        try:
            self.reconciler.record_created(document_id, request_id, resolved)
        except DuplicateSigningRequest:
            # Another create won the race; withdraw the request we just made
            _logger.warning(
                "Document %s gained a signing request concurrently; cancelling %s",
                document_id,
                request_id,
            )
            try:
                self.provider.cancel(request_id)
            except ProviderError as exc:
                _logger.warning("Could not withdraw orphaned request %s: %s", request_id, exc)
            raise

        _logger.info("Document %s sent for signature: request %s", document_id, request_id)
        return request_id

    # ── Status ──────────────────────────────────────────────────────

    def status(self, request_id: str) -> RequestStatus:
        """Read-only provider status with a coarse judgement. Stores nothing."""
        report = self.provider.get_status(request_id)
        return RequestStatus(
            provider_state=report.overall_state,
            signers=list(report.signers),
            proposed_status=judge_status(report.overall_state, report.signers),
        )

    def refresh(self, document_id: str) -> Document:
        """Poll the provider and store whatever forward progress it reports."""
        return self.reconciler.poll(document_id)

    # ── Cancel / remind / download ──────────────────────────────────

    def cancel(self, document_id: str) -> Document:
        """Cancel the document's signing request.

        Idempotent: with no request attached this is a no-op, and the
        provider call treats already-cancelled requests as success.

        Raises:
            ProviderError: If the provider fails unexpectedly.
        """
        document = self.store.get(document_id)
        request_id = document.signing_request_id
        if request_id is None:
            _logger.info("Document %s has no signing request to cancel", document_id)
            return document
        self.provider.cancel(request_id)
        return self.reconciler.record_cancelled(document_id)

    def remind(self, document_id: str, signer_email: str) -> bool:
        """Nudge one signer. Document state is never modified.

        Returns:
            True if a reminder was sent, False if it was skipped because
            the signer already signed or the request is finished.

        Raises:
            SignableError: If no request is attached or the email is not
                a recipient of it.
            ProviderError: If the provider rejects the reminder.
        """
        document = self.store.get(document_id)
        request_id = document.signing_request_id
        if request_id is None:
            raise SignableError(f"Document {document_id} has no signing request")
        if is_terminal(document.signature_status):
            _logger.info(
                "Not reminding %s: request %s is %s",
                signer_email,
                request_id,
                document.signature_status.value,
            )
            return False

        record = document.signer(signer_email)
        if document.signers and record is None:
            raise SignableError(f"{signer_email} is not a recipient of request {request_id}")
        if record is not None and record.is_signed:
            _logger.info("Not reminding %s: already signed", signer_email)
            return False

        try:
            self.provider.remind(request_id, signer_email)
        except ProviderError as exc:
            _logger.warning("Reminder for %s on %s failed: %s", signer_email, request_id, exc)
            raise
        return True

    def download(self, document_id: str) -> bytes:
        """Download the fully signed PDF of a completed document.

        Raises:
            SignableError: If the document is not completed.
            ProviderError: If the download fails.
        """
        document = self.store.get(document_id)
        if (
            document.signing_request_id is None
            or document.signature_status is not SignatureStatus.COMPLETED
        ):
            raise SignableError(
                f"Document {document_id} is not completed "
                f"(status: {document.signature_status.value})"
            )
        return self.provider.download_completed_pdf(document.signing_request_id)
