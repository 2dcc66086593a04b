"""
Provider protocol abstraction for e-signature services.

Defines the interface that signing providers must implement. The
orchestrator and reconciler depend on this protocol, not on concrete
implementations; callers construct a provider and pass it in.
"""

from __future__ import annotations

__all__ = ["CreatedRequest", "ProviderStatus", "RecipientRef", "SigningProvider"]

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..core.models import Signer, SignerStatus
    from ..core.pdf import SignatureField


@dataclass(frozen=True)
class RecipientRef:
    """A recipient as echoed back by the provider after creation."""

    recipient_id: str
    email: str
    name: str = ""


@dataclass(frozen=True)
class CreatedRequest:
    """Result of a successful creation call."""

    request_id: str
    recipients: list[RecipientRef] = field(default_factory=list)


@dataclass(frozen=True)
class ProviderStatus:
    """Read-only status report for one signing request.

    Attributes:
        overall_state: Provider's own state string (e.g. "pending",
            "completed", "expired"), lower-cased.
        signers: Normalized per-signer records.
    """

    overall_state: str
    signers: list[SignerStatus] = field(default_factory=list)


class SigningProvider(Protocol):
    """Protocol for remote e-signature services.

    Implementations submit a rendered PDF with signature-field overlays
    to a provider and track the resulting signing request.
    """

    def create_signing_request(
        self,
        title: str,
        pdf_bytes: bytes,
        signers: list[Signer],
        fields: list[SignatureField],
        *,
        message: str | None = None,
        subject: str | None = None,
        test_mode: bool = False,
    ) -> CreatedRequest:
        """
        Submit a document for signature.

        Args:
            title: Document name shown to recipients.
            pdf_bytes: Rendered PDF.
            signers: Recipients in signing order.
            fields: One signature field per recipient, same order.
            message: Optional email body.
            subject: Optional email subject.
            test_mode: Create a non-binding test request.

        Returns:
            The provider's request id and recipient list.

        Raises:
            ProviderError: On any non-2xx response or connection failure.
        """
        ...

    def get_status(self, request_id: str) -> ProviderStatus:
        """Fetch the current state of a signing request.

        Raises:
            ProviderError: On any non-2xx response or connection failure.
        """
        ...

    def cancel(self, request_id: str) -> None:
        """Cancel a signing request. Already-cancelled or finished
        requests must not raise.

        Raises:
            ProviderError: On unexpected provider failures.
        """
        ...

    def remind(self, request_id: str, email: str) -> None:
        """Send a reminder email to one recipient.

        Raises:
            ProviderError: If the provider rejects the reminder.
        """
        ...

    def download_completed_pdf(self, request_id: str) -> bytes:
        """Download the fully signed PDF.

        Raises:
            ProviderError: If the document is not available.
        """
        ...
