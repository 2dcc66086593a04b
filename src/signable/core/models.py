"""
Domain records for the signing pipeline.

``Document`` is the long-lived record of a signable artifact. Signers
are derived at request time from external collaborators; per-signer
status records are cached state scoped to the document's current
signing request.
"""

from __future__ import annotations

__all__ = [
    "Document",
    "SignatureStatus",
    "Signer",
    "SignerRole",
    "SignerStatus",
    "SignerStatusCode",
    "ordered_signers",
]

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .text import SanitizeMode


class SignatureStatus(str, enum.Enum):
    """Lifecycle status of a document's signing request."""

    NONE = "none"
    PENDING = "pending"
    VIEWED = "viewed"
    PARTIALLY_SIGNED = "partially_signed"
    COMPLETED = "completed"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class SignerRole(str, enum.Enum):
    LANDLORD = "landlord"
    TENANT = "tenant"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class SignerStatusCode(str, enum.Enum):
    """Per-signer state, normalized from the provider's vocabulary."""

    AWAITING = "awaiting"
    VIEWED = "viewed"
    SIGNED = "signed"
    DECLINED = "declined"


@dataclass(frozen=True)
class Signer:
    """A party who must sign. Lower ``order`` signs first."""

    name: str
    email: str
    role: SignerRole
    order: int = 0


def ordered_signers(signers: list[Signer] | tuple[Signer, ...]) -> list[Signer]:
    """Signing sequence: by ``order``, landlords before tenants on ties."""
    role_rank = {SignerRole.LANDLORD: 0, SignerRole.TENANT: 1}
    return sorted(signers, key=lambda s: (s.order, role_rank[s.role]))


@dataclass(frozen=True)
class SignerStatus:
    """Cached status of one signer within the current signing request."""

    signer_email: str
    signer_name: str
    status_code: SignerStatusCode = SignerStatusCode.AWAITING
    signed_at: datetime | None = None

    @property
    def is_signed(self) -> bool:
        return self.status_code is SignerStatusCode.SIGNED


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Document:
    """The signable artifact of record.

    Attributes:
        id: Opaque identifier.
        title, body: Generated text; immutable once rendered.
        content_format: How the body should be sanitized.
        signing_request_id: Provider request id; None when no request
            is attached (never sent, or cancelled).
        signature_status: Lifecycle status.
        signers: Per-signer status records for the current request.
        version: Incremented on every stored update (compare-and-set token).
        updated_at: Time of the last stored update.
    """

    id: str
    title: str
    body: str
    content_format: SanitizeMode = SanitizeMode.MARKUP
    signing_request_id: str | None = None
    signature_status: SignatureStatus = SignatureStatus.NONE
    signers: tuple[SignerStatus, ...] = ()
    version: int = 0
    updated_at: datetime = field(default_factory=_utcnow)

    def signer(self, email: str) -> SignerStatus | None:
        """Look up a signer record by email (case-insensitive)."""
        wanted = email.strip().lower()
        for record in self.signers:
            if record.signer_email.lower() == wanted:
                return record
        return None
