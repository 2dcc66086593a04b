"""
Status reconciler.

Webhook deliveries and on-demand polls are two producers feeding one
transition function (:func:`~signable.core.lifecycle.next_status`).
Every write goes through a compare-and-set on the document version:
a conflicting concurrent write makes the reconciler re-read the
document and decide again, so the forward-only rule holds even when a
webhook races a poll.

``on_transition(before, after)`` is called once per stored status
change. A replayed event finds the status already applied, stores
nothing, and therefore notifies nobody.
"""

from __future__ import annotations

__all__ = ["StatusReconciler", "TransitionCallback"]

import dataclasses
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..constants import DEFAULT_RECONCILE_ATTEMPTS
from ..core.lifecycle import (
    EventKind,
    SignatureEvent,
    is_terminal,
    judge_status,
    next_status,
    restart_base,
)
from ..core.models import (
    Document,
    SignatureStatus,
    Signer,
    SignerStatus,
    SignerStatusCode,
    ordered_signers,
)
from ..errors import DuplicateSigningRequest, InvalidStateTransition, SignableError

if TYPE_CHECKING:
    from ..network.protocol import SigningProvider
    from ..storage.protocol import DocumentStore

_logger = logging.getLogger(__name__)

TransitionCallback = Callable[[Document, Document], None]

# Per-signer progress only moves forward; a decline is final
_SIGNER_RANK: dict[SignerStatusCode, int] = {
    SignerStatusCode.AWAITING: 0,
    SignerStatusCode.VIEWED: 1,
    SignerStatusCode.SIGNED: 2,
    SignerStatusCode.DECLINED: 3,
}

_EVENT_SIGNER_CODE: dict[EventKind, SignerStatusCode] = {
    EventKind.VIEWED: SignerStatusCode.VIEWED,
    EventKind.SIGNED: SignerStatusCode.SIGNED,
    EventKind.DECLINED: SignerStatusCode.DECLINED,
}


def _advance_signer(
    record: SignerStatus, code: SignerStatusCode, signed_at: datetime | None = None
) -> SignerStatus:
    if _SIGNER_RANK[code] <= _SIGNER_RANK[record.status_code]:
        return record
    return dataclasses.replace(
        record,
        status_code=code,
        signed_at=signed_at if code is SignerStatusCode.SIGNED else None,
    )


def _merge_signers(
    current: Sequence[SignerStatus], reported: Sequence[SignerStatus]
) -> tuple[SignerStatus, ...]:
    """Fold provider-reported signer states into the cached records."""
    if not current:
        return tuple(reported)
    by_email = {r.signer_email.lower(): r for r in reported}
    merged = []
    for record in current:
        report = by_email.get(record.signer_email.lower())
        if report is not None:
            record = _advance_signer(record, report.status_code, report.signed_at)
        merged.append(record)
    return tuple(merged)


class StatusReconciler:
    """Serialized, forward-only writer of document signature status.

    Args:
        store: Document store providing compare-and-set.
        provider: Provider used by :meth:`poll`.
        on_transition: Called with ``(before, after)`` after each stored
            status change.
        max_attempts: Compare-and-set attempts before giving up.
    """

    def __init__(
        self,
        store: DocumentStore,
        provider: SigningProvider | None = None,
        *,
        on_transition: TransitionCallback | None = None,
        max_attempts: int = DEFAULT_RECONCILE_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.provider = provider
        self.on_transition = on_transition
        self.max_attempts = max_attempts

    # ── Write path ──────────────────────────────────────────────────

    def _update(
        self, document_id: str, decide: Callable[[Document], Document | None]
    ) -> Document:
        """Read, decide, compare-and-set; re-read and re-decide on conflict.

        *decide* returns the document to store, or None to leave it alone.
        """
        for attempt in range(1, self.max_attempts + 1):
            current = self.store.get(document_id)
            updated = decide(current)
            if updated is None or updated == current:
                return current
            stored = dataclasses.replace(
                updated, version=current.version + 1, updated_at=datetime.now(timezone.utc)
            )
            if self.store.compare_and_set(current, stored):
                if stored.signature_status is not current.signature_status:
                    _logger.info(
                        "Document %s: %s -> %s",
                        document_id,
                        current.signature_status.value,
                        stored.signature_status.value,
                    )
                    self._notify(current, stored)
                return stored
            _logger.debug(
                "Concurrent update on %s (attempt %d/%d), retrying",
                document_id,
                attempt,
                self.max_attempts,
            )
        raise SignableError(
            f"Could not update document {document_id} after {self.max_attempts} "
            "conflicting concurrent writes"
        )

    def _notify(self, before: Document, after: Document) -> None:
        if self.on_transition is None:
            return
        try:
            self.on_transition(before, after)
        except Exception:
            # The status is already stored; a failed notification must not undo it
            _logger.exception("Transition callback failed for document %s", after.id)

    @staticmethod
    def _propose(current: Document, proposed: SignatureStatus | None) -> SignatureStatus:
        """Apply the transition table; disallowed proposals keep the current status."""
        if proposed is None:
            return current.signature_status
        try:
            return next_status(current.signature_status, proposed)
        except InvalidStateTransition as exc:
            _logger.warning("Ignoring status proposal for document %s: %s", current.id, exc)
            return current.signature_status

    # ── Producers ───────────────────────────────────────────────────

    def apply_event(self, event: SignatureEvent) -> Document | None:
        """Apply a provider webhook event.

        Returns:
            The document after the event, or None if no document has
            *event.request_id* as its current signing request.
        """
        found = self.store.find_by_signing_request(event.request_id)
        if found is None:
            _logger.warning(
                "No document for signing request %s (%s), ignoring",
                event.request_id,
                event.kind.value,
            )
            return None

        def decide(current: Document) -> Document | None:
            if current.signing_request_id != event.request_id:
                _logger.info(
                    "Stale %s event for request %s on document %s, ignoring",
                    event.kind.value,
                    event.request_id,
                    current.id,
                )
                return None
            signers = self._signers_after_event(current, event)
            proposed = event.proposed_status
            if event.kind is EventKind.SIGNED and signers and all(s.is_signed for s in signers):
                proposed = SignatureStatus.COMPLETED
            return dataclasses.replace(
                current,
                signature_status=self._propose(current, proposed),
                signers=signers,
            )

        return self._update(found.id, decide)

    @staticmethod
    def _signers_after_event(current: Document, event: SignatureEvent) -> tuple[SignerStatus, ...]:
        if event.kind is EventKind.COMPLETED:
            return tuple(
                _advance_signer(s, SignerStatusCode.SIGNED, event.occurred_at)
                for s in current.signers
            )
        code = _EVENT_SIGNER_CODE.get(event.kind)
        if code is None or not event.recipient_email:
            return current.signers
        wanted = event.recipient_email.strip().lower()
        return tuple(
            _advance_signer(s, code, event.occurred_at) if s.signer_email.lower() == wanted else s
            for s in current.signers
        )

    def poll(self, document_id: str) -> Document:
        """Fetch provider status for the document's request and apply it.

        Raises:
            ProviderError: If the status call fails.
        """
        document = self.store.get(document_id)
        request_id = document.signing_request_id
        if request_id is None:
            _logger.debug("Document %s has no signing request, nothing to poll", document_id)
            return document
        if self.provider is None:
            raise SignableError("StatusReconciler.poll() needs a provider")

        report = self.provider.get_status(request_id)
        proposed = judge_status(report.overall_state, report.signers)

        def decide(current: Document) -> Document | None:
            if current.signing_request_id != request_id:
                return None
            return dataclasses.replace(
                current,
                signature_status=self._propose(current, proposed),
                signers=_merge_signers(current.signers, report.signers),
            )

        return self._update(document_id, decide)

    # ── Orchestrator hooks ──────────────────────────────────────────

    def record_created(
        self, document_id: str, request_id: str, signers: Sequence[Signer]
    ) -> Document:
        """Attach a new signing request and start it at ``pending``.

        Raises:
            DuplicateSigningRequest: If a non-terminal request was attached
                in the meantime.
        """
        records = tuple(
            SignerStatus(signer_email=s.email, signer_name=s.name)
            for s in ordered_signers(list(signers))
        )

        def decide(current: Document) -> Document:
            if current.signing_request_id and not is_terminal(current.signature_status):
                raise DuplicateSigningRequest(
                    f"Document {document_id} already has active signing request "
                    f"{current.signing_request_id}"
                )
            status = next_status(restart_base(current.signature_status), SignatureStatus.PENDING)
            return dataclasses.replace(
                current,
                signing_request_id=request_id,
                signature_status=status,
                signers=records,
            )

        return self._update(document_id, decide)

    def record_cancelled(self, document_id: str) -> Document:
        """Mark the document cancelled and detach its request.

        A document with no request attached is returned unchanged.
        """

        def decide(current: Document) -> Document | None:
            if current.signing_request_id is None:
                return None
            return dataclasses.replace(
                current,
                signing_request_id=None,
                signature_status=next_status(
                    current.signature_status, SignatureStatus.CANCELLED, explicit_cancel=True
                ),
                signers=(),
            )

        return self._update(document_id, decide)
