"""
Signature lifecycle state machine.

Two drivers feed this module: provider webhook deliveries (asynchronous,
possibly duplicated or out of order) and on-demand status polls. Both
end up in :func:`next_status`, which only ever moves a document forward:

    none -> pending -> {viewed, partially_signed} -> completed
    pending | viewed | partially_signed -> {declined, expired}
    any status with a request attached -> cancelled (explicit cancel only)

``completed``, ``declined``, ``cancelled`` and ``expired`` are terminal.
A brand-new signing request restarts the machine at ``pending``.
"""

from __future__ import annotations

__all__ = [
    "EventKind",
    "SEVERITY",
    "SignatureEvent",
    "TERMINAL",
    "is_terminal",
    "judge_status",
    "next_status",
    "restart_base",
]

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from ..errors import InvalidStateTransition
from .models import SignatureStatus, SignerStatus

_S = SignatureStatus

SEVERITY: dict[SignatureStatus, int] = {
    _S.NONE: 0,
    _S.PENDING: 1,
    _S.VIEWED: 2,
    _S.PARTIALLY_SIGNED: 3,
    _S.COMPLETED: 4,
}

TERMINAL: frozenset[SignatureStatus] = frozenset(
    {_S.COMPLETED, _S.DECLINED, _S.CANCELLED, _S.EXPIRED}
)

# Forward moves allowed by the transition table, keyed by proposed status
_ALLOWED_FROM: dict[SignatureStatus, frozenset[SignatureStatus]] = {
    _S.PENDING: frozenset({_S.NONE}),
    _S.VIEWED: frozenset({_S.PENDING}),
    _S.PARTIALLY_SIGNED: frozenset({_S.PENDING, _S.VIEWED}),
    _S.COMPLETED: frozenset({_S.PENDING, _S.VIEWED, _S.PARTIALLY_SIGNED}),
    _S.DECLINED: frozenset({_S.PENDING, _S.VIEWED, _S.PARTIALLY_SIGNED}),
    _S.EXPIRED: frozenset({_S.PENDING, _S.VIEWED, _S.PARTIALLY_SIGNED}),
}


def is_terminal(status: SignatureStatus) -> bool:
    return status in TERMINAL


def restart_base(current: SignatureStatus) -> SignatureStatus:
    """Status a new signing request starts from.

    A terminal request is finished; creating a new one restarts the
    machine as if nothing had been sent.
    """
    return _S.NONE if is_terminal(current) else current


def next_status(
    current: SignatureStatus,
    proposed: SignatureStatus,
    *,
    explicit_cancel: bool = False,
) -> SignatureStatus:
    """Decide the status to write for a proposal.

    Args:
        current: Stored status of the document.
        proposed: Status suggested by an event, poll, or user action.
        explicit_cancel: True only for the user-initiated cancel path;
            ``cancelled`` is never reachable otherwise.

    Returns:
        The status to store. Equal to *current* when the proposal is a
        replay of the current state.

    Raises:
        InvalidStateTransition: If the table does not allow the move,
            including every attempt to leave a terminal status or to move
            backward in severity.
    """
    if proposed is current:
        return current

    if proposed is _S.CANCELLED:
        if explicit_cancel and current is not _S.NONE:
            return proposed
        raise InvalidStateTransition(current.value, proposed.value)

    allowed = _ALLOWED_FROM.get(proposed)
    if allowed is None or current not in allowed:
        raise InvalidStateTransition(current.value, proposed.value)
    return proposed


# ── Provider judgements ──────────────────────────────────────────────


def judge_status(
    provider_state: str, signers: Sequence[SignerStatus]
) -> SignatureStatus | None:
    """Derive a coarse status proposal from a provider status report.

    ``completed`` when the provider reports completion or every signer
    has signed; ``partially_signed`` when at least one signer has;
    ``declined`` / ``expired`` from the provider's terminal states.
    Returns None when the report carries no actionable change, so a
    cached status that is already further along is left alone.
    """
    state = (provider_state or "").strip().lower()
    if state == "completed" or (signers and all(s.is_signed for s in signers)):
        return _S.COMPLETED
    if state in ("declined", "cancelled", "canceled"):
        # The provider reports a signer decline as a cancelled document
        return _S.DECLINED
    if state == "expired":
        return _S.EXPIRED
    if any(s.is_signed for s in signers):
        return _S.PARTIALLY_SIGNED
    return None


# ── Webhook events ───────────────────────────────────────────────────


class EventKind(str, enum.Enum):
    """Provider event types the reconciler understands."""

    SENT = "document_sent"
    VIEWED = "document_viewed"
    SIGNED = "document_signed"
    COMPLETED = "document_completed"
    DECLINED = "document_declined"
    EXPIRED = "document_expired"


@dataclass(frozen=True)
class SignatureEvent:
    """A normalized provider event.

    Attributes:
        kind: What happened.
        request_id: Provider signing-request id the event refers to.
        recipient_email: Signer the event concerns, if the provider said.
        occurred_at: When the provider says the event happened, if it
            said; stamped as the signing time of signers it completes.
    """

    kind: EventKind
    request_id: str
    recipient_email: str | None = None
    occurred_at: datetime | None = None

    @property
    def proposed_status(self) -> SignatureStatus:
        return _EVENT_STATUS[self.kind]


_EVENT_STATUS: dict[EventKind, SignatureStatus] = {
    EventKind.SENT: _S.PENDING,
    EventKind.VIEWED: _S.VIEWED,
    EventKind.SIGNED: _S.PARTIALLY_SIGNED,
    EventKind.COMPLETED: _S.COMPLETED,
    EventKind.DECLINED: _S.DECLINED,
    EventKind.EXPIRED: _S.EXPIRED,
}
