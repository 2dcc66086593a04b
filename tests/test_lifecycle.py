"""Tests for signable.core.lifecycle -- signature status state machine."""

from __future__ import annotations

import itertools

import pytest

from signable.core.lifecycle import (
    SEVERITY,
    TERMINAL,
    EventKind,
    SignatureEvent,
    is_terminal,
    judge_status,
    next_status,
    restart_base,
)
from signable.core.models import SignatureStatus, SignerStatus, SignerStatusCode
from signable.errors import InvalidStateTransition

S = SignatureStatus


def _signer(email: str, code: SignerStatusCode = SignerStatusCode.AWAITING) -> SignerStatus:
    return SignerStatus(signer_email=email, signer_name=email.split("@")[0], status_code=code)


# ── next_status: allowed moves ──────────────────────────────────────


@pytest.mark.parametrize(
    ("current", "proposed"),
    [
        (S.NONE, S.PENDING),
        (S.PENDING, S.VIEWED),
        (S.PENDING, S.PARTIALLY_SIGNED),
        (S.VIEWED, S.PARTIALLY_SIGNED),
        (S.PENDING, S.COMPLETED),
        (S.VIEWED, S.COMPLETED),
        (S.PARTIALLY_SIGNED, S.COMPLETED),
        (S.PENDING, S.DECLINED),
        (S.VIEWED, S.DECLINED),
        (S.PARTIALLY_SIGNED, S.DECLINED),
        (S.PENDING, S.EXPIRED),
        (S.PARTIALLY_SIGNED, S.EXPIRED),
    ],
)
def test_forward_transitions(current, proposed):
    assert next_status(current, proposed) is proposed


@pytest.mark.parametrize("status", list(SignatureStatus))
def test_same_status_is_noop(status):
    assert next_status(status, status) is status


# ── next_status: rejected moves ─────────────────────────────────────


@pytest.mark.parametrize(
    ("current", "proposed"),
    [
        (S.COMPLETED, S.VIEWED),
        (S.COMPLETED, S.PENDING),
        (S.PARTIALLY_SIGNED, S.VIEWED),
        (S.VIEWED, S.PENDING),
        (S.DECLINED, S.COMPLETED),
        (S.EXPIRED, S.PARTIALLY_SIGNED),
        (S.CANCELLED, S.PENDING),
        (S.NONE, S.VIEWED),
        (S.NONE, S.COMPLETED),
        (S.COMPLETED, S.DECLINED),
    ],
)
def test_backward_or_out_of_terminal_rejected(current, proposed):
    with pytest.raises(InvalidStateTransition):
        next_status(current, proposed)


def test_cancel_requires_explicit_flag():
    with pytest.raises(InvalidStateTransition):
        next_status(S.PENDING, S.CANCELLED)


@pytest.mark.parametrize(
    "current", [S.PENDING, S.VIEWED, S.PARTIALLY_SIGNED, S.COMPLETED, S.EXPIRED]
)
def test_explicit_cancel_from_any_sent_status(current):
    assert next_status(current, S.CANCELLED, explicit_cancel=True) is S.CANCELLED


def test_explicit_cancel_from_none_rejected():
    with pytest.raises(InvalidStateTransition):
        next_status(S.NONE, S.CANCELLED, explicit_cancel=True)


def test_no_automatic_transition_leaves_terminal():
    for terminal, proposed in itertools.product(TERMINAL, SignatureStatus):
        if proposed is terminal:
            continue
        with pytest.raises(InvalidStateTransition):
            next_status(terminal, proposed)


def test_accepted_moves_never_lower_severity():
    for current, proposed in itertools.product(SEVERITY, SEVERITY):
        try:
            result = next_status(current, proposed)
        except InvalidStateTransition:
            continue
        assert SEVERITY[result] >= SEVERITY[current]


# ── Helpers ─────────────────────────────────────────────────────────


def test_terminal_set():
    assert {s for s in SignatureStatus if is_terminal(s)} == {
        S.COMPLETED,
        S.DECLINED,
        S.CANCELLED,
        S.EXPIRED,
    }


@pytest.mark.parametrize("status", sorted(TERMINAL, key=lambda s: s.value))
def test_restart_base_resets_terminal(status):
    assert restart_base(status) is S.NONE
    assert next_status(restart_base(status), S.PENDING) is S.PENDING


def test_restart_base_keeps_active_status():
    assert restart_base(S.PENDING) is S.PENDING


# ── judge_status ────────────────────────────────────────────────────


def test_judge_completed_from_provider_state():
    assert judge_status("completed", []) is S.COMPLETED
    assert judge_status("  Completed ", []) is S.COMPLETED


def test_judge_completed_when_everyone_signed():
    signers = [
        _signer("a@x.com", SignerStatusCode.SIGNED),
        _signer("b@x.com", SignerStatusCode.SIGNED),
    ]
    assert judge_status("pending", signers) is S.COMPLETED


def test_judge_partially_signed():
    signers = [_signer("a@x.com", SignerStatusCode.SIGNED), _signer("b@x.com")]
    assert judge_status("pending", signers) is S.PARTIALLY_SIGNED


@pytest.mark.parametrize("state", ["declined", "cancelled", "canceled"])
def test_judge_declined(state):
    assert judge_status(state, [_signer("a@x.com")]) is S.DECLINED


def test_judge_expired():
    assert judge_status("expired", []) is S.EXPIRED


def test_judge_nothing_to_report():
    assert judge_status("pending", [_signer("a@x.com"), _signer("b@x.com")]) is None
    assert judge_status("", []) is None


def test_judge_viewed_signers_do_not_propose():
    assert judge_status("pending", [_signer("a@x.com", SignerStatusCode.VIEWED)]) is None


# ── Events ──────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("kind", "status"),
    [
        (EventKind.SENT, S.PENDING),
        (EventKind.VIEWED, S.VIEWED),
        (EventKind.SIGNED, S.PARTIALLY_SIGNED),
        (EventKind.COMPLETED, S.COMPLETED),
        (EventKind.DECLINED, S.DECLINED),
        (EventKind.EXPIRED, S.EXPIRED),
    ],
)
def test_event_proposed_status(kind, status):
    assert SignatureEvent(kind=kind, request_id="r").proposed_status is status


def test_event_kind_values_match_provider_names():
    assert EventKind("document_completed") is EventKind.COMPLETED
