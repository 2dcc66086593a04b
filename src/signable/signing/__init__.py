"""Signing request orchestration, status reconciliation, and webhooks."""

from __future__ import annotations

from .orchestrator import RequestStatus, SignersLoader, SigningOrchestrator
from .reconciler import StatusReconciler, TransitionCallback
from .webhooks import handle_webhook, parse_webhook, verify_event_hash

__all__ = [
    "RequestStatus",
    "SignersLoader",
    "SigningOrchestrator",
    "StatusReconciler",
    "TransitionCallback",
    "handle_webhook",
    "parse_webhook",
    "verify_event_hash",
]
