"""
Provider webhook handling.

Three payload shapes are accepted::

    # flat
    {"event_type": "document_signed", "time": 1700000000,
     "document": {"id": "..."},
     "recipient": {"email": "...", "name": "..."}}

    # nested (SignWell v1)
    {"event": {"type": "document_signed", "time": 1700000000,
               "hash": "<hex>", "related_signer": {"email": "...", "name": "..."}},
     "data": {"object": {"id": "..."}}}

    # Dropbox Sign callback (the ``json`` form field of the delivery)
    {"event": {"event_type": "signature_request_signed", "event_time": "1700000000",
               "event_hash": "<hex>",
               "event_metadata": {"related_signature_id": "..."}},
     "signature_request": {"signature_request_id": "...", "is_complete": false,
                           "signatures": [{"signature_id": "...",
                                           "signer_email_address": "...",
                                           "signed_at": 1700000000}]}}

:func:`handle_webhook` always acknowledges. A provider must never keep
redelivering because of a malformed payload, an unknown document, or an
internal error; those are logged instead.
"""

from __future__ import annotations

__all__ = [
    "ACK",
    "DROPBOX_SIGN_ACK",
    "decode_payload",
    "handle_webhook",
    "is_dropbox_sign_payload",
    "parse_webhook",
    "verify_event_hash",
]

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ..core.lifecycle import EventKind, SignatureEvent

if TYPE_CHECKING:
    from .reconciler import StatusReconciler

_logger = logging.getLogger(__name__)

ACK: dict[str, bool] = {"received": True}

# Dropbox Sign treats any other response body as a failed delivery.
DROPBOX_SIGN_ACK = "Hello API Event Received"

_DROPBOX_SIGN_EVENTS: dict[str, EventKind] = {
    "signature_request_sent": EventKind.SENT,
    "signature_request_viewed": EventKind.VIEWED,
    "signature_request_signed": EventKind.SIGNED,
    "signature_request_all_signed": EventKind.COMPLETED,
    "signature_request_declined": EventKind.DECLINED,
    "signature_request_expired": EventKind.EXPIRED,
}


def _as_dict(value: object) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


def _event_time(value: object) -> datetime | None:
    """Epoch seconds (number or numeric string) or ISO 8601, as aware UTC."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        try:
            value = float(value)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def is_dropbox_sign_payload(payload: object) -> bool:
    """True for a Dropbox Sign callback (``event.event_type`` present)."""
    return isinstance(payload, dict) and "event_type" in _as_dict(payload.get("event"))


# ── Parsing ──────────────────────────────────────────────────────────


def _parse_dropbox_sign(payload: dict[str, Any]) -> SignatureEvent | None:
    event = _as_dict(payload.get("event"))
    event_type = event.get("event_type")
    request = _as_dict(payload.get("signature_request"))
    request_id = _text(request.get("signature_request_id"))

    if event_type == "callback_test":
        _logger.info("Dropbox Sign callback test received")
        return None
    if not isinstance(event_type, str) or request_id is None:
        _logger.warning("Malformed Dropbox Sign callback: missing event type or request id")
        return None
    kind = _DROPBOX_SIGN_EVENTS.get(event_type)
    if kind is None:
        _logger.info("Unhandled webhook event type: %s", event_type)
        return None
    if kind is EventKind.SIGNED and request.get("is_complete") is True:
        kind = EventKind.COMPLETED

    occurred_at = _event_time(event.get("event_time"))
    signature_id = _as_dict(event.get("event_metadata")).get("related_signature_id")
    email = None
    for signature in request.get("signatures") or []:
        signature = _as_dict(signature)
        if signature_id and signature.get("signature_id") == signature_id:
            email = _text(signature.get("signer_email_address"))
            occurred_at = _event_time(signature.get("signed_at")) or occurred_at
            break

    return SignatureEvent(
        kind=kind, request_id=request_id, recipient_email=email, occurred_at=occurred_at
    )


def parse_webhook(payload: object) -> SignatureEvent | None:
    """Normalize a webhook payload into a :class:`SignatureEvent`.

    Returns:
        The event, or None if the payload is malformed, is a provider
        test delivery, or the event type is not one the lifecycle tracks.
    """
    if not isinstance(payload, dict):
        _logger.warning("Webhook payload is not an object: %s", type(payload).__name__)
        return None
    if is_dropbox_sign_payload(payload):
        return _parse_dropbox_sign(payload)

    event = payload.get("event")
    if isinstance(event, dict):
        event_type = event.get("type")
        event_time = event.get("time")
        request_id = _as_dict(_as_dict(payload.get("data")).get("object")).get("id")
        recipient = _as_dict(event.get("related_signer"))
    else:
        event_type = payload.get("event_type")
        event_time = payload.get("time")
        request_id = _as_dict(payload.get("document")).get("id")
        recipient = _as_dict(payload.get("recipient"))

    if not isinstance(event_type, str) or not isinstance(request_id, str) or not request_id:
        _logger.warning("Malformed webhook payload: missing event type or document id")
        return None
    try:
        kind = EventKind(event_type)
    except ValueError:
        _logger.info("Unhandled webhook event type: %s", event_type)
        return None

    return SignatureEvent(
        kind=kind,
        request_id=request_id,
        recipient_email=_text(recipient.get("email")),
        occurred_at=_event_time(event_time),
    )


def verify_event_hash(payload: dict[str, Any], secret: str) -> bool:
    """Check the HMAC-SHA256 event hash of a signed payload.

    SignWell signs ``"<type>@<time>"`` with the webhook secret; Dropbox
    Sign signs ``"<event_time><event_type>"`` with the account API key,
    which is then the secret to pass here. Payloads without a hash never
    verify.
    """
    event = _as_dict(payload.get("event"))
    if is_dropbox_sign_payload(payload):
        received = event.get("event_hash")
        message = f"{event.get('event_time', '')}{event.get('event_type', '')}"
    else:
        received = event.get("hash")
        message = f"{event.get('type', '')}@{event.get('time', '')}"
    if not isinstance(received, str) or not received:
        return False
    expected = hmac.new(secret.encode("utf-8"), message.encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, received.lower())


# ── Delivery ─────────────────────────────────────────────────────────


def decode_payload(body: bytes | str) -> object | None:
    """Decode a raw delivery body; None (logged) when it is not JSON."""
    try:
        return json.loads(body)
    except (ValueError, TypeError) as exc:
        _logger.warning("Webhook body is not valid JSON: %s", exc)
        return None


def handle_webhook(
    reconciler: StatusReconciler,
    body: object,
    secret: str | None = None,
) -> dict[str, bool]:
    """Process one webhook delivery and return the acknowledgement.

    Args:
        reconciler: Status reconciler to apply the event to.
        body: Raw request body (bytes or str), or an already-decoded
            payload.
        secret: Webhook secret (the API key for Dropbox Sign); when
            given, unverifiable deliveries are dropped.

    Returns:
        ``{"received": True}``, unconditionally.
    """
    try:
        payload: object = body
        if isinstance(body, (bytes, str)):
            payload = decode_payload(body)
            if payload is None:
                return dict(ACK)
        if secret and not (isinstance(payload, dict) and verify_event_hash(payload, secret)):
            _logger.warning("Webhook event hash verification failed, ignoring delivery")
            return dict(ACK)
        event = parse_webhook(payload)
        if event is not None:
            _logger.info("Webhook: %s for request %s", event.kind.value, event.request_id)
            reconciler.apply_event(event)
    except Exception:
        # Acknowledge anyway so the provider does not redeliver forever
        _logger.exception("Error processing webhook delivery")
    return dict(ACK)
