"""
Webhook receiver for provider event deliveries.

A small Flask app:

- ``POST /`` or ``POST /<any path>``: body handed to
  :func:`~signable.signing.webhooks.handle_webhook`; always answers
  ``200 {"received": true}``, or ``200 Hello API Event Received`` for a
  Dropbox Sign callback. Dropbox Sign posts its event as the ``json``
  field of a form; other providers post raw JSON, with a Content-Length
  or chunked.
- ``GET`` on the same paths: ``200 {"status": "ok", "service": "signwell-webhook"}``
  (the provider checks the URL this way when a webhook is registered).
"""

from __future__ import annotations

__all__ = ["HEALTH_RESPONSE", "create_app", "log_transition", "serve"]

import logging
from typing import TYPE_CHECKING

from flask import Flask, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from ..constants import MAX_RESPONSE_SIZE
from ..signing.webhooks import (
    ACK,
    DROPBOX_SIGN_ACK,
    decode_payload,
    handle_webhook,
    is_dropbox_sign_payload,
)

if TYPE_CHECKING:
    from ..core.models import Document
    from ..signing.reconciler import StatusReconciler

_logger = logging.getLogger(__name__)

HEALTH_RESPONSE: dict[str, str] = {"status": "ok", "service": "signwell-webhook"}

_FORM_MIMETYPES = frozenset({"multipart/form-data", "application/x-www-form-urlencoded"})


def log_transition(before: Document, after: Document) -> None:
    """Default transition notification: one log line per status change."""
    _logger.info(
        "Document %r (%s) is now %s (was %s)",
        after.title,
        after.id,
        after.signature_status.value,
        before.signature_status.value,
    )


def _delivery_body() -> bytes | str:
    if request.mimetype in _FORM_MIMETYPES:
        return request.form.get("json", "")
    return request.get_data()


def create_app(reconciler: StatusReconciler, *, secret: str | None = None) -> Flask:
    """Build the webhook receiver app around a reconciler."""
    app = Flask(__name__)
    # Enforced by Werkzeug while reading, chunked bodies included
    app.config["MAX_CONTENT_LENGTH"] = MAX_RESPONSE_SIZE

    @app.route("/", methods=["GET"])
    @app.route("/<path:_path>", methods=["GET"])
    def health(_path: str = ""):
        return jsonify(HEALTH_RESPONSE), 200

    @app.route("/", methods=["POST"])
    @app.route("/<path:_path>", methods=["POST"])
    def receive(_path: str = ""):
        limit = app.config["MAX_CONTENT_LENGTH"]
        if request.content_length is not None and request.content_length > limit:
            _logger.warning(
                "Webhook delivery of %d bytes exceeds %d, acknowledging",
                request.content_length,
                limit,
            )
            return jsonify(dict(ACK)), 200
        try:
            body = _delivery_body()
        except RequestEntityTooLarge:
            _logger.warning("Webhook delivery exceeds %d bytes, acknowledging", limit)
            return jsonify(dict(ACK)), 200

        payload = decode_payload(body)
        if payload is not None:
            handle_webhook(reconciler, payload, secret)
        if is_dropbox_sign_payload(payload):
            return DROPBOX_SIGN_ACK, 200, {"Content-Type": "text/plain"}
        return jsonify(dict(ACK)), 200

    return app


def serve(
    reconciler: StatusReconciler,
    *,
    host: str = "127.0.0.1",
    port: int,
    secret: str | None = None,
) -> None:
    """Run the webhook receiver until interrupted."""
    app = create_app(reconciler, secret=secret)
    _logger.info(
        "Listening for webhooks on http://%s:%d%s",
        host,
        port,
        " (event hash verification on)" if secret else "",
    )
    app.run(host=host, port=port, debug=False, threaded=True)
    _logger.info("Webhook receiver stopped")
