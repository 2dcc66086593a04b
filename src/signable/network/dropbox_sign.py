"""
Dropbox Sign (formerly HelloSign) REST client.

Implements the :class:`~signable.network.protocol.SigningProvider`
protocol over the Dropbox Sign v3 API:

- ``POST /signature_request/send``          create and send (multipart)
- ``GET  /signature_request/{id}``         status
- ``POST /signature_request/cancel/{id}``  cancel
- ``POST /signature_request/remind/{id}``  reminder email
- ``GET  /signature_request/files/{id}``   signed artifact (``file_type=pdf``)

Requests authenticate with HTTP Basic auth: the API key is the user
name, the password is empty.
"""

from __future__ import annotations

__all__ = [
    "DropboxSignClient",
    "build_send_fields",
    "parse_created",
    "parse_status",
]

import base64
import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlencode

from urllib3 import encode_multipart_formdata

from ..constants import PDF_MAGIC
from ..core.models import SignerStatus, SignerStatusCode, ordered_signers
from ..core.pdf import provider_page_number
from ..errors import ProviderError
from .protocol import CreatedRequest, ProviderStatus, RecipientRef
from .transport import http_get, http_post

if TYPE_CHECKING:
    from ..config import ProviderSettings
    from ..core.models import Signer
    from ..core.pdf import SignatureField

_logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Please review and sign this document at your earliest convenience."

# Signature field box, in points
FIELD_WIDTH = 200
FIELD_HEIGHT = 30

_ALREADY_GONE = frozenset({404, 409, 410})

_SIGNATURE_STATES: dict[str, SignerStatusCode] = {
    "signed": SignerStatusCode.SIGNED,
    "declined": SignerStatusCode.DECLINED,
}


# ── Request building ─────────────────────────────────────────────────


def build_send_fields(
    title: str,
    pdf_bytes: bytes,
    signers: list[Signer],
    fields: list[SignatureField],
    *,
    message: str | None = None,
    subject: str | None = None,
    test_mode: bool = False,
) -> list[tuple[str, Any]]:
    """Build the multipart form fields of ``POST /signature_request/send``.

    Signers are indexed ``0..n-1`` in signing order; each signature field
    names its signer by that index, derived from the field's 1-based
    ``recipient_id``.
    """
    sequence = ordered_signers(signers)
    if len(fields) != len(sequence):
        raise ProviderError(
            f"Expected one signature field per signer, got {len(fields)} field(s) "
            f"for {len(sequence)} signer(s)"
        )
    form: list[tuple[str, Any]] = [
        ("title", title),
        ("subject", subject or f"Please sign: {title}"),
        ("message", message or DEFAULT_MESSAGE),
        ("test_mode", "1" if test_mode else "0"),
    ]
    for idx, signer in enumerate(sequence):
        form += [
            (f"signers[{idx}][name]", signer.name),
            (f"signers[{idx}][email_address]", signer.email),
            (f"signers[{idx}][order]", str(idx)),
        ]
    form.append(("files[0]", (f"{title}.pdf", pdf_bytes, "application/pdf")))
    form_fields = [
        {
            "document_index": 0,
            "api_id": f"signature_{f.recipient_id}",
            "name": f"{f.recipient_role.label} Signature",
            "type": "signature",
            "required": True,
            "signer": int(f.recipient_id) - 1,
            "page": provider_page_number(f.page),
            "x": round(f.x),
            "y": round(f.y),
            "width": FIELD_WIDTH,
            "height": FIELD_HEIGHT,
        }
        for f in fields
    ]
    form.append(("form_fields_per_document", json.dumps(form_fields)))
    return form


# ── Response parsing ────────────────────────────────────────────────


def _signature_request(raw: bytes, what: str) -> dict[str, Any]:
    try:
        data = json.loads(raw.decode("utf-8")) if raw else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProviderError(
            f"Malformed {what} response from provider: {exc}",
            body=raw[:500].decode("utf-8", errors="replace"),
        ) from exc
    request = data.get("signature_request") if isinstance(data, dict) else None
    if not isinstance(request, dict):
        raise ProviderError(
            f"Provider {what} response has no signature_request", body=str(data)[:500]
        )
    return request


def _epoch(value: object) -> datetime | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value, timezone.utc)


def parse_created(raw: bytes) -> CreatedRequest:
    """Parse a ``POST /signature_request/send`` response."""
    request = _signature_request(raw, "create")
    request_id = request.get("signature_request_id")
    if not isinstance(request_id, str) or not request_id:
        raise ProviderError(
            "Provider response is missing the signature request id", body=str(request)[:500]
        )
    recipients = [
        RecipientRef(
            recipient_id=str(s.get("signature_id", "")),
            email=str(s.get("signer_email_address", "")),
            name=str(s.get("signer_name") or ""),
        )
        for s in request.get("signatures") or []
        if isinstance(s, dict)
    ]
    return CreatedRequest(request_id=request_id, recipients=recipients)


def parse_status(raw: bytes) -> ProviderStatus:
    """Parse a ``GET /signature_request/{id}`` response.

    The overall state is ``completed``, ``declined`` or ``error`` from
    the request flags, otherwise ``pending``. A signer whose signature
    is still awaited but who has opened the request counts as viewed.
    """
    request = _signature_request(raw, "status")
    if request.get("is_complete") is True:
        overall = "completed"
    elif request.get("is_declined") is True:
        overall = "declined"
    elif request.get("has_error") is True:
        overall = "error"
    else:
        overall = "pending"

    signers: list[SignerStatus] = []
    for s in request.get("signatures") or []:
        if not isinstance(s, dict):
            continue
        state = str(s.get("status_code") or "").strip().lower()
        code = _SIGNATURE_STATES.get(state, SignerStatusCode.AWAITING)
        if code is SignerStatusCode.AWAITING and s.get("last_viewed_at"):
            code = SignerStatusCode.VIEWED
        signers.append(
            SignerStatus(
                signer_email=str(s.get("signer_email_address", "")),
                signer_name=str(s.get("signer_name") or ""),
                status_code=code,
                signed_at=_epoch(s.get("signed_at")) if code is SignerStatusCode.SIGNED else None,
            )
        )
    return ProviderStatus(overall_state=overall, signers=signers)


# ── Client ───────────────────────────────────────────────────────────


class DropboxSignClient:
    """Dropbox Sign implementation of the SigningProvider protocol."""

    def __init__(self, settings: ProviderSettings) -> None:
        self.base_url = settings.api_url.rstrip("/")
        self.timeout = settings.timeout
        self.default_test_mode = settings.test_mode
        token = base64.b64encode(f"{settings.api_key}:".encode()).decode("ascii")
        self._authorization = f"Basic {token}"

    def _url(self, *parts: str, query: dict[str, str] | None = None) -> str:
        url = "/".join([self.base_url, *(quote(p, safe="") for p in parts)])
        return f"{url}?{urlencode(query)}" if query else url

    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        headers = {"Authorization": self._authorization, "Accept": "application/json"}
        if content_type:
            headers["Content-Type"] = content_type
        return headers

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
        """Create and send a signing request (not retried)."""
        if not pdf_bytes.startswith(PDF_MAGIC):
            raise ProviderError("Refusing to upload: document is not a PDF")
        test_mode = test_mode or self.default_test_mode
        form = build_send_fields(
            title,
            pdf_bytes,
            signers,
            fields,
            message=message,
            subject=subject,
            test_mode=test_mode,
        )
        body, content_type = encode_multipart_formdata(form)
        _logger.info(
            "Creating signing request %r for %d recipient(s)%s",
            title,
            len(fields),
            " (test mode)" if test_mode else "",
        )
        raw = http_post(
            self._url("signature_request", "send"),
            body,
            headers=self._headers(content_type),
            timeout=self.timeout,
        )
        created = parse_created(raw)
        _logger.info("Signing request created: %s", created.request_id)
        return created

    def get_status(self, request_id: str) -> ProviderStatus:
        raw = http_get(
            self._url("signature_request", request_id),
            headers=self._headers(),
            timeout=self.timeout,
        )
        status = parse_status(raw)
        _logger.debug(
            "Request %s: state=%s, %d/%d signed",
            request_id,
            status.overall_state,
            sum(1 for s in status.signers if s.is_signed),
            len(status.signers),
        )
        return status

    def cancel(self, request_id: str) -> None:
        """Cancel a request; one that is already gone is not an error."""
        try:
            http_post(
                self._url("signature_request", "cancel", request_id),
                b"",
                headers=self._headers(),
                timeout=self.timeout,
            )
        except ProviderError as exc:
            if exc.status in _ALREADY_GONE:
                _logger.info(
                    "Request %s already cancelled or finished (HTTP %d)", request_id, exc.status
                )
                return
            raise
        _logger.info("Cancelled signing request %s", request_id)

    def remind(self, request_id: str, email: str) -> None:
        http_post(
            self._url("signature_request", "remind", request_id),
            json.dumps({"email_address": email}).encode("utf-8"),
            headers=self._headers("application/json"),
            timeout=self.timeout,
        )
        _logger.info("Reminder sent for request %s", request_id)

    def download_completed_pdf(self, request_id: str) -> bytes:
        data = http_get(
            self._url("signature_request", "files", request_id, query={"file_type": "pdf"}),
            headers=self._headers(),
            timeout=self.timeout,
        )
        if not data.startswith(PDF_MAGIC):
            raise ProviderError(
                f"Completed document for {request_id} is not a PDF",
                body=data[:500].decode("utf-8", errors="replace"),
            )
        return data
