"""
SignWell REST client.

Implements the :class:`~signable.network.protocol.SigningProvider`
protocol over the SignWell v1 JSON API:

- ``POST   /documents``                 create and send a signing request
- ``GET    /documents/{id}``            status
- ``DELETE /documents/{id}``            cancel
- ``POST   /documents/{id}/remind``     reminder email
- ``GET    /documents/{id}/completed_pdf``  signed artifact

Requests authenticate with the ``X-Api-Key`` header.
"""

from __future__ import annotations

__all__ = [
    "SignWellClient",
    "build_create_payload",
    "parse_created",
    "parse_status",
]

import base64
import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from ..constants import PDF_MAGIC
from ..core.models import SignerStatus, SignerStatusCode, ordered_signers
from ..core.pdf import provider_page_number
from ..errors import ProviderError
from .protocol import CreatedRequest, ProviderStatus, RecipientRef
from .transport import http_delete, http_get, http_post

if TYPE_CHECKING:
    from ..config import ProviderSettings
    from ..core.models import Signer
    from ..core.pdf import SignatureField

_logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Please review and sign the attached document."

# Cancel responses meaning "nothing left to cancel"
_ALREADY_GONE = frozenset({404, 409, 410})

_RECIPIENT_STATES: dict[str, SignerStatusCode] = {
    "signed": SignerStatusCode.SIGNED,
    "completed": SignerStatusCode.SIGNED,
    "viewed": SignerStatusCode.VIEWED,
    "opened": SignerStatusCode.VIEWED,
    "declined": SignerStatusCode.DECLINED,
}


# ── Payload building ─────────────────────────────────────────────────


def build_create_payload(
    title: str,
    pdf_bytes: bytes,
    signers: list[Signer],
    fields: list[SignatureField],
    *,
    message: str | None = None,
    subject: str | None = None,
    test_mode: bool = False,
) -> dict[str, Any]:
    """Build the ``POST /documents`` JSON body.

    Recipients get ids ``"1".."n"`` in signing order, matching the
    ``recipient_id`` of the signature fields computed by the placer.
    ``fields`` is an array of arrays, one per uploaded file.
    """
    sequence = ordered_signers(signers)
    if len(fields) != len(sequence):
        raise ProviderError(
            f"Expected one signature field per signer, got {len(fields)} field(s) "
            f"for {len(sequence)} signer(s)"
        )
    recipients = [
        {"id": str(idx + 1), "name": signer.name, "email": signer.email}
        for idx, signer in enumerate(sequence)
    ]
    field_specs = [
        {
            "type": "signature",
            "required": True,
            "x": round(f.x, 2),
            "y": round(f.y, 2),
            "page": provider_page_number(f.page),
            "recipient_id": f.recipient_id,
        }
        for f in fields
    ]
    return {
        "test_mode": test_mode,
        "name": title,
        "subject": subject or f"Please sign: {title}",
        "message": message or DEFAULT_MESSAGE,
        "reminders": True,
        "recipients": recipients,
        "files": [
            {
                "name": f"{title}.pdf",
                "file_base64": base64.b64encode(pdf_bytes).decode("ascii"),
            }
        ],
        "fields": [field_specs],
    }


# ── Response parsing ────────────────────────────────────────────────


def _decode_json(raw: bytes, what: str) -> dict[str, Any]:
    try:
        data = json.loads(raw.decode("utf-8")) if raw else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProviderError(
            f"Malformed {what} response from provider: {exc}",
            body=raw[:500].decode("utf-8", errors="replace"),
        ) from exc
    if not isinstance(data, dict):
        raise ProviderError(f"Unexpected {what} response shape: {type(data).__name__}")
    return data


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        # fromisoformat() only accepts a trailing "Z" from Python 3.11 on
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        _logger.debug("Unparseable provider timestamp: %r", value)
        return None


def parse_created(raw: bytes) -> CreatedRequest:
    """Parse a ``POST /documents`` response."""
    data = _decode_json(raw, "create")
    request_id = data.get("id")
    if not isinstance(request_id, str) or not request_id:
        raise ProviderError("Provider response is missing the document id", body=str(data)[:500])
    recipients = [
        RecipientRef(
            recipient_id=str(r.get("id", "")),
            email=str(r.get("email", "")),
            name=str(r.get("name", "")),
        )
        for r in data.get("recipients") or []
        if isinstance(r, dict)
    ]
    return CreatedRequest(request_id=request_id, recipients=recipients)


def parse_status(raw: bytes) -> ProviderStatus:
    """Parse a ``GET /documents/{id}`` response.

    Per-recipient states are normalized to :class:`SignerStatusCode`.
    When the document as a whole is completed, every recipient counts
    as signed at ``completed_at``.
    """
    data = _decode_json(raw, "status")
    overall = str(data.get("status") or "").strip().lower()
    completed_at = _parse_timestamp(data.get("completed_at"))

    signers: list[SignerStatus] = []
    for r in data.get("recipients") or []:
        if not isinstance(r, dict):
            continue
        state = str(r.get("status") or "").strip().lower()
        code = _RECIPIENT_STATES.get(state, SignerStatusCode.AWAITING)
        signed_at = _parse_timestamp(r.get("signed_at"))
        if overall == "completed":
            code = SignerStatusCode.SIGNED
            signed_at = signed_at or completed_at
        signers.append(
            SignerStatus(
                signer_email=str(r.get("email", "")),
                signer_name=str(r.get("name", "")),
                status_code=code,
                signed_at=signed_at if code is SignerStatusCode.SIGNED else None,
            )
        )
    return ProviderStatus(overall_state=overall, signers=signers)


# ── Client ───────────────────────────────────────────────────────────


class SignWellClient:
    """SignWell implementation of the SigningProvider protocol.

    Constructed explicitly from :class:`~signable.config.ProviderSettings`;
    there is no shared module-level instance.
    """

    def __init__(self, settings: ProviderSettings) -> None:
        self.base_url = settings.api_url.rstrip("/")
        self.timeout = settings.timeout
        self.default_test_mode = settings.test_mode
        self._api_key = settings.api_key

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, *(quote(p, safe="") for p in parts)])

    def _headers(self, *, json_body: bool = False) -> dict[str, str]:
        headers = {"X-Api-Key": self._api_key, "Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _post_json(self, url: str, payload: dict[str, Any]) -> bytes:
        body = json.dumps(payload).encode("utf-8")
        return http_post(url, body, headers=self._headers(json_body=True), timeout=self.timeout)

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
        payload = build_create_payload(
            title,
            pdf_bytes,
            signers,
            fields,
            message=message,
            subject=subject,
            test_mode=test_mode or self.default_test_mode,
        )
        _logger.info(
            "Creating signing request %r for %d recipient(s)%s",
            title,
            len(payload["recipients"]),
            " (test mode)" if payload["test_mode"] else "",
        )
        created = parse_created(self._post_json(self._url("documents"), payload))
        _logger.info("Signing request created: %s", created.request_id)
        return created

    def get_status(self, request_id: str) -> ProviderStatus:
        raw = http_get(
            self._url("documents", request_id), headers=self._headers(), timeout=self.timeout
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
            http_delete(
                self._url("documents", request_id), headers=self._headers(), timeout=self.timeout
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
        self._post_json(self._url("documents", request_id, "remind"), {"recipients": [email]})
        _logger.info("Reminder sent for request %s", request_id)

    def download_completed_pdf(self, request_id: str) -> bytes:
        data = http_get(
            self._url("documents", request_id, "completed_pdf"),
            headers=self._headers(),
            timeout=self.timeout,
        )
        if not data.startswith(PDF_MAGIC):
            raise ProviderError(
                f"Completed document for {request_id} is not a PDF",
                body=data[:500].decode("utf-8", errors="replace"),
            )
        return data
