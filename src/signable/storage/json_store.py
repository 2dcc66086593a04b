"""
JSON-file document store.

All documents live in one JSON file::

    {"documents": {"<id>": {...document fields...}}}

Reads go to disk every time so that separate CLI invocations and a
running webhook receiver see each other's writes. Writes are atomic
(temp file + rename). Every read-modify-write runs under an exclusive
``filelock`` lock on ``<path>.lock``, so separate processes sharing the
file cannot interleave a compare-and-set.
"""

from __future__ import annotations

__all__ = ["JsonDocumentStore", "document_from_dict", "document_to_dict"]

import dataclasses
import json
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from filelock import FileLock

from ..config._storage import atomic_write_text
from ..core.models import (
    Document,
    SignatureStatus,
    SignerStatus,
    SignerStatusCode,
)
from ..core.text import SanitizeMode
from ..errors import DocumentNotFound, SignableError

_logger = logging.getLogger(__name__)


# ── Serialization ────────────────────────────────────────────────────


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    return datetime.fromisoformat(value)


def document_to_dict(document: Document) -> dict[str, Any]:
    return {
        "id": document.id,
        "title": document.title,
        "body": document.body,
        "content_format": document.content_format.value,
        "signing_request_id": document.signing_request_id,
        "signature_status": document.signature_status.value,
        "signers": [
            {
                "email": s.signer_email,
                "name": s.signer_name,
                "status": s.status_code.value,
                "signed_at": _iso(s.signed_at),
            }
            for s in document.signers
        ],
        "version": document.version,
        "updated_at": _iso(document.updated_at),
    }


def document_from_dict(data: dict[str, Any]) -> Document:
    """Rebuild a Document from its stored form.

    Raises:
        SignableError: If a required field is missing or malformed.
    """
    try:
        signers = tuple(
            SignerStatus(
                signer_email=s["email"],
                signer_name=s.get("name", ""),
                status_code=SignerStatusCode(s.get("status", SignerStatusCode.AWAITING.value)),
                signed_at=_parse_dt(s.get("signed_at")),
            )
            for s in data.get("signers", [])
        )
        return Document(
            id=data["id"],
            title=data["title"],
            body=data["body"],
            content_format=SanitizeMode(data.get("content_format", SanitizeMode.MARKUP.value)),
            signing_request_id=data.get("signing_request_id"),
            signature_status=SignatureStatus(
                data.get("signature_status", SignatureStatus.NONE.value)
            ),
            signers=signers,
            version=int(data.get("version", 0)),
            updated_at=_parse_dt(data.get("updated_at")) or datetime.now(timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise SignableError(f"Malformed stored document: {exc}") from exc


# ── Store ────────────────────────────────────────────────────────────


class JsonDocumentStore:
    """Document store persisted to a single JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._file_lock = FileLock(f"{self.path}.lock")

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the thread lock and the inter-process file lock."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock, self._file_lock:
            yield

    def _load(self) -> dict[str, dict[str, Any]]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            raise SignableError(f"Document store {self.path} is corrupted: {exc}") from exc
        documents = data.get("documents") if isinstance(data, dict) else None
        if not isinstance(documents, dict):
            raise SignableError(f"Document store {self.path} has an unexpected layout")
        return documents

    def _save(self, documents: dict[str, dict[str, Any]]) -> None:
        content = json.dumps({"documents": documents}, indent=2, ensure_ascii=False) + "\n"
        atomic_write_text(self.path, content)

    def add(self, document: Document) -> Document:
        with self._exclusive():
            documents = self._load()
            if document.id in documents:
                raise SignableError(f"Document {document.id!r} already exists")
            documents[document.id] = document_to_dict(document)
            self._save(documents)
        _logger.debug("Added document %s to %s", document.id, self.path)
        return document

    # Reads skip the file lock: writes replace the file atomically, so a
    # reader sees either the old or the new content.

    def get(self, document_id: str) -> Document:
        with self._lock:
            raw = self._load().get(document_id)
        if raw is None:
            raise DocumentNotFound(f"Document not found: {document_id}")
        return document_from_dict(raw)

    def find_by_signing_request(self, request_id: str) -> Document | None:
        with self._lock:
            documents = self._load()
        for raw in documents.values():
            if raw.get("signing_request_id") == request_id:
                return document_from_dict(raw)
        return None

    def compare_and_set(self, expected: Document, updated: Document) -> bool:
        with self._exclusive():
            documents = self._load()
            raw = documents.get(expected.id)
            if raw is None:
                raise DocumentNotFound(f"Document not found: {expected.id}")
            stored_version = int(raw.get("version", 0))
            if stored_version != expected.version:
                _logger.debug(
                    "Version conflict on %s: expected %d, stored %d",
                    expected.id,
                    expected.version,
                    stored_version,
                )
                return False
            documents[expected.id] = document_to_dict(
                dataclasses.replace(updated, id=expected.id, version=expected.version + 1)
            )
            self._save(documents)
            return True
