"""In-process document store."""

from __future__ import annotations

__all__ = ["InMemoryDocumentStore"]

import dataclasses
import logging
import threading

from ..core.models import Document
from ..errors import DocumentNotFound, SignableError

_logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """Dict-backed store; every operation runs under one lock."""

    def __init__(self, documents: list[Document] | None = None) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, Document] = {}
        for doc in documents or []:
            self.add(doc)

    def add(self, document: Document) -> Document:
        with self._lock:
            if document.id in self._documents:
                raise SignableError(f"Document {document.id!r} already exists")
            self._documents[document.id] = document
        _logger.debug("Added document %s", document.id)
        return document

    def get(self, document_id: str) -> Document:
        with self._lock:
            try:
                return self._documents[document_id]
            except KeyError:
                raise DocumentNotFound(f"Document not found: {document_id}") from None

    def find_by_signing_request(self, request_id: str) -> Document | None:
        with self._lock:
            for doc in self._documents.values():
                if doc.signing_request_id == request_id:
                    return doc
        return None

    def compare_and_set(self, expected: Document, updated: Document) -> bool:
        with self._lock:
            current = self._documents.get(expected.id)
            if current is None:
                raise DocumentNotFound(f"Document not found: {expected.id}")
            if current.version != expected.version:
                _logger.debug(
                    "Version conflict on %s: expected %d, stored %d",
                    expected.id,
                    expected.version,
                    current.version,
                )
                return False
            self._documents[expected.id] = dataclasses.replace(
                updated, id=expected.id, version=expected.version + 1
            )
            return True
