"""
Document store abstraction.

The reconciler and orchestrator persist documents through this
protocol. ``compare_and_set`` is the per-document serialization point:
an update only lands if nobody else wrote the document since it was
read.
"""

from __future__ import annotations

__all__ = ["DocumentStore"]

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..core.models import Document


class DocumentStore(Protocol):
    """Protocol for document persistence."""

    def add(self, document: Document) -> Document:
        """Insert a new document.

        Raises:
            SignableError: If a document with the same id already exists.
        """
        ...

    def get(self, document_id: str) -> Document:
        """Fetch a document by id.

        Raises:
            DocumentNotFound: If no such document exists.
        """
        ...

    def find_by_signing_request(self, request_id: str) -> Document | None:
        """Find the document whose current signing request is *request_id*."""
        ...

    def compare_and_set(self, expected: Document, updated: Document) -> bool:
        """Store *updated* if the stored version still equals ``expected.version``.

        On success the stored copy gets ``version = expected.version + 1``;
        every other field, ``updated_at`` included, is stored as given.

        Returns:
            True if the write landed, False on a version conflict.

        Raises:
            DocumentNotFound: If the document no longer exists.
        """
        ...
