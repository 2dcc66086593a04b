"""Document persistence."""

from __future__ import annotations

from .json_store import JsonDocumentStore
from .memory import InMemoryDocumentStore
from .protocol import DocumentStore

__all__ = ["DocumentStore", "InMemoryDocumentStore", "JsonDocumentStore"]
