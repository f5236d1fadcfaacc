"""
Document store layer.

Services never talk to Firestore directly; they receive a DocumentStore.
FirestoreDocumentStore is used in production, MemoryDocumentStore for local
development (USE_MOCK_DB) and tests.
"""

from app.db.base import DocumentStore, WriteOperation
from app.db.firestore_store import FirestoreDocumentStore
from app.db.memory_store import MemoryDocumentStore
from app.db.retry import retry_read

__all__ = [
    "DocumentStore",
    "WriteOperation",
    "FirestoreDocumentStore",
    "MemoryDocumentStore",
    "retry_read",
]
