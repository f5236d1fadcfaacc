"""
DocumentStore interface.

Contract:
- Documents are plain dicts; reads return them with an "id" key added.
- The store stamps createdAt/updatedAt itself. Callers never compute them.
- Queries are single collection: equality/range filters, one ordering field,
  numeric limit. No joins.
- commit() applies a list of writes atomically: all or nothing.
- transact() reads documents, lets the caller decide the writes from what
  it read, and commits them only if nothing it read changed meanwhile.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

Filter = Tuple[str, str, Any]
DocumentKey = Tuple[str, str]
DecideWrites = Callable[[List[Optional[Dict[str, Any]]]], Sequence["WriteOperation"]]

SUPPORTED_OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in")


@dataclass
class WriteOperation:
    """One write inside an atomic commit."""
    kind: str  # "create" | "update"
    collection: str
    data: Dict[str, Any] = field(default_factory=dict)
    doc_id: Optional[str] = None

    def __post_init__(self):
        if self.kind not in ("create", "update"):
            raise ValueError(f"Unsupported write kind: {self.kind}")
        if self.kind == "update" and not self.doc_id:
            raise ValueError("doc_id is required for update operations")


class DocumentStore(ABC):
    """Abstract document store used by every service."""

    @abstractmethod
    def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Add a document with a generated id and return it as stored."""
        raise NotImplementedError

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create (or overwrite) a document under a fixed id and return it."""
        raise NotImplementedError

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Patch an existing document. Raises NotFoundError if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Optional[Sequence[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def commit(self, operations: Sequence[WriteOperation]) -> List[str]:
        """Apply all operations atomically. Returns the ids written, in order."""
        raise NotImplementedError

    @abstractmethod
    def transact(self, reads: Sequence[DocumentKey], decide: DecideWrites) -> List[str]:
        """
        Read-check-write as one unit.

        decide() receives the documents named by reads (None where missing),
        in order, and returns the writes to commit. Raising from decide()
        aborts with nothing written. The writes are only applied if none of
        the read documents changed in between; otherwise the whole unit is
        re-run against the fresh documents.

        Returns the ids written, in order.
        """
        raise NotImplementedError

    def server_timestamp(self) -> Any:
        """Value to store for write-time attribution fields (moderatedAt, approvedAt)."""
        return datetime.now(timezone.utc)

    def ping(self) -> bool:
        """Lightweight connectivity check used by the health endpoint."""
        self.query("locations", limit=1)
        return True
