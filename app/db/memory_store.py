"""
In-process DocumentStore for local development (USE_MOCK_DB) and tests.

Mirrors the Firestore semantics the services rely on:
- documents missing the order_by field are excluded from ordered queries
- update() on a missing document raises NotFoundError
- commit() validates every write before applying any of them
- transact() holds the store lock from the first read to the last write
"""

import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from app.core.exceptions import NotFoundError, ValidationError
from app.db.base import (
    SUPPORTED_OPERATORS,
    DecideWrites,
    DocumentKey,
    DocumentStore,
    Filter,
    WriteOperation,
)
import logging

logger = logging.getLogger(__name__)


def _matches(document: Dict[str, Any], field_path: str, op_string: str, value: Any) -> bool:
    if field_path not in document:
        return False
    current = document[field_path]
    try:
        if op_string == "==":
            return current == value
        if op_string == "!=":
            return current != value
        if op_string == "in":
            return current in value
        if op_string == "<":
            return current < value
        if op_string == "<=":
            return current <= value
        if op_string == ">":
            return current > value
        if op_string == ">=":
            return current >= value
    except TypeError:
        # Firestore never matches across value types
        return False
    return False


class MemoryDocumentStore(DocumentStore):
    """Thread-safe dict-of-dicts document store."""

    def __init__(self, seed: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for collection, docs in (seed or {}).items():
            for doc_id, data in docs.items():
                self.set(collection, doc_id, data)

    def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.set(collection, self._new_id(), data)

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            now = self._now()
            stored = {k: copy.deepcopy(v) for k, v in data.items() if k != "id"}
            stored["createdAt"] = now
            stored["updatedAt"] = now
            self._collections.setdefault(collection, {})[doc_id] = stored
            return self._export(doc_id, stored)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            stored = self._collections.get(collection, {}).get(doc_id)
            if stored is None:
                return None
            return self._export(doc_id, stored)

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            stored = self._collections.get(collection, {}).get(doc_id)
            if stored is None:
                raise NotFoundError(f"Document {collection}/{doc_id} not found")
            self._apply_update(stored, data)

    def query(
        self,
        collection: str,
        filters: Optional[Sequence[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        for _, op_string, _ in filters or []:
            if op_string not in SUPPORTED_OPERATORS:
                raise ValidationError(f"Unsupported query operator: {op_string}")

        with self._lock:
            results = []
            for doc_id, stored in self._collections.get(collection, {}).items():
                if all(_matches(stored, f, op, v) for f, op, v in filters or []):
                    results.append(self._export(doc_id, stored))

        if order_by:
            results = [doc for doc in results if doc.get(order_by) is not None]
            results.sort(key=lambda doc: doc[order_by], reverse=descending)
        if limit:
            results = results[:limit]
        return results

    def commit(self, operations: Sequence[WriteOperation]) -> List[str]:
        with self._lock:
            for op in operations:
                if op.kind == "update" and op.doc_id not in self._collections.get(op.collection, {}):
                    raise NotFoundError(f"Document {op.collection}/{op.doc_id} not found")

            ids = []
            for op in operations:
                if op.kind == "create":
                    ids.append(self.set(op.collection, op.doc_id or self._new_id(), op.data)["id"])
                else:
                    self._apply_update(self._collections[op.collection][op.doc_id], op.data)
                    ids.append(op.doc_id)
            logger.debug(f"Committed batch of {len(ids)} writes")
            return ids

    def transact(self, reads: Sequence[DocumentKey], decide: DecideWrites) -> List[str]:
        # held across read, decide and commit
        with self._lock:
            documents = [self.get(collection, doc_id) for collection, doc_id in reads]
            return self.commit(decide(documents))

    def _apply_update(self, stored: Dict[str, Any], data: Dict[str, Any]) -> None:
        for key, value in data.items():
            if key == "id":
                continue
            stored[key] = copy.deepcopy(value)
        stored["updatedAt"] = self._now()

    @staticmethod
    def _export(doc_id: str, stored: Dict[str, Any]) -> Dict[str, Any]:
        data = copy.deepcopy(stored)
        data["id"] = doc_id
        return data

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex[:20]

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)
