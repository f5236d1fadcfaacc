"""
Firestore-backed DocumentStore.

Wraps a firebase_admin Firestore client. Server timestamps are assigned by
Firestore (SERVER_TIMESTAMP sentinel); atomic commits use a WriteBatch.
google.api_core errors are translated into the FeedFind error taxonomy.
transact() runs inside a Firestore transaction, which re-runs the unit when
a document it read is modified before commit.
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from app.core.exceptions import (
    FeedFindError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.db.base import DecideWrites, DocumentKey, DocumentStore, Filter, WriteOperation
from app.utils.firestore_helpers import where_filter
import logging

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors(action: str):
    """Map google.api_core exceptions raised inside the block to FeedFind errors."""
    try:
        yield
    except FeedFindError:
        raise
    except google_exceptions.PermissionDenied as e:
        raise PermissionDeniedError("Permission denied: Insufficient permissions", {"action": action}) from e
    except google_exceptions.NotFound as e:
        raise NotFoundError("Document not found", {"action": action}) from e
    except (
        google_exceptions.ServiceUnavailable,
        google_exceptions.DeadlineExceeded,
        google_exceptions.RetryError,
        google_exceptions.Aborted,
    ) as e:
        raise NetworkError("Network error: Please check your connection", {"action": action}) from e
    except google_exceptions.InvalidArgument as e:
        raise ValidationError("Validation failed: Invalid data provided", {"action": action}) from e


def _snapshot_to_dict(snapshot) -> Dict[str, Any]:
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore implementation over a Firestore client."""

    def __init__(self, client: firestore.Client):
        self.db = client

    def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with translate_errors(f"create {collection}"):
            doc_ref = self.db.collection(collection).document()
            doc_ref.set(self._with_timestamps(data, created=True))
            return _snapshot_to_dict(doc_ref.get())

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with translate_errors(f"set {collection}/{doc_id}"):
            doc_ref = self.db.collection(collection).document(doc_id)
            doc_ref.set(self._with_timestamps(data, created=True))
            return _snapshot_to_dict(doc_ref.get())

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with translate_errors(f"get {collection}/{doc_id}"):
            snapshot = self.db.collection(collection).document(doc_id).get()
            if not snapshot.exists:
                return None
            return _snapshot_to_dict(snapshot)

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        with translate_errors(f"update {collection}/{doc_id}"):
            self.db.collection(collection).document(doc_id).update(self._with_timestamps(data))

    def query(
        self,
        collection: str,
        filters: Optional[Sequence[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with translate_errors(f"query {collection}"):
            query = self.db.collection(collection)
            for field_path, op_string, value in filters or []:
                query = where_filter(query, field_path, op_string, value)
            if order_by:
                direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
                query = query.order_by(order_by, direction=direction)
            if limit:
                query = query.limit(limit)
            return [_snapshot_to_dict(doc) for doc in query.stream()]

    def commit(self, operations: Sequence[WriteOperation]) -> List[str]:
        with translate_errors("batch commit"):
            batch = self.db.batch()
            ids = [self._stage(batch, op) for op in operations]
            batch.commit()
            logger.debug(f"Committed batch of {len(ids)} writes")
            return ids

    def transact(self, reads: Sequence[DocumentKey], decide: DecideWrites) -> List[str]:
        @firestore.transactional
        def run(transaction) -> List[str]:
            documents = []
            for collection, doc_id in reads:
                snapshot = self.db.collection(collection).document(doc_id).get(transaction=transaction)
                documents.append(_snapshot_to_dict(snapshot) if snapshot.exists else None)
            return [self._stage(transaction, op) for op in decide(documents)]

        with translate_errors("transaction"):
            ids = run(self.db.transaction())
            logger.debug(f"Committed transaction of {len(ids)} writes")
            return ids

    def _stage(self, writer, op: WriteOperation) -> str:
        """Queue one operation on a WriteBatch or Transaction and return its id."""
        collection_ref = self.db.collection(op.collection)
        if op.kind == "create":
            doc_ref = collection_ref.document(op.doc_id) if op.doc_id else collection_ref.document()
            writer.set(doc_ref, self._with_timestamps(op.data, created=True))
        else:
            doc_ref = collection_ref.document(op.doc_id)
            writer.update(doc_ref, self._with_timestamps(op.data))
        return doc_ref.id

    def server_timestamp(self):
        return firestore.SERVER_TIMESTAMP

    def ping(self) -> bool:
        with translate_errors("ping"):
            list(self.db.collection("locations").limit(1).stream())
            return True

    @staticmethod
    def _with_timestamps(data: Dict[str, Any], created: bool = False) -> Dict[str, Any]:
        payload = {k: v for k, v in data.items() if k != "id"}
        if created:
            payload["createdAt"] = firestore.SERVER_TIMESTAMP
        payload["updatedAt"] = firestore.SERVER_TIMESTAMP
        return payload
