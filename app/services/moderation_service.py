"""
Moderation Service - flagged content queue.

DESIGN PRINCIPLES:
- Each flagged item is decided exactly once (approved or rejected)
- Rejection always carries moderator notes
- Bulk decisions are N independent writes with per-item outcomes
- Content analysis is advisory; it only suggests flagging
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from app.core.exceptions import FeedFindError, NotFoundError, ValidationError
from app.db.base import DocumentStore, WriteOperation
from app.models.base import BulkItemOutcome, BulkResult
from app.services.status_update_service import as_utc, enum_value
from app.services.status_workflow import StatusWorkflowEngine, WorkflowEntity
import logging

logger = logging.getLogger(__name__)

FLAGGED_COLLECTION = "flaggedContent"
CONTENT_TYPES = ("review", "location", "provider", "comment")
BULK_APPROVE_NOTE = "Bulk approved"

INAPPROPRIATE_WORDS = [
    "sucks", "idiots", "stupid", "hate", "terrible", "awful",
    "disgusting", "filthy", "nasty", "worthless",
]
OFFENSIVE_WORDS = ["damn", "hell", "crap", "jerk", "moron", "loser"]


def analyze_content(content: str) -> Dict[str, Any]:
    """
    Rule-based screen for inappropriate language.

    Returns:
        {"is_inappropriate": bool, "confidence": float, "reasons": [...]}
    """
    lowered = (content or "").lower()
    found_inappropriate = any(word in lowered for word in INAPPROPRIATE_WORDS)
    found_offensive = any(word in lowered for word in OFFENSIVE_WORDS)

    reasons = []
    if found_inappropriate:
        reasons.append("inappropriate_language")
    if found_offensive:
        reasons.append("offensive_content")

    if found_inappropriate:
        confidence = 0.8
    elif found_offensive:
        confidence = 0.6
    else:
        confidence = 0.1

    return {
        "is_inappropriate": found_inappropriate or found_offensive,
        "confidence": confidence,
        "reasons": reasons,
    }


class ModerationService:
    """
    Service for the flaggedContent collection.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def flag_content(
        self,
        content_id: str,
        content_type: str,
        content: str,
        author_id: str,
        author_name: str,
        flagged_by: str,
        flag_reason: str,
        location_id: Optional[str] = None,
        location_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        content_type = enum_value(content_type)
        if content_type not in CONTENT_TYPES:
            raise ValidationError(f"Invalid content type: must be one of {', '.join(CONTENT_TYPES)}")
        if not (flag_reason or "").strip():
            raise ValidationError("Flag reason is required")

        payload = {
            "contentId": content_id,
            "type": content_type,
            "content": content,
            "authorId": author_id,
            "authorName": author_name,
            "flaggedAt": datetime.now(timezone.utc),
            "flaggedBy": flagged_by,
            "flagReason": flag_reason,
            "status": "pending",
        }
        if location_id:
            payload["locationId"] = location_id
        if location_name:
            payload["locationName"] = location_name

        created = self.store.create(FLAGGED_COLLECTION, payload)
        logger.info(f"Content {content_type}/{content_id} flagged by {flagged_by}: {flag_reason}")
        return created

    def get_by_id(self, item_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get(FLAGGED_COLLECTION, item_id)

    def get_flagged_content(
        self,
        content_type: Optional[str] = None,
        status: Optional[str] = None,
        flag_reason: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Flagged items, newest first.

        Equality filters run in Firestore; the date range is applied here
        to avoid a composite index per filter combination.
        """
        filters = []
        if content_type:
            filters.append(("type", "==", enum_value(content_type)))
        if status:
            filters.append(("status", "==", enum_value(status)))
        if flag_reason:
            filters.append(("flagReason", "==", flag_reason))

        items = self.store.query(FLAGGED_COLLECTION, filters=filters, order_by="flaggedAt", descending=True)
        if date_from:
            date_from = as_utc(date_from)
            items = [item for item in items if as_utc(item["flaggedAt"]) >= date_from]
        if date_to:
            date_to = as_utc(date_to)
            items = [item for item in items if as_utc(item["flaggedAt"]) <= date_to]
        return items[:limit]

    def approve_content(self, item_id: str, moderator_id: str, notes: Optional[str] = None) -> Dict[str, Any]:
        return self._decide(item_id, "approved", moderator_id, notes or "")

    def reject_content(self, item_id: str, moderator_id: str, notes: str) -> Dict[str, Any]:
        if not (notes or "").strip():
            raise ValidationError("Moderator notes are required to reject content")
        return self._decide(item_id, "rejected", moderator_id, notes)

    def bulk_approve_content(
        self,
        item_ids: Iterable[str],
        moderator_id: str,
        notes: Optional[str] = None,
    ) -> BulkResult:
        return self._bulk(item_ids, lambda item_id: self.approve_content(item_id, moderator_id, notes or BULK_APPROVE_NOTE))

    def bulk_reject_content(self, item_ids: Iterable[str], moderator_id: str, notes: str) -> BulkResult:
        if not (notes or "").strip():
            raise ValidationError("Moderator notes are required to reject content")
        return self._bulk(item_ids, lambda item_id: self.reject_content(item_id, moderator_id, notes))

    def get_moderation_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Queue size, today's decisions and the most common flag reasons."""
        now = now or datetime.now(timezone.utc)
        start_of_day = as_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)

        items = self.store.query(FLAGGED_COLLECTION)
        decided_today = [
            item for item in items
            if isinstance(item.get("moderatedAt"), datetime) and as_utc(item["moderatedAt"]) >= start_of_day
        ]
        review_minutes = [
            (item["moderatedAt"] - item["flaggedAt"]).total_seconds() / 60
            for item in items
            if isinstance(item.get("moderatedAt"), datetime) and isinstance(item.get("flaggedAt"), datetime)
        ]
        reasons = Counter(item.get("flagReason") for item in items if item.get("flagReason"))

        return {
            "total_flagged": len(items),
            "pending_review": sum(1 for item in items if item.get("status") == "pending"),
            "approved_today": sum(1 for item in decided_today if item.get("status") == "approved"),
            "rejected_today": sum(1 for item in decided_today if item.get("status") == "rejected"),
            "average_review_time_minutes": round(sum(review_minutes) / len(review_minutes), 1) if review_minutes else 0,
            "top_flag_reasons": [{"reason": reason, "count": count} for reason, count in reasons.most_common(5)],
        }

    def _decide(self, item_id: str, new_status: str, moderator_id: str, notes: str) -> Dict[str, Any]:
        """
        Move a pending item to a terminal status.

        The status check and the write run in one transaction, so two
        moderators deciding the same item cannot both succeed.
        """
        def decide(documents):
            item = documents[0]
            if item is None:
                raise NotFoundError(f"Flagged content {item_id} not found")
            StatusWorkflowEngine.validate_transition(
                WorkflowEntity.FLAGGED_CONTENT, item.get("status", "pending"), new_status
            )
            return [WriteOperation("update", FLAGGED_COLLECTION, {
                "status": new_status,
                "moderatorId": moderator_id,
                "moderatorNotes": notes,
                "moderatedAt": self.store.server_timestamp(),
            }, doc_id=item_id)]

        self.store.transact([(FLAGGED_COLLECTION, item_id)], decide)
        logger.info(f"Moderator {moderator_id} {new_status} flagged content {item_id}")
        return self.get_by_id(item_id)

    @staticmethod
    def _bulk(item_ids: Iterable[str], decide) -> BulkResult:
        result = BulkResult()
        for item_id in item_ids:
            try:
                record = decide(item_id)
                result.outcomes.append(BulkItemOutcome(id=item_id, success=True, record=record))
            except FeedFindError as e:
                logger.warning(f"Bulk moderation failed for {item_id}: {e.message}")
                result.outcomes.append(BulkItemOutcome(
                    id=item_id, success=False, error=e.message, code=e.code, retryable=e.retryable
                ))
            except Exception as e:
                logger.error(f"Bulk moderation failed for {item_id}: {str(e)}", exc_info=True)
                result.outcomes.append(BulkItemOutcome(id=item_id, success=False, error=str(e), code="UNKNOWN_ERROR"))
        return result
