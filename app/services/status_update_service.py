"""
Status Update Service - append-only availability history.

DESIGN PRINCIPLES:
- Records are immutable: created once, never updated or deleted
- Validation happens before any write; nothing is persisted on failure
- Optional fields are omitted from the payload when not provided
- No retries at this layer; backend errors propagate to the caller
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.exceptions import ValidationError
from app.core.settings import settings
from app.db.base import DocumentStore
from app.utils.firestore_helpers import chunked
import logging

logger = logging.getLogger(__name__)

UPDATES_COLLECTION = "updates"
VALID_STATUSES = ("open", "closed", "limited")


def enum_value(value: Any) -> Any:
    """Store enum members as their plain value."""
    return value.value if isinstance(value, Enum) else value


def as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


class StatusUpdateService:
    """
    Record store for the `updates` collection.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def build_record(
        location_id: str,
        status: str,
        updated_by: str,
        timestamp: Optional[datetime] = None,
        notes: Optional[str] = None,
        estimated_wait_time: Optional[int] = None,
        food_available: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Build a status update payload.

        notes, estimatedWaitTime and foodAvailable keys are only present
        when a value was given.
        """
        record: Dict[str, Any] = {
            "locationId": location_id,
            "status": enum_value(status),
            "updatedBy": updated_by,
            "timestamp": as_utc(timestamp) if timestamp else datetime.now(timezone.utc),
        }
        if notes:
            record["notes"] = notes
        if estimated_wait_time is not None:
            record["estimatedWaitTime"] = estimated_wait_time
        if food_available is not None:
            record["foodAvailable"] = food_available
        return record

    @staticmethod
    def validate(record: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: on the first constraint violation
        """
        if not record.get("locationId"):
            raise ValidationError("Location ID is required")

        if enum_value(record.get("status")) not in VALID_STATUSES:
            raise ValidationError(f"Invalid status: must be one of {', '.join(VALID_STATUSES)}")

        if not record.get("updatedBy"):
            raise ValidationError("Updated by user ID is required")

        if not record.get("timestamp"):
            raise ValidationError("Timestamp is required")

        notes = record.get("notes")
        if notes is not None and len(notes) > settings.NOTES_MAX_LENGTH:
            raise ValidationError(f"Notes must be at most {settings.NOTES_MAX_LENGTH} characters")

        wait_time = record.get("estimatedWaitTime")
        if wait_time is not None and (isinstance(wait_time, bool) or not isinstance(wait_time, int) or wait_time < 0):
            raise ValidationError("Estimated wait time must be a non-negative whole number of minutes")

    def create(self, update: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and persist a status update record.

        Returns:
            The stored record including its generated id
        """
        payload = dict(update)
        payload["status"] = enum_value(payload.get("status"))
        if isinstance(payload.get("timestamp"), datetime):
            payload["timestamp"] = as_utc(payload["timestamp"])

        self.validate(payload)

        created = self.store.create(UPDATES_COLLECTION, payload)
        logger.info(f"Status update {created['id']} recorded for location {payload['locationId']}: {payload['status']}")
        return created

    def get_history(self, location_id: str) -> List[Dict[str, Any]]:
        """Most recent records for one location, newest first."""
        return self.store.query(
            UPDATES_COLLECTION,
            filters=[("locationId", "==", location_id)],
            order_by="timestamp",
            descending=True,
            limit=settings.HISTORY_LIMIT,
        )

    def get_recent_by_provider_id(self, provider_id: str) -> List[Dict[str, Any]]:
        """
        Most recent records across every location the provider owns.

        Firestore has no joins: locations are resolved first, then updates are
        queried per chunk of location ids and merged in memory.
        """
        locations = self.store.query("locations", filters=[("providerId", "==", provider_id)])
        location_ids = [location["id"] for location in locations]
        if not location_ids:
            return []

        limit = settings.RECENT_UPDATES_LIMIT
        updates: List[Dict[str, Any]] = []
        for chunk in chunked(location_ids):
            updates.extend(self.store.query(
                UPDATES_COLLECTION,
                filters=[("locationId", "in", chunk)],
                order_by="timestamp",
                descending=True,
                limit=limit,
            ))

        updates.sort(key=lambda record: record["timestamp"], reverse=True)
        return updates[:limit]
