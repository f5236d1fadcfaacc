"""
Location Service - locations and their denormalized availability.

DESIGN PRINCIPLES:
- currentStatus/lastStatusUpdate are only written by update_status, together
  with the matching history record, in a single atomic commit
- Concurrent writers: last write wins on the location, history keeps both
- Bulk updates are best effort: one bad item never blocks the others
- Approving a location to active always marks it verified
"""

from typing import Any, Dict, Iterable, List, Optional

from app.core.exceptions import FeedFindError, NotFoundError, ValidationError
from app.db.base import DocumentStore, WriteOperation
from app.models.base import BulkItemOutcome, BulkResult
from app.services.provider_service import PHONE_PATTERN, PROVIDERS_COLLECTION
from app.services.status_update_service import (
    UPDATES_COLLECTION,
    VALID_STATUSES,
    StatusUpdateService,
    enum_value,
)
from app.services.status_workflow import StatusWorkflowEngine, WorkflowEntity
from app.utils.geo import KM_TO_MILES, haversine_miles, is_valid_zip_code, zip_code_from_address
import logging

logger = logging.getLogger(__name__)

LOCATIONS_COLLECTION = "locations"
LIFECYCLE_STATUSES = ("active", "inactive", "pending", "suspended")


class LocationService:
    """
    Service for location documents.
    """

    def __init__(self, store: DocumentStore, status_updates: Optional[StatusUpdateService] = None):
        self.store = store
        self.status_updates = status_updates or StatusUpdateService(store)

    def create_location(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and store a new location. Locations start as pending
        until an admin approves them.
        """
        payload = dict(data)
        payload.setdefault("status", "pending")
        payload["status"] = enum_value(payload["status"])
        payload.setdefault("isVerified", False)
        self._validate_location(payload)

        if self.store.get(PROVIDERS_COLLECTION, payload["providerId"]) is None:
            raise NotFoundError(f"Provider {payload['providerId']} not found")

        created = self.store.create(LOCATIONS_COLLECTION, payload)
        logger.info(f"Location created: {created['id']} (provider {payload['providerId']})")
        return created

    def get_by_id(self, location_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get(LOCATIONS_COLLECTION, location_id)

    def require(self, location_id: str) -> Dict[str, Any]:
        location = self.get_by_id(location_id)
        if location is None:
            raise NotFoundError(f"Location {location_id} not found")
        return location

    def get_by_provider_id(self, provider_id: str) -> List[Dict[str, Any]]:
        return self.store.query(LOCATIONS_COLLECTION, filters=[("providerId", "==", provider_id)])

    def get_recent_listings(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Active locations, most recently updated first."""
        return self.store.query(
            LOCATIONS_COLLECTION,
            filters=[("status", "==", "active")],
            order_by="updatedAt",
            descending=True,
            limit=limit,
        )

    def filter_by_status(
        self,
        statuses: Optional[Iterable[str]] = None,
        current_statuses: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Locations whose lifecycle status and/or current availability is in
        the given lists. An empty list does not filter on that field.
        """
        statuses = [enum_value(status) for status in statuses or []]
        current_statuses = [enum_value(status) for status in current_statuses or []]

        for status in statuses:
            if status not in LIFECYCLE_STATUSES:
                raise ValidationError(f"Invalid status: must be one of {', '.join(LIFECYCLE_STATUSES)}")
        for status in current_statuses:
            if status not in VALID_STATUSES:
                raise ValidationError(f"Invalid current status: must be one of {', '.join(VALID_STATUSES)}")

        # one "in" clause per query; the second list is applied here
        if statuses:
            items = self.store.query(LOCATIONS_COLLECTION, filters=[("status", "in", statuses)])
            if current_statuses:
                items = [item for item in items if item.get("currentStatus") in current_statuses]
            return items
        if current_statuses:
            return self.store.query(LOCATIONS_COLLECTION, filters=[("currentStatus", "in", current_statuses)])
        return self.store.query(LOCATIONS_COLLECTION)

    def search_by_coordinates(self, latitude: float, longitude: float, radius_km: float) -> List[Dict[str, Any]]:
        """
        Active locations within radius_km, nearest first.

        Each result carries a "distance" key in miles.
        """
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise ValidationError("Invalid coordinates provided")
        if radius_km <= 0:
            raise ValidationError("Search radius must be greater than 0")

        radius_miles = radius_km * KM_TO_MILES
        results = []
        for location in self.store.query(LOCATIONS_COLLECTION, filters=[("status", "==", "active")]):
            coordinates = location.get("coordinates") or {}
            if coordinates.get("latitude") is None or coordinates.get("longitude") is None:
                continue
            distance = haversine_miles(latitude, longitude, coordinates["latitude"], coordinates["longitude"])
            if distance <= radius_miles:
                results.append({**location, "distance": round(distance, 2)})

        results.sort(key=lambda location: location["distance"])
        logger.debug(f"{len(results)} locations within {radius_km}km of ({latitude}, {longitude})")
        return results

    def search_by_zip_code(self, zip_code: str) -> List[Dict[str, Any]]:
        """Active locations whose address contains the ZIP code."""
        if not is_valid_zip_code(zip_code):
            raise ValidationError("Invalid ZIP code format")
        return [
            location
            for location in self.store.query(LOCATIONS_COLLECTION, filters=[("status", "==", "active")])
            if zip_code_from_address(location.get("address", "")) == zip_code
        ]

    def search_by_text(self, text: str, services: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        """
        Active locations matching any search term in name, address,
        description or services. When services are given, a location must
        offer at least one of them.
        """
        terms = [term for term in (text or "").lower().split() if term]
        services = list(services or [])

        results = []
        for location in self.store.query(LOCATIONS_COLLECTION, filters=[("status", "==", "active")]):
            offered = location.get("services") or []
            if services and not any(service in offered for service in services):
                continue
            searchable = " ".join([
                location.get("name", ""),
                location.get("address", ""),
                location.get("description") or "",
                *offered,
            ]).lower()
            if any(term in searchable for term in terms):
                results.append(location)
        return results

    def update_status(
        self,
        location_id: str,
        status: str,
        updated_by: str,
        notes: Optional[str] = None,
        estimated_wait_time: Optional[int] = None,
        food_available: Optional[bool] = None,
        timestamp=None,
    ) -> Dict[str, Any]:
        """
        Record a status change and denormalize it onto the location.

        The location patch and the history record are committed together,
        so currentStatus never diverges from the latest history entry.

        Returns:
            The stored StatusUpdate record

        Raises:
            ValidationError: invalid status, notes or wait time (nothing written)
            NotFoundError: the location does not exist (nothing written)
        """
        record = StatusUpdateService.build_record(
            location_id=location_id,
            status=status,
            updated_by=updated_by,
            timestamp=timestamp,
            notes=notes,
            estimated_wait_time=estimated_wait_time,
            food_available=food_available,
        )
        StatusUpdateService.validate(record)
        self.require(location_id)

        location_patch: Dict[str, Any] = {
            "currentStatus": record["status"],
            "lastStatusUpdate": record["timestamp"],
            "updatedBy": updated_by,
        }
        if "estimatedWaitTime" in record:
            location_patch["estimatedWaitTime"] = record["estimatedWaitTime"]

        _, update_id = self.store.commit([
            WriteOperation("update", LOCATIONS_COLLECTION, location_patch, doc_id=location_id),
            WriteOperation("create", UPDATES_COLLECTION, record),
        ])

        logger.info(f"Location {location_id} status → {record['status']} by {updated_by} (update {update_id})")
        return self.store.get(UPDATES_COLLECTION, update_id) or {**record, "id": update_id}

    def batch_update_status(self, updates: Iterable[Dict[str, Any]]) -> BulkResult:
        """
        Apply update_status to each item independently.

        Each item is a dict with location_id, status, updated_by and the
        optional notes / estimated_wait_time / food_available keys.
        """
        result = BulkResult()
        for item in updates:
            location_id = item.get("location_id", "")
            try:
                record = self.update_status(
                    location_id=location_id,
                    status=item.get("status"),
                    updated_by=item.get("updated_by"),
                    notes=item.get("notes"),
                    estimated_wait_time=item.get("estimated_wait_time"),
                    food_available=item.get("food_available"),
                )
                result.outcomes.append(BulkItemOutcome(id=location_id, success=True, record=record))
            except FeedFindError as e:
                logger.warning(f"Bulk status update failed for location {location_id}: {e.message}")
                result.outcomes.append(BulkItemOutcome(
                    id=location_id, success=False, error=e.message, code=e.code, retryable=e.retryable
                ))
            except Exception as e:
                logger.error(f"Bulk status update failed for location {location_id}: {str(e)}", exc_info=True)
                result.outcomes.append(BulkItemOutcome(
                    id=location_id, success=False, error=str(e), code="UNKNOWN_ERROR"
                ))

        logger.info(f"Bulk status update: {result.succeeded_count} succeeded, {result.failed_count} failed")
        return result

    def approve(
        self,
        location_id: str,
        admin_id: str,
        status: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Admin lifecycle decision for a location.

        Approving to active sets isVerified = true; there is no way to set
        verification independently through this path.
        """
        status = enum_value(status)
        location = self.require(location_id)
        StatusWorkflowEngine.validate_transition(
            WorkflowEntity.LOCATION, location.get("status", "pending"), status
        )

        update_data: Dict[str, Any] = {
            "status": status,
            "approvedBy": admin_id,
            "approvedAt": self.store.server_timestamp(),
        }
        if status == "active":
            update_data["isVerified"] = True
        if notes:
            update_data["verificationNotes"] = notes

        self.store.update(LOCATIONS_COLLECTION, location_id, update_data)
        logger.info(f"Admin {admin_id} set location {location_id}: {location.get('status')} → {status}")
        return self.require(location_id)

    @staticmethod
    def rating_patch(location: Dict[str, Any], rating: int) -> Dict[str, Any]:
        """averageRating/reviewCount after adding one rating to the location."""
        count = location.get("reviewCount", 0) or 0
        average = location.get("averageRating", 0) or 0
        new_count = count + 1
        return {
            "averageRating": round((average * count + rating) / new_count, 1),
            "reviewCount": new_count,
        }

    @staticmethod
    def _validate_location(data: Dict[str, Any]) -> None:
        if not (data.get("name") or "").strip():
            raise ValidationError("Location name is required")
        if len(data["name"]) > 100:
            raise ValidationError("Location name must be less than 100 characters")

        if not (data.get("address") or "").strip():
            raise ValidationError("Location address is required")

        coordinates = data.get("coordinates")
        if not coordinates:
            raise ValidationError("Location coordinates are required")

        latitude = coordinates.get("latitude")
        longitude = coordinates.get("longitude")
        if latitude is None or not -90 <= latitude <= 90:
            raise ValidationError("Invalid latitude: must be between -90 and 90")
        if longitude is None or not -180 <= longitude <= 180:
            raise ValidationError("Invalid longitude: must be between -180 and 180")

        if not data.get("providerId"):
            raise ValidationError("Provider ID is required")

        if data["status"] not in LIFECYCLE_STATUSES:
            raise ValidationError(f"Invalid status: must be one of {', '.join(LIFECYCLE_STATUSES)}")

        if data.get("phone") and not PHONE_PATTERN.match(data["phone"]):
            raise ValidationError("Phone number must be in format (XXX) XXX-XXXX")
