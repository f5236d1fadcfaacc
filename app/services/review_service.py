"""
Review Service - user ratings of locations.

Reviews start pending and only count toward a location's averageRating
once a moderator approves them.
"""

from typing import Any, Dict, List, Optional

from app.core.exceptions import NotFoundError, ValidationError
from app.db.base import DocumentStore, WriteOperation
from app.services.location_service import LOCATIONS_COLLECTION, LocationService
from app.services.status_update_service import enum_value
from app.services.status_workflow import StatusWorkflowEngine, WorkflowEntity
import logging

logger = logging.getLogger(__name__)

REVIEWS_COLLECTION = "reviews"
COMMENT_MAX_LENGTH = 500


def calculate_average_rating(reviews: List[Dict[str, Any]]) -> float:
    """Mean rating rounded to one decimal place; 0 when there are no reviews."""
    if not reviews:
        return 0
    total = sum(review["rating"] for review in reviews)
    return round(total / len(reviews), 1)


class ReviewService:
    """
    Service for review documents.
    """

    def __init__(self, store: DocumentStore, locations: Optional[LocationService] = None):
        self.store = store
        self.locations = locations or LocationService(store)

    def create(self, user_id: str, location_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self._validate_review(user_id, location_id, data)
        self.locations.require(location_id)

        if self.has_reviewed(user_id, location_id):
            raise ValidationError("User has already reviewed this location")

        payload = dict(data)
        payload.update({
            "userId": user_id,
            "locationId": location_id,
            "moderationStatus": "pending",
        })
        created = self.store.create(REVIEWS_COLLECTION, payload)
        logger.info(f"Review {created['id']} submitted for location {location_id}")
        return created

    def has_reviewed(self, user_id: str, location_id: str) -> bool:
        existing = self.store.query(
            REVIEWS_COLLECTION,
            filters=[("userId", "==", user_id), ("locationId", "==", location_id)],
            limit=1,
        )
        return len(existing) > 0

    def get_by_location(self, location_id: str, approved_only: bool = True) -> List[Dict[str, Any]]:
        filters = [("locationId", "==", location_id)]
        if approved_only:
            filters.append(("moderationStatus", "==", "approved"))
        return self.store.query(REVIEWS_COLLECTION, filters=filters, order_by="createdAt", descending=True)

    def moderate(
        self,
        review_id: str,
        moderator_id: str,
        decision: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        pending → approved | rejected. Approval folds the rating into the
        location aggregate in the same transaction as the status change, so
        an approved review is always counted exactly once.
        """
        decision = enum_value(decision)
        review = self.store.get(REVIEWS_COLLECTION, review_id)
        if review is None:
            raise NotFoundError(f"Review {review_id} not found")
        if decision == "rejected" and not (notes or "").strip():
            raise ValidationError("Moderator notes are required to reject a review")

        location_id = review["locationId"]

        def decide(documents):
            current, location = documents
            if current is None:
                raise NotFoundError(f"Review {review_id} not found")
            StatusWorkflowEngine.validate_transition(
                WorkflowEntity.REVIEW, current.get("moderationStatus", "pending"), decision
            )

            update_data: Dict[str, Any] = {
                "moderationStatus": decision,
                "moderatedBy": moderator_id,
                "moderatedAt": self.store.server_timestamp(),
            }
            if notes:
                update_data["moderationNotes"] = notes
            writes = [WriteOperation("update", REVIEWS_COLLECTION, update_data, doc_id=review_id)]

            if decision == "approved":
                if location is None:
                    raise NotFoundError(f"Location {location_id} not found")
                writes.append(WriteOperation(
                    "update",
                    LOCATIONS_COLLECTION,
                    LocationService.rating_patch(location, current["rating"]),
                    doc_id=location_id,
                ))
            return writes

        self.store.transact([(REVIEWS_COLLECTION, review_id), (LOCATIONS_COLLECTION, location_id)], decide)
        logger.info(f"Moderator {moderator_id} {decision} review {review_id}")
        return self.store.get(REVIEWS_COLLECTION, review_id)

    @staticmethod
    def _validate_review(user_id: str, location_id: str, data: Dict[str, Any]) -> None:
        if not user_id:
            raise ValidationError("User ID is required")
        if not location_id:
            raise ValidationError("Location ID is required")

        rating = data.get("rating")
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be a whole number between 1 and 5")

        comment = data.get("comment")
        if comment and len(comment) > COMMENT_MAX_LENGTH:
            raise ValidationError(f"Comment must be less than {COMMENT_MAX_LENGTH} characters")
