"""
Moderation / Approval Controller.

Admin-only actions over the moderation queue, provider and location
approvals, and review moderation. Every action checks the admin capability
and validates its input before any write.
"""

from typing import Any, Dict, Iterable, List, Optional

from app.core.exceptions import ValidationError
from app.models.base import BulkResult
from app.services.authorization import AuthorizationContext
from app.services.location_service import LocationService
from app.services.moderation_service import ModerationService
from app.services.provider_service import ProviderService
from app.services.review_service import ReviewService
import logging

logger = logging.getLogger(__name__)


def require_notes(notes: Optional[str]) -> str:
    if not (notes or "").strip():
        raise ValidationError("Please add moderation notes explaining why this content is being rejected.")
    return notes.strip()


class ModerationController:
    def __init__(
        self,
        auth: AuthorizationContext,
        moderation: ModerationService,
        providers: ProviderService,
        locations: LocationService,
        reviews: ReviewService,
    ):
        self.auth = auth
        self.moderation = moderation
        self.providers = providers
        self.locations = locations
        self.reviews = reviews

    def queue(self, **filters) -> List[Dict[str, Any]]:
        self.auth.require_admin()
        return self.moderation.get_flagged_content(**filters)

    def stats(self) -> Dict[str, Any]:
        self.auth.require_admin()
        return self.moderation.get_moderation_stats()

    def approve(self, item_id: str, notes: Optional[str] = None) -> Dict[str, Any]:
        moderator_id = self._moderator_id()
        return self.moderation.approve_content(item_id, moderator_id, notes)

    def reject(self, item_id: str, notes: Optional[str]) -> Dict[str, Any]:
        moderator_id = self._moderator_id()
        return self.moderation.reject_content(item_id, moderator_id, require_notes(notes))

    def bulk_approve(self, item_ids: Iterable[str], notes: Optional[str] = None) -> BulkResult:
        """One moderator, one action, N independent writes."""
        moderator_id = self._moderator_id()
        result = self.moderation.bulk_approve_content(list(item_ids), moderator_id, notes)
        logger.info(f"Moderator {moderator_id} bulk approved {result.succeeded_count} items ({result.failed_count} failed)")
        return result

    def bulk_reject(self, item_ids: Iterable[str], notes: Optional[str]) -> BulkResult:
        moderator_id = self._moderator_id()
        result = self.moderation.bulk_reject_content(list(item_ids), moderator_id, require_notes(notes))
        logger.info(f"Moderator {moderator_id} bulk rejected {result.succeeded_count} items ({result.failed_count} failed)")
        return result

    def approve_provider(
        self,
        provider_id: str,
        status: str,
        is_verified: bool = False,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        admin_id = self._moderator_id()
        return self.providers.approve(provider_id, admin_id, status, is_verified=is_verified, notes=notes)

    def approve_location(self, location_id: str, status: str, notes: Optional[str] = None) -> Dict[str, Any]:
        admin_id = self._moderator_id()
        return self.locations.approve(location_id, admin_id, status, notes=notes)

    def moderate_review(self, review_id: str, decision: str, notes: Optional[str] = None) -> Dict[str, Any]:
        moderator_id = self._moderator_id()
        return self.reviews.moderate(review_id, moderator_id, decision, notes)

    def _moderator_id(self) -> str:
        self.auth.require_admin()
        return self.auth.uid
