"""
Admin endpoints - moderation queue and approvals.

SCOPE OF ADMIN:
✅ Approve or reject flagged content (rejection requires notes)
✅ Bulk decisions with per-item outcomes
✅ Approve or suspend providers and locations
✅ Moderate reviews before they count toward ratings

❌ NOT edit content
❌ NOT delete documents
❌ NOT change a location's availability (providers report that)
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.controllers.moderation import ModerationController
from app.models.location import LocationApprovalRequest
from app.models.moderation import (
    BulkModerationRequest,
    FlagContentRequest,
    FlaggedContentType,
    ModerationDecisionRequest,
    ModerationStatus,
    ReviewModerationRequest,
)
from app.models.provider import ProviderApprovalRequest
from app.routes.deps import get_auth_context, get_moderation_controller, get_moderation_service
from app.services.authorization import AuthorizationContext
from app.services.moderation_service import ModerationService, analyze_content


router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/flagged")
async def get_flagged_content(
    type: Optional[FlaggedContentType] = Query(None, description="Filter by content type"),
    status: Optional[ModerationStatus] = Query(None, description="Filter by moderation status"),
    flag_reason: Optional[str] = Query(None, description="Filter by flag reason"),
    date_from: Optional[datetime] = Query(None, description="Flagged at or after"),
    date_to: Optional[datetime] = Query(None, description="Flagged at or before"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of items"),
    controller: ModerationController = Depends(get_moderation_controller),
):
    """Moderation queue, newest first."""
    items = controller.queue(
        content_type=type,
        status=status,
        flag_reason=flag_reason,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )
    return {"count": len(items), "items": items}


@router.get("/flagged/stats")
async def get_moderation_stats(controller: ModerationController = Depends(get_moderation_controller)):
    return controller.stats()


@router.post("/flagged", status_code=status.HTTP_201_CREATED)
async def flag_content(
    request: FlagContentRequest,
    auth: AuthorizationContext = Depends(get_auth_context),
    moderation: ModerationService = Depends(get_moderation_service),
):
    """
    Flag a piece of content for review. Any signed-in user may flag.

    The response includes the advisory language screen; it does not
    decide anything.
    """
    user = auth.require_authenticated()
    item = moderation.flag_content(
        content_id=request.content_id,
        content_type=request.type,
        content=request.content,
        author_id=request.author_id,
        author_name=request.author_name,
        flagged_by=user.uid,
        flag_reason=request.flag_reason,
        location_id=request.location_id,
        location_name=request.location_name,
    )
    return {"success": True, "item": item, "analysis": analyze_content(request.content)}


@router.post("/flagged/bulk-approve")
async def bulk_approve(
    request: BulkModerationRequest,
    controller: ModerationController = Depends(get_moderation_controller),
):
    result = controller.bulk_approve(request.item_ids, request.notes)
    return {"success": result.failed_count == 0, **result.summary()}


@router.post("/flagged/bulk-reject")
async def bulk_reject(
    request: BulkModerationRequest,
    controller: ModerationController = Depends(get_moderation_controller),
):
    """Reject several items with one shared note. Notes are required."""
    result = controller.bulk_reject(request.item_ids, request.notes)
    return {"success": result.failed_count == 0, **result.summary()}


@router.post("/flagged/{item_id}/approve")
async def approve_content(
    item_id: str,
    request: ModerationDecisionRequest,
    controller: ModerationController = Depends(get_moderation_controller),
):
    item = controller.approve(item_id, request.notes)
    return {"success": True, "item": item}


@router.post("/flagged/{item_id}/reject")
async def reject_content(
    item_id: str,
    request: ModerationDecisionRequest,
    controller: ModerationController = Depends(get_moderation_controller),
):
    """
    Reject flagged content.

    Raises:
        400: notes missing (nothing is written)
        409: item already decided
    """
    item = controller.reject(item_id, request.notes)
    return {"success": True, "item": item}


@router.post("/providers/{provider_id}/approval")
async def decide_provider(
    provider_id: str,
    request: ProviderApprovalRequest,
    controller: ModerationController = Depends(get_moderation_controller),
):
    provider = controller.approve_provider(
        provider_id,
        request.status,
        is_verified=request.is_verified,
        notes=request.notes,
    )
    return {"success": True, "provider": provider}


@router.post("/locations/{location_id}/approval")
async def decide_location(
    location_id: str,
    request: LocationApprovalRequest,
    controller: ModerationController = Depends(get_moderation_controller),
):
    """Approving to active also marks the location verified."""
    location = controller.approve_location(location_id, request.status, notes=request.notes)
    return {"success": True, "location": location}


@router.post("/reviews/{review_id}/moderation")
async def moderate_review(
    review_id: str,
    request: ReviewModerationRequest,
    controller: ModerationController = Depends(get_moderation_controller),
):
    review = controller.moderate_review(review_id, request.decision, request.notes)
    return {"success": True, "review": review}
