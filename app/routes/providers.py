"""
Provider endpoints - registration and the provider dashboard.

Dashboard reads load three independent slices (provider, locations,
recent updates). Status writes are checked against the caller's
permissions before anything is written. Read handlers that retry with
backoff are plain functions and run in the threadpool.
"""

from fastapi import APIRouter, Depends, status

from app.controllers.provider_dashboard import ProviderDashboardController
from app.db.base import DocumentStore
from app.db.retry import retry_read
from app.models.location import BulkStatusUpdateRequest, StatusUpdateRequest
from app.models.provider import MemberCreate, ProviderCreate
from app.routes.deps import get_auth_context, get_db_store, get_provider_service
from app.services.authorization import MANAGE_MEMBERS, AuthorizationContext
from app.services.location_service import LocationService
from app.services.provider_service import ProviderService
from app.services.status_update_service import StatusUpdateService

router = APIRouter(prefix="/providers", tags=["Providers"])


def get_dashboard_controller(
    provider_id: str,
    auth: AuthorizationContext = Depends(get_auth_context),
    store: DocumentStore = Depends(get_db_store),
) -> ProviderDashboardController:
    status_updates = StatusUpdateService(store)
    return ProviderDashboardController(
        provider_id=provider_id,
        auth=auth,
        providers=ProviderService(store),
        locations=LocationService(store, status_updates=status_updates),
        status_updates=status_updates,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_provider(
    request: ProviderCreate,
    auth: AuthorizationContext = Depends(get_auth_context),
    providers: ProviderService = Depends(get_provider_service),
):
    """
    Register the caller as a provider.

    The provider document is keyed by the caller's user id and starts as
    pending until an admin approves it.
    """
    user = auth.require_authenticated()
    data = {
        "organizationName": request.organization_name,
        "email": request.email,
    }
    optional_fields = {
        "contactPerson": request.contact_person,
        "phone": request.phone,
        "website": request.website,
        "description": request.description,
    }
    data.update({key: value for key, value in optional_fields.items() if value is not None})

    provider = providers.create(user.uid, data)
    return {"success": True, "provider": provider}


@router.get("/mine")
def get_my_providers(
    auth: AuthorizationContext = Depends(get_auth_context),
    providers: ProviderService = Depends(get_provider_service),
):
    """Providers the caller owns or manages."""
    user = auth.require_authenticated()
    items = retry_read(providers.get_all_by_user_id, user.uid)
    return {"count": len(items), "providers": items}


@router.post("/{provider_id}/members")
async def add_member(
    provider_id: str,
    request: MemberCreate,
    auth: AuthorizationContext = Depends(get_auth_context),
    providers: ProviderService = Depends(get_provider_service),
):
    provider = providers.require(provider_id)
    auth.require_permission(provider_id, provider, MANAGE_MEMBERS)
    updated = providers.add_member(provider_id, request.user_id, request.role)
    return {"success": True, "provider": updated}


@router.get("/{provider_id}/dashboard")
def get_dashboard(controller: ProviderDashboardController = Depends(get_dashboard_controller)):
    """
    Provider dashboard.

    Each slice reports its own state ("loaded" or "errored"); a failed
    slice carries the error message and whether retrying may help.
    """
    state = controller.load()
    return state.to_dict()


@router.get("/{provider_id}/dashboard/status-counts")
def get_status_counts(controller: ProviderDashboardController = Depends(get_dashboard_controller)):
    controller.load()
    return {"counts": controller.status_counts()}


@router.post("/{provider_id}/locations/{location_id}/status", status_code=status.HTTP_201_CREATED)
async def update_location_status(
    location_id: str,
    request: StatusUpdateRequest,
    controller: ProviderDashboardController = Depends(get_dashboard_controller),
):
    """
    Report a location's current availability.

    Writes the history record and the denormalized location fields
    together. A blank or non-numeric estimated_wait_time is dropped.
    """
    record = controller.update_status(
        location_id=location_id,
        status=request.status,
        notes=request.notes,
        estimated_wait_time=request.estimated_wait_time,
        food_available=request.food_available,
    )
    return {"success": True, "update": record}


@router.post("/{provider_id}/locations/bulk-status")
async def bulk_update_location_status(
    request: BulkStatusUpdateRequest,
    controller: ProviderDashboardController = Depends(get_dashboard_controller),
):
    """Apply one status to several locations; partial failure is reported per item."""
    result = controller.bulk_update_status(request.location_ids, request.status, request.notes)
    return {"success": result.failed_count == 0, **result.summary()}
