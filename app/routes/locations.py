"""
Location endpoints - public reads, search, registration and reviews.

Handlers that go through retry_read are plain functions: FastAPI runs them
in its threadpool, so the backoff sleep never blocks the event loop.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.db.retry import retry_read
from app.models.location import CurrentLocationStatus, LocationCreate, LocationStatus
from app.models.review import ReviewCreate
from app.routes.deps import (
    get_auth_context,
    get_location_service,
    get_provider_service,
    get_review_service,
    get_status_update_service,
)
from app.services.authorization import MANAGE_LOCATIONS, AuthorizationContext
from app.services.location_service import LocationService
from app.services.provider_service import ProviderService
from app.services.review_service import ReviewService, calculate_average_rating
from app.services.status_update_service import StatusUpdateService

router = APIRouter(prefix="/locations", tags=["Locations"])


@router.get("")
def list_locations(
    status: List[LocationStatus] = Query([], description="Lifecycle statuses to include"),
    current_status: List[CurrentLocationStatus] = Query([], description="Availability to include (open, closed, limited)"),
    locations: LocationService = Depends(get_location_service),
):
    """Locations filtered by lifecycle status and/or current availability."""
    items = retry_read(locations.filter_by_status, status, current_status)
    return {"count": len(items), "locations": items}


@router.get("/nearby")
def search_nearby(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(10, gt=0, le=500, description="Search radius in kilometres"),
    locations: LocationService = Depends(get_location_service),
):
    """Active locations within the radius, nearest first, with distance in miles."""
    items = retry_read(locations.search_by_coordinates, latitude, longitude, radius_km)
    return {"count": len(items), "locations": items}


@router.get("/search")
def search_locations(
    q: Optional[str] = Query(None, description="Free-text search terms"),
    zip_code: Optional[str] = Query(None, description="5-digit or ZIP+4 code"),
    services: List[str] = Query([], description="Only locations offering one of these services"),
    locations: LocationService = Depends(get_location_service),
):
    """Search active locations by ZIP code or by text."""
    if zip_code:
        items = retry_read(locations.search_by_zip_code, zip_code)
    else:
        items = retry_read(locations.search_by_text, q or "", services)
    return {"count": len(items), "locations": items}


@router.get("/recent")
def get_recent_listings(
    limit: int = Query(10, ge=1, le=50, description="Maximum number of locations"),
    locations: LocationService = Depends(get_location_service),
):
    """Active locations, most recently updated first."""
    items = retry_read(locations.get_recent_listings, limit)
    return {"count": len(items), "locations": items}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_location(
    request: LocationCreate,
    auth: AuthorizationContext = Depends(get_auth_context),
    locations: LocationService = Depends(get_location_service),
    providers: ProviderService = Depends(get_provider_service),
):
    """
    Register a location under a provider. New locations are pending until
    an admin approves them.
    """
    provider = providers.require(request.provider_id)
    auth.require_permission(request.provider_id, provider, MANAGE_LOCATIONS)

    data = {
        "name": request.name,
        "address": request.address,
        "coordinates": request.coordinates.model_dump(),
        "providerId": request.provider_id,
        "services": request.services,
    }
    optional_fields = {
        "description": request.description,
        "phone": request.phone,
        "website": request.website,
        "capacity": request.capacity,
    }
    data.update({key: value for key, value in optional_fields.items() if value is not None})

    location = locations.create_location(data)
    return {"success": True, "location": location}


@router.get("/{location_id}")
def get_location(location_id: str, locations: LocationService = Depends(get_location_service)):
    return retry_read(locations.require, location_id)


@router.get("/{location_id}/history")
def get_location_history(
    location_id: str,
    status_updates: StatusUpdateService = Depends(get_status_update_service),
):
    """Status history, newest first (at most 50 records)."""
    history = retry_read(status_updates.get_history, location_id)
    return {"location_id": location_id, "count": len(history), "history": history}


@router.get("/{location_id}/reviews")
def get_location_reviews(location_id: str, reviews: ReviewService = Depends(get_review_service)):
    approved = retry_read(reviews.get_by_location, location_id)
    return {
        "location_id": location_id,
        "count": len(approved),
        "average_rating": calculate_average_rating(approved),
        "reviews": approved,
    }


@router.post("/{location_id}/reviews", status_code=status.HTTP_201_CREATED)
async def submit_review(
    location_id: str,
    request: ReviewCreate,
    auth: AuthorizationContext = Depends(get_auth_context),
    reviews: ReviewService = Depends(get_review_service),
):
    """Submit a review. It is visible only after moderation."""
    user = auth.require_authenticated()
    data = {
        "rating": request.rating,
        "servicesUsed": request.services_used,
    }
    if request.comment is not None:
        data["comment"] = request.comment
    if request.would_recommend is not None:
        data["wouldRecommend"] = request.would_recommend

    review = reviews.create(user.uid, location_id, data)
    return {"success": True, "review": review}
