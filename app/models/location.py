"""
Pydantic models for locations and their availability status.
Firestore documents use camelCase field names; request bodies use snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Union
from enum import Enum


class LocationStatus(str, Enum):
    """Lifecycle status of a location (admin controlled)."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    SUSPENDED = "suspended"


class CurrentLocationStatus(str, Enum):
    """Availability reported by providers. Denormalized onto the location."""
    OPEN = "open"
    CLOSED = "closed"
    LIMITED = "limited"


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class LocationCreate(BaseModel):
    """Body for registering a new location under a provider."""
    name: str = Field(..., min_length=1, max_length=100, description="Location name")
    address: str = Field(..., min_length=1, max_length=300, description="Street address")
    coordinates: Coordinates
    provider_id: str = Field(..., min_length=1, description="Owning provider")
    description: Optional[str] = Field(None, max_length=1000)
    phone: Optional[str] = None
    website: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    services: List[str] = Field(default_factory=list)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Eastside Community Pantry",
            "address": "120 Main St, Springfield, IL 62701",
            "coordinates": {"latitude": 39.7817, "longitude": -89.6501},
            "provider_id": "prov_123",
            "capacity": 150,
        }
    })


class StatusUpdateRequest(BaseModel):
    """
    Single status change submitted from the provider dashboard.

    estimated_wait_time is the raw form value: blank or non-numeric input
    is dropped, never stored as 0 or null.
    """
    status: CurrentLocationStatus = Field(..., description="New availability status")
    notes: Optional[str] = Field(None, description="Optional notes (max 200 characters)")
    estimated_wait_time: Optional[Union[int, str]] = Field(None, description="Wait time in minutes")
    food_available: Optional[bool] = Field(None, description="Whether food is currently available")


class BulkStatusUpdateRequest(BaseModel):
    """One target status applied to several locations."""
    location_ids: List[str] = Field(..., min_length=1, description="Locations to update")
    status: CurrentLocationStatus
    notes: Optional[str] = None


class LocationApprovalRequest(BaseModel):
    """Admin approval decision for a pending location."""
    status: LocationStatus = Field(..., description="active or suspended")
    notes: Optional[str] = Field(None, max_length=500, description="Verification notes")

