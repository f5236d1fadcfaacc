"""
Provider (organization) models.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from enum import Enum


class ProviderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"


class OrganizationRole(str, Enum):
    """Role of a user inside a provider's members map."""
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    VOLUNTEER = "volunteer"


class ProviderCreate(BaseModel):
    """Provider registration. New providers always start as pending."""
    organization_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., description="Contact email")
    contact_person: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, description="Format (XXX) XXX-XXXX")
    website: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "organization_name": "Downtown Food Bank",
            "email": "hello@downtownfoodbank.org",
            "contact_person": "Jordan Lee",
            "phone": "(217) 555-0134",
        }
    })


class ProviderApprovalRequest(BaseModel):
    status: ProviderStatus = Field(..., description="approved or suspended")
    is_verified: bool = Field(default=False)
    notes: Optional[str] = Field(None, max_length=500, description="Verification notes")


class MemberCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    role: OrganizationRole = OrganizationRole.VOLUNTEER
