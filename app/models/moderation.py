"""
Moderation queue models.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum


class FlaggedContentType(str, Enum):
    REVIEW = "review"
    LOCATION = "location"
    PROVIDER = "provider"
    COMMENT = "comment"


class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FlagContentRequest(BaseModel):
    content_id: str = Field(..., min_length=1)
    type: FlaggedContentType
    content: str = Field(..., min_length=1, max_length=5000)
    author_id: str
    author_name: str
    flag_reason: str = Field(..., min_length=1, max_length=200)
    location_id: Optional[str] = None
    location_name: Optional[str] = None


class ModerationDecisionRequest(BaseModel):
    """Notes are optional for approval and required for rejection."""
    notes: Optional[str] = Field(None, max_length=1000)


class BulkModerationRequest(BaseModel):
    item_ids: List[str] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)


class ReviewModerationRequest(BaseModel):
    decision: ModerationStatus = Field(..., description="approved or rejected")
    notes: Optional[str] = Field(None, max_length=1000)
