"""
Review models.
"""

from pydantic import BaseModel, Field
from typing import Optional, List


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Whole-number rating 1-5")
    comment: Optional[str] = Field(None, max_length=500)
    would_recommend: Optional[bool] = None
    services_used: List[str] = Field(default_factory=list)
