"""
Shared response models.

Bulk operations report a per-item outcome instead of a single pass/fail
flag. Partial failure is a normal result, not an error.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class BulkItemOutcome(BaseModel):
    id: str = Field(..., description="Target document id")
    success: bool
    error: Optional[str] = None
    code: Optional[str] = None
    retryable: bool = False
    record: Optional[Dict[str, Any]] = None


class BulkResult(BaseModel):
    outcomes: List[BulkItemOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[BulkItemOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> List[BulkItemOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def failed_ids(self) -> List[str]:
        return [o.id for o in self.failed]

    def summary(self) -> Dict[str, Any]:
        return {
            "succeeded_count": self.succeeded_count,
            "failed_count": self.failed_count,
            "failed_ids": self.failed_ids,
            "outcomes": [o.model_dump() for o in self.outcomes],
        }
