"""
Status Workflow Engine - approval and moderation state machines.

DESIGN PRINCIPLES:
- Every admin decision is a transition in an explicit table
- Terminal states accept no further transitions (not even a no-op)
- Re-applying the current status of a non-terminal state is a no-op,
  except pending: staying pending is not a decision
- Invalid transitions are rejected before any write
"""

from enum import Enum
from typing import Dict, List

from app.core.exceptions import ConflictError, ValidationError


class WorkflowEntity(str, Enum):
    """Entities whose status is driven by admin/moderator decisions."""
    FLAGGED_CONTENT = "flaggedContent"
    PROVIDER = "providers"
    LOCATION = "locations"
    REVIEW = "reviews"


class StatusWorkflowEngine:
    """
    State machines for admin-controlled status fields.

    flaggedContent: pending -> approved | rejected (terminal)
    reviews:        pending -> approved | rejected (terminal)
    providers:      pending -> approved | suspended, approved <-> suspended
    locations:      pending -> active | suspended, active <-> suspended,
                    active -> inactive -> active
    """

    ALLOWED_TRANSITIONS: Dict[WorkflowEntity, Dict[str, List[str]]] = {
        WorkflowEntity.FLAGGED_CONTENT: {
            "pending": ["approved", "rejected"],
            "approved": [],
            "rejected": [],
        },
        WorkflowEntity.REVIEW: {
            "pending": ["approved", "rejected"],
            "approved": [],
            "rejected": [],
        },
        WorkflowEntity.PROVIDER: {
            "pending": ["approved", "suspended"],
            "approved": ["suspended"],
            "suspended": ["approved"],
        },
        WorkflowEntity.LOCATION: {
            "pending": ["active", "suspended"],
            "active": ["suspended", "inactive"],
            "suspended": ["active"],
            "inactive": ["active"],
        },
    }

    @classmethod
    def is_terminal(cls, entity: WorkflowEntity, status: str) -> bool:
        table = cls.ALLOWED_TRANSITIONS[entity]
        return status in table and not table[status]

    @classmethod
    def is_valid_transition(cls, entity: WorkflowEntity, from_status: str, to_status: str) -> bool:
        """
        Check if a status transition is valid for an entity.

        Unknown statuses are never valid.
        """
        table = cls.ALLOWED_TRANSITIONS[entity]
        if from_status not in table or to_status not in table:
            return False

        if from_status == to_status:
            return from_status != "pending" and not cls.is_terminal(entity, from_status)

        return to_status in table[from_status]

    @classmethod
    def get_allowed_transitions(cls, entity: WorkflowEntity, current_status: str) -> List[str]:
        return list(cls.ALLOWED_TRANSITIONS[entity].get(current_status, []))

    @classmethod
    def validate_transition(cls, entity: WorkflowEntity, current_status: str, new_status: str) -> None:
        """
        Raise if the transition is not allowed.

        Raises:
            ValidationError: new_status is not a status of this entity
            ConflictError: the transition is not allowed from current_status
        """
        if new_status not in cls.ALLOWED_TRANSITIONS[entity]:
            valid = ", ".join(cls.ALLOWED_TRANSITIONS[entity].keys())
            raise ValidationError(f"Invalid status: must be one of {valid}")

        if not cls.is_valid_transition(entity, current_status, new_status):
            allowed = cls.get_allowed_transitions(entity, current_status)
            raise ConflictError(
                f"Invalid status transition for {entity.value}: {current_status} → {new_status}. "
                f"Allowed transitions from {current_status}: {allowed}"
            )
