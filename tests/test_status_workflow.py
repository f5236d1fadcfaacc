"""
Tests for the approval and moderation state machines.
"""

import pytest

from app.core.exceptions import ConflictError, ValidationError
from app.services.status_workflow import StatusWorkflowEngine, WorkflowEntity


class TestTransitions:

    @pytest.mark.parametrize("entity, from_status, to_status", [
        (WorkflowEntity.FLAGGED_CONTENT, "pending", "approved"),
        (WorkflowEntity.FLAGGED_CONTENT, "pending", "rejected"),
        (WorkflowEntity.PROVIDER, "approved", "suspended"),
        (WorkflowEntity.PROVIDER, "suspended", "approved"),
        (WorkflowEntity.LOCATION, "pending", "active"),
        (WorkflowEntity.LOCATION, "inactive", "active"),
    ])
    def test_allowed(self, entity, from_status, to_status):
        assert StatusWorkflowEngine.is_valid_transition(entity, from_status, to_status)

    @pytest.mark.parametrize("entity, from_status, to_status", [
        (WorkflowEntity.FLAGGED_CONTENT, "approved", "rejected"),
        (WorkflowEntity.REVIEW, "rejected", "approved"),
        (WorkflowEntity.PROVIDER, "approved", "pending"),
        (WorkflowEntity.LOCATION, "pending", "inactive"),
    ])
    def test_not_allowed(self, entity, from_status, to_status):
        assert not StatusWorkflowEngine.is_valid_transition(entity, from_status, to_status)

    def test_reapplying_a_non_terminal_status_is_a_no_op(self):
        assert StatusWorkflowEngine.is_valid_transition(WorkflowEntity.LOCATION, "active", "active")

    def test_pending_cannot_be_reapplied(self):
        assert not StatusWorkflowEngine.is_valid_transition(WorkflowEntity.LOCATION, "pending", "pending")
        assert not StatusWorkflowEngine.is_valid_transition(WorkflowEntity.PROVIDER, "pending", "pending")

    def test_terminal_status_accepts_nothing(self):
        assert StatusWorkflowEngine.is_terminal(WorkflowEntity.REVIEW, "approved")
        assert not StatusWorkflowEngine.is_valid_transition(WorkflowEntity.REVIEW, "approved", "approved")

    def test_validate_raises_conflict(self):
        with pytest.raises(ConflictError, match="pending → inactive"):
            StatusWorkflowEngine.validate_transition(WorkflowEntity.LOCATION, "pending", "inactive")

    def test_validate_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            StatusWorkflowEngine.validate_transition(WorkflowEntity.PROVIDER, "pending", "deleted")
