"""
Tests for the moderation queue, its controller and admin approvals.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.services.moderation_service import ModerationService, analyze_content


class TestAnalyzeContent:
    """Advisory language screen."""

    def test_clean_text(self):
        assert analyze_content("Friendly staff and fresh bread") == {
            "is_inappropriate": False,
            "confidence": 0.1,
            "reasons": [],
        }

    def test_inappropriate_language(self):
        result = analyze_content("This place is TERRIBLE")
        assert result["is_inappropriate"] is True
        assert result["confidence"] == 0.8
        assert result["reasons"] == ["inappropriate_language"]

    def test_offensive_only(self):
        result = analyze_content("what a jerk")
        assert result["confidence"] == 0.6
        assert result["reasons"] == ["offensive_content"]


class TestFlagContent:

    def test_flagged_item_starts_pending(self, flagged_items):
        item = flagged_items[0]
        assert item["status"] == "pending"
        assert item["type"] == "review"
        assert item["locationId"] == "loc_main"
        assert item["flaggedAt"] is not None

    def test_unknown_content_type_is_rejected(self, moderation):
        with pytest.raises(ValidationError, match="content type"):
            moderation.flag_content("x", "photo", "text", "a", "A", "u", "spam")

    def test_reason_is_required(self, moderation):
        with pytest.raises(ValidationError, match="reason"):
            moderation.flag_content("x", "review", "text", "a", "A", "u", "  ")


class TestDecisions:
    """Single approve / reject decisions."""

    def test_reject_without_notes_writes_nothing(self, moderation, flagged_items):
        item_id = flagged_items[0]["id"]

        with pytest.raises(ValidationError):
            moderation.reject_content(item_id, "admin_1", "   ")

        item = moderation.get_by_id(item_id)
        assert item["status"] == "pending"
        assert "moderatedAt" not in item

    def test_reject_with_notes(self, moderation, flagged_items):
        item = moderation.reject_content(flagged_items[0]["id"], "admin_1", "Personal attack")
        assert item["status"] == "rejected"
        assert item["moderatorId"] == "admin_1"
        assert item["moderatorNotes"] == "Personal attack"
        assert item["moderatedAt"] is not None

    def test_approve(self, moderation, flagged_items):
        item = moderation.approve_content(flagged_items[0]["id"], "admin_1")
        assert item["status"] == "approved"
        assert item["moderatorNotes"] == ""

    def test_decided_item_cannot_be_decided_again(self, moderation, flagged_items):
        item_id = flagged_items[0]["id"]
        moderation.approve_content(item_id, "admin_1")

        with pytest.raises(ConflictError):
            moderation.reject_content(item_id, "admin_1", "Changed my mind")
        with pytest.raises(ConflictError):
            moderation.approve_content(item_id, "admin_1")

    def test_racing_decisions_only_one_wins(self, slow_store):
        """Two moderators deciding the same item at once: one succeeds, one conflicts."""
        service = ModerationService(slow_store)
        item_id = service.flag_content("review_7", "review", "text", "a", "A", "u", "spam")["id"]
        barrier = threading.Barrier(2)
        results = {}

        def decide(name, action):
            barrier.wait()
            try:
                action()
                results[name] = "ok"
            except ConflictError:
                results[name] = "conflict"

        threads = [
            threading.Thread(target=decide, args=("approved", lambda: service.approve_content(item_id, "admin_1"))),
            threading.Thread(target=decide, args=("rejected", lambda: service.reject_content(item_id, "admin_2", "Spam"))),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results.values()) == ["conflict", "ok"]
        winner = next(name for name, outcome in results.items() if outcome == "ok")
        assert service.get_by_id(item_id)["status"] == winner

    def test_missing_item(self, moderation):
        with pytest.raises(NotFoundError):
            moderation.approve_content("missing", "admin_1")


class TestBulkDecisions:
    """Bulk moderation is N independent writes."""

    def test_bulk_approve_reports_per_item(self, moderation, flagged_items):
        ids = [item["id"] for item in flagged_items] + ["missing"]

        result = moderation.bulk_approve_content(ids, "admin_1")

        assert result.succeeded_count == 3
        assert result.failed_ids == ["missing"]
        assert moderation.get_by_id(flagged_items[0]["id"])["moderatorNotes"] == "Bulk approved"

    def test_already_decided_item_fails_alone(self, moderation, flagged_items):
        moderation.reject_content(flagged_items[1]["id"], "admin_1", "Spam link")

        result = moderation.bulk_approve_content([item["id"] for item in flagged_items], "admin_1")

        assert result.succeeded_count == 2
        assert result.failed[0].id == flagged_items[1]["id"]
        assert result.failed[0].code == "INVALID_TRANSITION"

    def test_bulk_reject_requires_notes_up_front(self, moderation, flagged_items):
        with pytest.raises(ValidationError):
            moderation.bulk_reject_content([item["id"] for item in flagged_items], "admin_1", "")
        assert all(moderation.get_by_id(item["id"])["status"] == "pending" for item in flagged_items)

    def test_bulk_reject(self, moderation, flagged_items):
        result = moderation.bulk_reject_content([item["id"] for item in flagged_items], "admin_1", "Spam wave")
        assert result.succeeded_count == 3
        assert {moderation.get_by_id(item["id"])["status"] for item in flagged_items} == {"rejected"}


class TestQueue:
    """Filtering and statistics."""

    def test_filter_by_reason_and_status(self, moderation, flagged_items):
        moderation.approve_content(flagged_items[0]["id"], "admin_1")

        assert len(moderation.get_flagged_content(flag_reason="spam")) == 2
        pending_spam = moderation.get_flagged_content(flag_reason="spam", status="pending")
        assert [item["id"] for item in pending_spam] == [flagged_items[1]["id"]]

    def test_date_range(self, moderation, flagged_items):
        future = datetime.now(timezone.utc) + timedelta(days=1)
        assert moderation.get_flagged_content(date_from=future) == []
        assert len(moderation.get_flagged_content(date_to=future)) == 3

    def test_date_without_timezone_is_treated_as_utc(self, moderation, flagged_items):
        assert len(moderation.get_flagged_content(date_from=datetime(2020, 1, 1))) == 3
        assert moderation.get_flagged_content(date_to=datetime(2020, 1, 1)) == []

    def test_stats(self, moderation, flagged_items):
        moderation.approve_content(flagged_items[0]["id"], "admin_1")
        moderation.reject_content(flagged_items[2]["id"], "admin_1", "Harassment")

        stats = moderation.get_moderation_stats()

        assert stats["total_flagged"] == 3
        assert stats["pending_review"] == 1
        assert stats["approved_today"] == 1
        assert stats["rejected_today"] == 1
        assert stats["top_flag_reasons"][0] == {"reason": "spam", "count": 2}


class TestModerationController:
    """Admin capability and input checks happen before any write."""

    def test_non_admin_is_refused(self, make_moderation_controller, owner_auth, moderation, flagged_items):
        controller = make_moderation_controller(owner_auth)

        with pytest.raises(PermissionDeniedError):
            controller.approve(flagged_items[0]["id"])
        with pytest.raises(PermissionDeniedError):
            controller.queue()

        assert moderation.get_by_id(flagged_items[0]["id"])["status"] == "pending"

    def test_reject_with_empty_notes_is_refused(self, make_moderation_controller, admin_auth, moderation, flagged_items):
        with pytest.raises(ValidationError):
            make_moderation_controller(admin_auth).reject(flagged_items[0]["id"], "")
        assert moderation.get_by_id(flagged_items[0]["id"])["status"] == "pending"

    def test_reject_records_the_moderator(self, make_moderation_controller, admin_auth, flagged_items):
        item = make_moderation_controller(admin_auth).reject(flagged_items[0]["id"], "  Off-topic  ")
        assert item["status"] == "rejected"
        assert item["moderatorId"] == "admin_1"
        assert item["moderatorNotes"] == "Off-topic"

    def test_bulk_reject_without_notes_is_refused(self, make_moderation_controller, admin_auth, flagged_items):
        with pytest.raises(ValidationError):
            make_moderation_controller(admin_auth).bulk_reject([item["id"] for item in flagged_items], None)

    def test_approve_location(self, make_moderation_controller, admin_auth):
        location = make_moderation_controller(admin_auth).approve_location("loc_east", "active")
        assert location["status"] == "active"
        assert location["isVerified"] is True

    def test_approve_provider(self, make_moderation_controller, admin_auth):
        provider = make_moderation_controller(admin_auth).approve_provider(
            "prov_pending", "approved", is_verified=True, notes="Documents checked"
        )
        assert provider["status"] == "approved"
        assert provider["isVerified"] is True
        assert provider["approvedBy"] == "admin_1"
        assert provider["verificationNotes"] == "Documents checked"

    def test_provider_approval_needs_admin(self, make_moderation_controller, owner_auth, providers):
        with pytest.raises(PermissionDeniedError):
            make_moderation_controller(owner_auth).approve_provider("prov_pending", "approved")
        assert providers.get_by_id("prov_pending")["status"] == "pending"
