"""
Tests for the provider dashboard controller.
"""

import pytest

from app.controllers.provider_dashboard import SliceStatus, parse_wait_time
from app.core.exceptions import NetworkError, PermissionDeniedError, ValidationError
from app.core.settings import settings
from app.models.user import CurrentUser, UserRole
from app.services.authorization import AuthorizationContext


class FlakyRecentUpdates:
    """Status update reader that fails a fixed number of times."""

    def __init__(self, real, failures):
        self.real = real
        self.failures = failures
        self.calls = 0

    def get_recent_by_provider_id(self, provider_id):
        self.calls += 1
        if self.calls <= self.failures:
            raise NetworkError("Network error: Please check your connection")
        return self.real.get_recent_by_provider_id(provider_id)


class UnreachableProviders:
    """Provider reader that cannot reach the backend."""

    def get_by_id(self, provider_id):
        raise NetworkError("Network error: Please check your connection")


class TestParseWaitTime:
    """Form value conversion for estimated wait time."""

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "12.5", True])
    def test_blank_or_non_numeric_is_dropped(self, raw):
        assert parse_wait_time(raw) is None

    @pytest.mark.parametrize("raw, expected", [("15", 15), (" 0 ", 0), (30, 30)])
    def test_numeric_input_is_kept(self, raw, expected):
        assert parse_wait_time(raw) == expected


class TestLoad:
    """Loading the three dashboard slices."""

    def test_owner_sees_all_slices(self, make_dashboard, owner_auth, locations):
        locations.update_status("loc_main", "limited", "prov_downtown")

        state = make_dashboard(owner_auth).load()

        assert state.provider.state == SliceStatus.LOADED
        assert state.provider.data["organizationName"] == "Downtown Food Bank"
        assert {location["id"] for location in state.locations.data} == {"loc_main", "loc_east"}
        assert [update["locationId"] for update in state.updates.data] == ["loc_main"]
        assert state.is_admin_view is False

    def test_admin_view_of_another_provider(self, make_dashboard, admin_auth):
        state = make_dashboard(admin_auth).load()
        assert state.is_admin_view is True
        assert state.locations.state == SliceStatus.LOADED

    def test_member_can_view(self, make_dashboard, volunteer_auth):
        state = make_dashboard(volunteer_auth).load()
        assert state.provider.state == SliceStatus.LOADED

    def test_stranger_is_refused(self, make_dashboard, stranger_auth):
        with pytest.raises(PermissionDeniedError):
            make_dashboard(stranger_auth).load()

    def test_anonymous_is_refused(self, make_dashboard):
        with pytest.raises(PermissionDeniedError):
            make_dashboard(AuthorizationContext(None)).load()

    def test_failed_slice_leaves_the_others_usable(self, make_dashboard, owner_auth, status_updates):
        flaky = FlakyRecentUpdates(status_updates, failures=10)

        state = make_dashboard(owner_auth, status_updates=flaky).load()

        assert state.updates.state == SliceStatus.ERRORED
        assert state.updates.retryable is True
        assert state.updates.code == "NETWORK_ERROR"
        assert flaky.calls == 3
        assert state.locations.state == SliceStatus.LOADED
        assert state.provider.state == SliceStatus.LOADED

    def test_transient_read_failure_is_retried(self, make_dashboard, owner_auth, status_updates):
        flaky = FlakyRecentUpdates(status_updates, failures=1)
        state = make_dashboard(owner_auth, status_updates=flaky).load()
        assert state.updates.state == SliceStatus.LOADED
        assert flaky.calls == 2

    def test_missing_provider_is_an_errored_slice_for_admins(self, make_dashboard, admin_auth):
        state = make_dashboard(admin_auth, provider_id="prov_missing").load()
        assert state.provider.state == SliceStatus.ERRORED
        assert state.provider.code == "NOT_FOUND"
        assert state.locations.data == []

    def test_member_keeps_usable_slices_when_provider_read_fails(self, make_dashboard, volunteer_auth):
        """A failed provider read is an errored slice, not a refusal."""
        state = make_dashboard(volunteer_auth, providers=UnreachableProviders()).load()

        assert state.provider.state == SliceStatus.ERRORED
        assert state.provider.retryable is True
        assert state.locations.state == SliceStatus.LOADED
        assert state.updates.state == SliceStatus.LOADED

    def test_anonymous_is_refused_when_provider_read_fails(self, make_dashboard):
        with pytest.raises(PermissionDeniedError):
            make_dashboard(AuthorizationContext(None), providers=UnreachableProviders()).load()


class TestUpdateStatus:
    """Single status changes from the dashboard."""

    def test_owner_update_is_recorded(self, make_dashboard, owner_auth, locations):
        record = make_dashboard(owner_auth).update_status("loc_main", "closed", notes="Closed for holiday")
        assert record["updatedBy"] == "prov_downtown"
        assert locations.get_by_id("loc_main")["currentStatus"] == "closed"

    def test_volunteer_may_update(self, make_dashboard, volunteer_auth, locations):
        make_dashboard(volunteer_auth).update_status("loc_main", "limited")
        assert locations.get_by_id("loc_main")["updatedBy"] == "volunteer_1"

    def test_stranger_is_refused_before_any_write(self, make_dashboard, stranger_auth, store):
        with pytest.raises(PermissionDeniedError):
            make_dashboard(stranger_auth).update_status("loc_main", "closed")
        assert store.query("updates") == []
        assert store.get("locations", "loc_main")["currentStatus"] == "open"

    def test_member_without_permission_is_refused(self, make_dashboard, store):
        store.update("providers", "prov_downtown", {
            "members": {"viewer_1": {"role": "volunteer", "permissions": {"update_status": False}}},
        })
        viewer = AuthorizationContext(CurrentUser(uid="viewer_1", role=UserRole.USER))

        with pytest.raises(PermissionDeniedError):
            make_dashboard(viewer).update_status("loc_main", "closed")
        assert store.query("updates") == []

    def test_other_providers_location_is_refused(self, make_dashboard, owner_auth, store):
        with pytest.raises(PermissionDeniedError):
            make_dashboard(owner_auth).update_status("loc_other", "open")
        assert store.get("locations", "loc_other")["currentStatus"] == "closed"

    def test_blank_wait_time_is_omitted(self, make_dashboard, owner_auth, locations):
        record = make_dashboard(owner_auth).update_status("loc_main", "open", estimated_wait_time="")
        assert "estimatedWaitTime" not in record
        assert "estimatedWaitTime" not in locations.get_by_id("loc_main")

    def test_numeric_wait_time_is_stored(self, make_dashboard, owner_auth):
        record = make_dashboard(owner_auth).update_status("loc_main", "limited", estimated_wait_time="20")
        assert record["estimatedWaitTime"] == 20

    def test_long_notes_are_refused(self, make_dashboard, owner_auth, store):
        with pytest.raises(ValidationError):
            make_dashboard(owner_auth).update_status("loc_main", "closed", notes="x" * 201)
        assert store.query("updates") == []

    def test_loaded_slices_reflect_the_write(self, make_dashboard, owner_auth):
        dashboard = make_dashboard(owner_auth)
        dashboard.load()

        record = dashboard.update_status("loc_main", "closed")

        main = next(location for location in dashboard.state.locations.data if location["id"] == "loc_main")
        assert main["currentStatus"] == "closed"
        assert dashboard.state.updates.data[0]["id"] == record["id"]

    def test_loaded_updates_stay_within_the_recent_limit(self, make_dashboard, owner_auth, monkeypatch):
        monkeypatch.setattr(settings, "RECENT_UPDATES_LIMIT", 2)
        dashboard = make_dashboard(owner_auth)
        dashboard.load()

        for status in ("closed", "limited", "open"):
            dashboard.update_status("loc_main", status)

        assert [update["status"] for update in dashboard.state.updates.data] == ["open", "limited"]


class TestBulkUpdateStatus:
    """Bulk status changes from the dashboard."""

    def test_all_owned_locations_are_updated(self, make_dashboard, owner_auth, locations):
        result = make_dashboard(owner_auth).bulk_update_status(["loc_main", "loc_east"], "closed")
        assert result.succeeded_count == 2
        assert locations.get_by_id("loc_east")["currentStatus"] == "closed"

    def test_foreign_location_is_a_failed_item(self, make_dashboard, owner_auth, locations):
        result = make_dashboard(owner_auth).bulk_update_status(["loc_main", "loc_other", "loc_east"], "limited")

        assert [outcome.id for outcome in result.outcomes] == ["loc_main", "loc_other", "loc_east"]
        assert result.failed_ids == ["loc_other"]
        assert result.failed[0].code == "PERMISSION_DENIED"
        assert locations.get_by_id("loc_other")["currentStatus"] == "closed"

    def test_missing_location_is_a_failed_item(self, make_dashboard, owner_auth):
        result = make_dashboard(owner_auth).bulk_update_status(["loc_main", "loc_missing"], "open")
        assert result.succeeded_count == 1
        assert result.failed[0].code == "NOT_FOUND"

    def test_stranger_is_refused_before_any_write(self, make_dashboard, stranger_auth, store):
        with pytest.raises(PermissionDeniedError):
            make_dashboard(stranger_auth).bulk_update_status(["loc_main"], "closed")
        assert store.query("updates") == []


class TestStatusCounts:

    def test_counts_by_current_status(self, make_dashboard, owner_auth):
        assert make_dashboard(owner_auth).status_counts() == {"open": 1, "unknown": 1}

    def test_counts_follow_updates(self, make_dashboard, owner_auth):
        dashboard = make_dashboard(owner_auth)
        dashboard.load()
        dashboard.update_status("loc_east", "open")
        assert dashboard.status_counts() == {"open": 2}
