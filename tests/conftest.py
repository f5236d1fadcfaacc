import functools
import time

import pytest
from fastapi.testclient import TestClient

from app.controllers.moderation import ModerationController
from app.controllers.provider_dashboard import ProviderDashboardController
from app.core.settings import settings
from app.db.memory_store import MemoryDocumentStore
from app.db.retry import retry_read
from app.models.provider import OrganizationRole
from app.models.user import CurrentUser, UserRole
from app.services.authorization import AuthorizationContext, permission_bundle
from app.services.location_service import LocationService
from app.services.moderation_service import ModerationService
from app.services.provider_service import ProviderService
from app.services.review_service import ReviewService
from app.services.status_update_service import StatusUpdateService

PROVIDER_ID = "prov_downtown"
OTHER_PROVIDER_ID = "prov_other"
ADMIN_ID = "admin_1"
VOLUNTEER_ID = "volunteer_1"
STRANGER_ID = "stranger_1"


def seed_data():
    return {
        "users": {
            ADMIN_ID: {"role": "admin"},
            PROVIDER_ID: {"role": "provider"},
            OTHER_PROVIDER_ID: {"role": "provider"},
            VOLUNTEER_ID: {"role": "user"},
            STRANGER_ID: {"role": "user"},
        },
        "providers": {
            PROVIDER_ID: {
                "organizationName": "Downtown Food Bank",
                "email": "hello@downtownfoodbank.org",
                "status": "approved",
                "isVerified": True,
                "members": {
                    PROVIDER_ID: {"role": "owner", "permissions": permission_bundle(OrganizationRole.OWNER)},
                    VOLUNTEER_ID: {"role": "volunteer", "permissions": permission_bundle(OrganizationRole.VOLUNTEER)},
                },
            },
            OTHER_PROVIDER_ID: {
                "organizationName": "Westside Pantry",
                "email": "info@westside.org",
                "status": "approved",
                "isVerified": True,
                "members": {
                    OTHER_PROVIDER_ID: {"role": "owner", "permissions": permission_bundle(OrganizationRole.OWNER)},
                },
            },
            "prov_pending": {
                "organizationName": "New Hope Kitchen",
                "email": "team@newhope.org",
                "status": "pending",
                "isVerified": False,
                "members": {},
            },
        },
        "locations": {
            "loc_main": {
                "name": "Main Street Pantry",
                "address": "120 Main St",
                "coordinates": {"latitude": 39.78, "longitude": -89.65},
                "providerId": PROVIDER_ID,
                "status": "active",
                "isVerified": True,
                "currentStatus": "open",
            },
            "loc_east": {
                "name": "Eastside Kitchen",
                "address": "48 Oak Ave",
                "coordinates": {"latitude": 39.80, "longitude": -89.62},
                "providerId": PROVIDER_ID,
                "status": "pending",
                "isVerified": False,
            },
            "loc_other": {
                "name": "Westside Pantry",
                "address": "9 Elm St",
                "coordinates": {"latitude": 39.70, "longitude": -89.70},
                "providerId": OTHER_PROVIDER_ID,
                "status": "active",
                "isVerified": True,
                "currentStatus": "closed",
            },
        },
    }


def make_auth(uid, role=UserRole.USER):
    return AuthorizationContext(CurrentUser(uid=uid, role=role))


# Reads in tests never wait between retries
no_wait_read = functools.partial(retry_read, sleep=lambda seconds: None)


class SlowReadStore(MemoryDocumentStore):
    """Store whose reads pause, so concurrent writers overlap between read and write."""

    def get(self, collection, doc_id):
        document = super().get(collection, doc_id)
        time.sleep(0.05)
        return document


@pytest.fixture
def seed():
    return seed_data()


@pytest.fixture
def store(seed):
    """Fresh in-memory store with two providers and three locations."""
    return MemoryDocumentStore(seed=seed)


@pytest.fixture
def slow_store(seed):
    return SlowReadStore(seed=seed)


@pytest.fixture
def status_updates(store):
    return StatusUpdateService(store)


@pytest.fixture
def locations(store, status_updates):
    return LocationService(store, status_updates=status_updates)


@pytest.fixture
def providers(store):
    return ProviderService(store)


@pytest.fixture
def moderation(store):
    return ModerationService(store)


@pytest.fixture
def reviews(store, locations):
    return ReviewService(store, locations=locations)


@pytest.fixture
def admin_auth():
    return make_auth(ADMIN_ID, UserRole.ADMIN)


@pytest.fixture
def owner_auth():
    return make_auth(PROVIDER_ID, UserRole.PROVIDER)


@pytest.fixture
def volunteer_auth():
    return make_auth(VOLUNTEER_ID)


@pytest.fixture
def stranger_auth():
    return make_auth(STRANGER_ID)


@pytest.fixture
def make_dashboard(providers, locations, status_updates):
    """Factory: dashboard controller for PROVIDER_ID as the given user."""
    def _make(auth, provider_id=PROVIDER_ID, **overrides):
        kwargs = {
            "provider_id": provider_id,
            "auth": auth,
            "providers": providers,
            "locations": locations,
            "status_updates": status_updates,
            "read": no_wait_read,
        }
        kwargs.update(overrides)
        return ProviderDashboardController(**kwargs)
    return _make


@pytest.fixture
def make_moderation_controller(moderation, providers, locations, reviews):
    def _make(auth):
        return ModerationController(
            auth=auth,
            moderation=moderation,
            providers=providers,
            locations=locations,
            reviews=reviews,
        )
    return _make


@pytest.fixture
def flagged_items(moderation):
    """Three pending flagged reviews."""
    return [
        moderation.flag_content(
            content_id=f"review_{index}",
            content_type="review",
            content=f"Flagged comment {index}",
            author_id="author_1",
            author_name="Alex",
            flagged_by=STRANGER_ID,
            flag_reason="spam" if index < 2 else "harassment",
            location_id="loc_main",
            location_name="Main Street Pantry",
        )
        for index in range(3)
    ]


@pytest.fixture
def client(store, monkeypatch):
    """API client over the in-memory store, with development auth headers."""
    from app.main import app
    from app.routes.deps import get_db_store

    monkeypatch.setattr(settings, "USE_MOCK_DB", True)
    app.dependency_overrides[get_db_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers_for():
    """Build the development auth headers for a user."""
    def _headers(uid, role=None):
        headers = {"X-User-Id": uid}
        if role:
            headers["X-User-Role"] = role
        return headers
    return _headers
