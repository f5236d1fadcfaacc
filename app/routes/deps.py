"""
Request dependencies: the DocumentStore, the authenticated caller and the
services/controllers built on top of them.

Authentication uses Firebase ID tokens (Authorization: Bearer <token>).
The caller's role is read from users/{uid}. With USE_MOCK_DB enabled the
X-User-Id / X-User-Role headers are accepted instead, for local development.
"""

from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth

from app.config.firebase import get_store, initialize_firebase_app
from app.controllers.moderation import ModerationController
from app.core.exceptions import PermissionDeniedError
from app.core.settings import settings
from app.db.base import DocumentStore
from app.models.user import CurrentUser, UserRole
from app.services.authorization import AuthorizationContext
from app.services.location_service import LocationService
from app.services.moderation_service import ModerationService
from app.services.provider_service import ProviderService
from app.services.review_service import ReviewService
from app.services.status_update_service import StatusUpdateService
import logging

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"

security = HTTPBearer(auto_error=False)


def get_db_store() -> DocumentStore:
    return get_store()


def _role_for(store: DocumentStore, uid: str) -> UserRole:
    user_doc = store.get(USERS_COLLECTION, uid) or {}
    try:
        return UserRole(user_doc.get("role", UserRole.USER.value))
    except ValueError:
        logger.warning(f"Unknown role {user_doc.get('role')!r} for user {uid}, treating as user")
        return UserRole.USER


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    store: DocumentStore = Depends(get_db_store),
) -> Optional[CurrentUser]:
    """
    Resolve the caller, or None for anonymous requests.

    Raises:
        PermissionDeniedError: a token was sent but could not be verified
    """
    if credentials is not None:
        try:
            initialize_firebase_app()
            decoded = firebase_auth.verify_id_token(credentials.credentials)
        except (firebase_auth.InvalidIdTokenError, firebase_auth.CertificateFetchError, ValueError) as e:
            logger.warning(f"Rejected ID token: {str(e)}")
            raise PermissionDeniedError("Invalid or expired authentication token.")
        uid = decoded["uid"]
        return CurrentUser(uid=uid, role=_role_for(store, uid))

    if settings.USE_MOCK_DB and x_user_id:
        if x_user_role:
            try:
                role = UserRole(x_user_role)
            except ValueError:
                raise PermissionDeniedError(f"Unknown role: {x_user_role}")
        else:
            role = _role_for(store, x_user_id)
        return CurrentUser(uid=x_user_id, role=role)

    return None


def get_auth_context(user: Optional[CurrentUser] = Depends(get_current_user)) -> AuthorizationContext:
    return AuthorizationContext(user)


def get_status_update_service(store: DocumentStore = Depends(get_db_store)) -> StatusUpdateService:
    return StatusUpdateService(store)


def get_location_service(store: DocumentStore = Depends(get_db_store)) -> LocationService:
    return LocationService(store)


def get_provider_service(store: DocumentStore = Depends(get_db_store)) -> ProviderService:
    return ProviderService(store)


def get_moderation_service(store: DocumentStore = Depends(get_db_store)) -> ModerationService:
    return ModerationService(store)


def get_review_service(store: DocumentStore = Depends(get_db_store)) -> ReviewService:
    return ReviewService(store)


def get_moderation_controller(
    auth: AuthorizationContext = Depends(get_auth_context),
    store: DocumentStore = Depends(get_db_store),
) -> ModerationController:
    locations = LocationService(store)
    return ModerationController(
        auth=auth,
        moderation=ModerationService(store),
        providers=ProviderService(store),
        locations=locations,
        reviews=ReviewService(store, locations=locations),
    )
