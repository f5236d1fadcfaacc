"""
Provider Service - organizations that own locations.

Providers register as pending and only become approved or suspended through
an admin decision.
"""

import re
from typing import Any, Dict, List, Optional

from app.core.exceptions import NotFoundError, ValidationError
from app.db.base import DocumentStore
from app.models.provider import OrganizationRole
from app.services.authorization import permission_bundle
from app.services.status_update_service import enum_value
from app.services.status_workflow import StatusWorkflowEngine, WorkflowEntity
import logging

logger = logging.getLogger(__name__)

PROVIDERS_COLLECTION = "providers"
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\(\d{3}\) \d{3}-\d{4}$")


class ProviderService:
    """
    Service for provider documents.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def create(self, owner_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Register a provider keyed by the owner's user id.

        The owner is added to the members map with the owner bundle.
        """
        if not owner_id:
            raise ValidationError("User must be authenticated to create a provider profile")
        self._validate_provider(data)

        if self.store.get(PROVIDERS_COLLECTION, owner_id) is not None:
            raise ValidationError("A provider profile already exists for this user")

        payload = dict(data)
        payload.update({
            "status": "pending",
            "isVerified": False,
            "members": {
                owner_id: {
                    "role": OrganizationRole.OWNER.value,
                    "permissions": permission_bundle(OrganizationRole.OWNER),
                }
            },
        })
        created = self.store.set(PROVIDERS_COLLECTION, owner_id, payload)
        logger.info(f"Provider registered: {owner_id} ({data.get('organizationName')})")
        return created

    def get_by_id(self, provider_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get(PROVIDERS_COLLECTION, provider_id)

    def require(self, provider_id: str) -> Dict[str, Any]:
        provider = self.get_by_id(provider_id)
        if provider is None:
            raise NotFoundError(f"Provider {provider_id} not found")
        return provider

    def get_all_by_user_id(self, user_id: str) -> List[Dict[str, Any]]:
        """Providers keyed by the user id plus any the user manages, de-duplicated."""
        providers = []
        own = self.get_by_id(user_id)
        if own:
            providers.append(own)

        for provider in self.store.query(PROVIDERS_COLLECTION, filters=[("managedBy", "==", user_id)]):
            if all(existing["id"] != provider["id"] for existing in providers):
                providers.append(provider)
        return providers

    def add_member(self, provider_id: str, user_id: str, role: OrganizationRole) -> Dict[str, Any]:
        role = OrganizationRole(enum_value(role))
        provider = self.require(provider_id)
        members = dict(provider.get("members") or {})
        members[user_id] = {"role": role.value, "permissions": permission_bundle(role)}
        self.store.update(PROVIDERS_COLLECTION, provider_id, {"members": members})
        logger.info(f"Member {user_id} added to provider {provider_id} as {role.value}")
        return self.require(provider_id)

    def approve(
        self,
        provider_id: str,
        admin_id: str,
        status: str,
        is_verified: bool = False,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Admin decision: pending → approved | suspended (and approved ↔ suspended)."""
        status = enum_value(status)
        provider = self.require(provider_id)
        StatusWorkflowEngine.validate_transition(
            WorkflowEntity.PROVIDER, provider.get("status", "pending"), status
        )

        update_data: Dict[str, Any] = {
            "status": status,
            "isVerified": bool(is_verified),
            "approvedBy": admin_id,
            "approvedAt": self.store.server_timestamp(),
        }
        if notes:
            update_data["verificationNotes"] = notes

        self.store.update(PROVIDERS_COLLECTION, provider_id, update_data)
        logger.info(f"Admin {admin_id} set provider {provider_id}: {provider.get('status')} → {status}")
        return self.require(provider_id)

    @staticmethod
    def _validate_provider(data: Dict[str, Any]) -> None:
        name = (data.get("organizationName") or "").strip()
        if not name:
            raise ValidationError("Organization name is required")
        if len(name) > 100:
            raise ValidationError("Organization name must be less than 100 characters")

        if not data.get("email") or not EMAIL_PATTERN.match(data["email"]):
            raise ValidationError("Valid email address is required")

        if data.get("phone") and not PHONE_PATTERN.match(data["phone"]):
            raise ValidationError("Phone number must be in format (XXX) XXX-XXXX")
