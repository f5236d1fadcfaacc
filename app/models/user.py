"""
User models. Accounts are created by Firebase Auth; this service only reads
the caller's role.
"""

from pydantic import BaseModel, Field
from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    PROVIDER = "provider"
    ADMIN = "admin"
    SUPERUSER = "superuser"


class CurrentUser(BaseModel):
    """Authenticated caller."""
    uid: str = Field(..., min_length=1, description="Firebase Auth user id")
    role: UserRole = UserRole.USER

    @property
    def is_admin_or_superuser(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SUPERUSER)
