"""
Account model with roles and tenant scoping
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional
import uuid
from enum import Enum

from housekeeping.core.database import utcnow


class UserRole(str, Enum):
    """User roles for RBAC"""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    CLEANER = "cleaner"

    @classmethod
    def _missing_(cls, value):
        # Older clients call cleaners "maid"
        if value == "maid":
            return cls.CLEANER
        return None


ADMIN_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN})


class Account(SQLModel, table=True):
    """Staff account with tenant isolation

    The id is shared with the identity record holding the credentials.
    """

    __tablename__ = "accounts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    # No foreign key: super admins carry the sentinel system tenant
    company_id: uuid.UUID = Field(index=True, description="Tenant ID for multi-tenant isolation")

    # Profile
    email: str = Field(unique=True, index=True, nullable=False, max_length=255)
    name: str = Field(nullable=False, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)

    # RBAC
    role: UserRole = Field(default=UserRole.CLEANER, nullable=False, index=True)

    # Status
    is_active: bool = Field(default=True, index=True)
    must_change_password: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    last_login_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
