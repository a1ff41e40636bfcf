"""
Company model - Multi-tenancy foundation
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime, Index, text
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from housekeeping.core.database import utcnow


# Super admins belong to this tenant; no companies row exists for it
SYSTEM_COMPANY_ID = uuid.UUID(int=0)
SYSTEM_COMPANY_NAME = "Sistema"


class CompanyPlan(str, Enum):
    """Subscription plans"""
    BASIC = "basic"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


PLAN_MAX_BUILDINGS = {
    CompanyPlan.BASIC: 5,
    CompanyPlan.PROFESSIONAL: 25,
    CompanyPlan.ENTERPRISE: 100,
}


def default_max_buildings(plan: CompanyPlan) -> int:
    """Building quota granted by a plan"""
    return PLAN_MAX_BUILDINGS[CompanyPlan(plan)]


class Company(SQLModel, table=True):
    """Company (tenant) owning buildings and staff accounts"""

    __tablename__ = "companies"
    __table_args__ = (
        Index(
            "uq_company_active_name",
            "name",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(nullable=False, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    # Plan
    plan: CompanyPlan = Field(default=CompanyPlan.BASIC, nullable=False)
    max_buildings: int = Field(default=5, nullable=False)

    # Status
    is_active: bool = Field(default=True, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
