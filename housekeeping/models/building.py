"""
Building model
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime, Index, text
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from housekeeping.core.database import utcnow


class BuildingType(str, Enum):
    """Kind of property being cleaned"""
    HOTEL = "hotel"
    APARTMENT = "apartment"
    HOUSE = "house"
    OFFICE = "office"
    COMPLEX = "complex"


class Building(SQLModel, table=True):
    """Building owned by a company"""

    __tablename__ = "buildings"
    __table_args__ = (
        Index(
            "uq_building_company_active_name",
            "company_id",
            "name",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: uuid.UUID = Field(foreign_key="companies.id", index=True, description="Owning company")

    # Basic info
    name: str = Field(nullable=False, max_length=100)
    type: BuildingType = Field(default=BuildingType.HOTEL, nullable=False)
    address: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=500)
    floors: Optional[int] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)

    # Status
    is_active: bool = Field(default=True, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
