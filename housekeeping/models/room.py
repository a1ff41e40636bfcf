"""
Room model with bed configuration
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime, Index, text
from datetime import datetime
from typing import Optional
import uuid

from housekeeping.core.database import utcnow

NO_BEDS_SUMMARY = "Sin camas"


def bed_summary(king_beds: int, individual_beds: int) -> str:
    """Human readable bed layout, e.g. ``1 King + 2 Individual``"""
    parts = []
    if king_beds > 0:
        parts.append(f"{king_beds} King")
    if individual_beds > 0:
        parts.append(f"{individual_beds} Individual")
    return " + ".join(parts) if parts else NO_BEDS_SUMMARY


class Room(SQLModel, table=True):
    """Room inside a building"""

    __tablename__ = "rooms"
    __table_args__ = (
        Index(
            "uq_room_building_active_name",
            "building_id",
            "name",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    building_id: uuid.UUID = Field(foreign_key="buildings.id", index=True, description="Parent building")

    # Basic info
    name: str = Field(nullable=False, max_length=50)
    floor: Optional[int] = None
    area: Optional[float] = None
    description: Optional[str] = Field(default=None, max_length=500)
    cleaning_notes: Optional[str] = Field(default=None, max_length=500)

    # Bed configuration
    king_beds: int = Field(default=0, nullable=False)
    individual_beds: int = Field(default=0, nullable=False)
    bed_description: Optional[str] = Field(default=None, max_length=200)

    # Status
    is_active: bool = Field(default=True, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    @property
    def total_beds(self) -> int:
        return self.king_beds + self.individual_beds

    @property
    def bed_summary(self) -> str:
        return bed_summary(self.king_beds, self.individual_beds)
