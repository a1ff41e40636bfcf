"""
Pydantic schemas for rooms
"""

from pydantic import BaseModel, Field
from typing import Optional
import uuid

from housekeeping.schemas.common import UtcDatetime

class BedConfiguration(BaseModel):
    king_beds: int = Field(default=0, ge=0, le=10)
    individual_beds: int = Field(default=0, ge=0, le=10)
    description: Optional[str] = Field(default=None, max_length=200)


class RoomCreate(BaseModel):
    """Room creation schema"""
    building_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=50)
    bed_configuration: BedConfiguration
    floor: Optional[int] = Field(default=None, ge=0, le=200)
    area: Optional[float] = Field(default=None, gt=0, le=10000)
    description: Optional[str] = Field(default=None, max_length=500)
    cleaning_notes: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True


class RoomUpdate(BaseModel):
    """Room update schema; cleaners may only send cleaning_notes"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    bed_configuration: Optional[BedConfiguration] = None
    floor: Optional[int] = Field(default=None, ge=0, le=200)
    area: Optional[float] = Field(default=None, gt=0, le=10000)
    description: Optional[str] = Field(default=None, max_length=500)
    cleaning_notes: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class RoomStats(BaseModel):
    total_tasks: int = 0
    pending_tasks: int = 0
    completed_tasks_today: int = 0
    last_cleaned_at: Optional[UtcDatetime] = None
    last_cleaned_by: Optional[str] = None


class RoomResponse(BaseModel):
    """Room with building context, bed summary and statistics"""
    id: uuid.UUID
    building_id: uuid.UUID
    building_name: str
    company_id: uuid.UUID
    name: str
    bed_configuration: BedConfiguration
    bed_summary: str
    floor: Optional[int]
    area: Optional[float]
    description: Optional[str]
    cleaning_notes: Optional[str]
    is_active: bool
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime]
    stats: RoomStats


class RoomOption(BaseModel):
    """Compact room for select inputs"""
    id: uuid.UUID
    name: str
    building_id: uuid.UUID
    building_name: str
    bed_summary: str
