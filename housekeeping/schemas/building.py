"""
Pydantic schemas for buildings
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
import uuid

from housekeeping.models.building import BuildingType
from housekeeping.schemas.common import UtcDatetime


class BuildingCreate(BaseModel):
    """Building creation schema"""
    name: str = Field(..., min_length=2, max_length=100)
    type: BuildingType = Field(default=BuildingType.HOTEL)
    address: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=500)
    floors: Optional[int] = Field(default=None, ge=1, le=200)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    company_id: Optional[uuid.UUID] = Field(default=None, description="Required for super admins")
    is_active: bool = True


class BuildingUpdate(BaseModel):
    """Building update schema; the owning company cannot change"""
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    type: Optional[BuildingType] = None
    address: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=500)
    floors: Optional[int] = Field(default=None, ge=1, le=200)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None


class BuildingStats(BaseModel):
    total_rooms: int = 0
    active_rooms: int = 0
    pending_tasks: int = 0
    completed_tasks_today: int = 0


class BuildingResponse(BaseModel):
    """Building with denormalized company name and statistics"""
    id: uuid.UUID
    company_id: uuid.UUID
    company_name: str
    name: str
    type: BuildingType
    address: Optional[str]
    description: Optional[str]
    floors: Optional[int]
    phone: Optional[str]
    email: Optional[str]
    is_active: bool
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime]
    stats: BuildingStats


class BuildingOption(BaseModel):
    """Compact building for select inputs"""
    id: uuid.UUID
    name: str
    type: BuildingType
