"""
Pydantic schemas for companies
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import uuid

from housekeeping.models.company import CompanyPlan
from housekeeping.schemas.common import UtcDatetime


class CompanyCreate(BaseModel):
    """Company creation schema"""
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    plan: CompanyPlan = Field(default=CompanyPlan.BASIC)
    max_buildings: Optional[int] = Field(default=None, ge=1, le=500, description="Defaults from the plan")
    is_active: bool = True


class CompanyUpdate(BaseModel):
    """Company update schema, every field optional"""
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    plan: Optional[CompanyPlan] = None
    max_buildings: Optional[int] = Field(default=None, ge=1, le=500)
    is_active: Optional[bool] = None


class CompanyResponse(BaseModel):
    """Company response model"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str]
    plan: CompanyPlan
    max_buildings: int
    is_active: bool
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime]


class CompanyStats(BaseModel):
    """Company activity over the trailing 30 days"""
    company_id: uuid.UUID
    total_buildings: int
    total_rooms: int
    total_users: int
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    period_start: UtcDatetime
