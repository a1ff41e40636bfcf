"""
Pydantic schemas for users
"""

from pydantic import BaseModel, Field, EmailStr
from typing import Optional
import uuid

from housekeeping.models.company import CompanyPlan
from housekeeping.models.user import UserRole
from housekeeping.schemas.common import UtcDatetime


class UserCreate(BaseModel):
    """Account creation schema"""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    role: UserRole = Field(default=UserRole.CLEANER)
    company_id: Optional[uuid.UUID] = Field(default=None, description="Required for super admins")


class UserUpdate(BaseModel):
    """Account update schema; cleaners may only send name and phone"""
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class ChangePassword(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=100)
    new_password: str = Field(..., min_length=6, max_length=100)


class UserResponse(BaseModel):
    """User response model"""
    id: uuid.UUID
    email: str
    name: str
    phone: Optional[str]
    role: UserRole
    company_id: uuid.UUID
    company_name: Optional[str]
    is_active: bool
    must_change_password: bool
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime]
    last_login_at: Optional[UtcDatetime]


class UserProfile(UserResponse):
    """Profile with the plan details of the user's company"""
    company_plan: Optional[CompanyPlan] = None
    company_description: Optional[str] = None
