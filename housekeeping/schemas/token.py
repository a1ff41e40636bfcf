"""
Pydantic schemas for authentication and tokens
"""

from pydantic import BaseModel, Field, EmailStr
from typing import Dict, Optional
import uuid

from housekeeping.models.company import CompanyPlan
from housekeeping.models.user import UserRole
from housekeeping.schemas.user import UserProfile


class RegisterRequest(BaseModel):
    """Self-registration of an admin (with a new or existing company) or a cleaner"""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    role: UserRole = Field(default=UserRole.ADMIN)
    company_id: Optional[uuid.UUID] = None
    company_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    company_description: Optional[str] = Field(default=None, max_length=500)
    company_plan: CompanyPlan = Field(default=CompanyPlan.BASIC)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class TokenResponse(BaseModel):
    """Token response"""
    access_token: str
    token_type: str = "bearer"
    user: UserProfile


class VerifyTokenRequest(BaseModel):
    token: str


class VerifyTokenResponse(BaseModel):
    valid: bool
    user: UserProfile


class ResetPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=6, max_length=100)


class UserStatusUpdate(BaseModel):
    is_active: bool


class AuthStats(BaseModel):
    """Platform wide account figures"""
    total_users: int
    total_companies: int
    active_users: int
    inactive_users: int
    users_by_role: Dict[str, int]
