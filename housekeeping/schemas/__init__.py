"""
Schemas for API responses and requests
"""

from housekeeping.schemas.common import MessageResponse, Page
from housekeeping.schemas.token import TokenResponse
from housekeeping.schemas.user import UserCreate, UserResponse, UserUpdate

__all__ = [
    "MessageResponse",
    "Page",
    "TokenResponse",
    "UserCreate",
    "UserResponse",
    "UserUpdate",
]
