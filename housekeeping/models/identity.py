"""
Identity model - credentials owned by the identity provider
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional
import uuid

from housekeeping.core.database import utcnow


class Identity(SQLModel, table=True):
    """Login credentials, kept apart from the account profile"""

    __tablename__ = "identities"

    uid: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, nullable=False, max_length=255)
    password_hash: str = Field(nullable=False)
    display_name: Optional[str] = Field(default=None, max_length=100)
    disabled: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
