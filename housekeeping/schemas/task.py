"""
Pydantic schemas for cleaning tasks
"""

from pydantic import AfterValidator, BaseModel, Field
from typing import Annotated, List, Optional
import uuid

from housekeeping.models.task import OPEN_STATUSES, TaskStatus
from housekeeping.schemas.common import UtcDatetime


def _open_status(value: TaskStatus) -> TaskStatus:
    if value not in OPEN_STATUSES:
        raise ValueError("Usá los endpoints de completar o verificar para cerrar una tarea")
    return value


# Completion and verification have their own operations
OpenStatus = Annotated[TaskStatus, AfterValidator(_open_status)]


class TaskCreate(BaseModel):
    """Task creation schema"""
    room_id: uuid.UUID
    assigned_to: Optional[uuid.UUID] = None
    scheduled_date: UtcDatetime
    status: OpenStatus = Field(default=TaskStatus.PENDING)
    observations: Optional[str] = Field(default=None, max_length=1000)


class TaskUpdate(BaseModel):
    """Task update schema; the room cannot change"""
    assigned_to: Optional[uuid.UUID] = None
    scheduled_date: Optional[UtcDatetime] = None
    status: Optional[OpenStatus] = None
    observations: Optional[str] = Field(default=None, max_length=1000)


class TaskComplete(BaseModel):
    """Completion payload, both fields keep the stored value when omitted"""
    observations: Optional[str] = Field(default=None, max_length=1000)
    images: Optional[List[str]] = Field(default=None, max_length=20)


class TaskResponse(BaseModel):
    """Task with room, building and staff names"""
    id: uuid.UUID
    room_id: uuid.UUID
    room_name: str
    building_id: uuid.UUID
    building_name: str
    company_id: uuid.UUID
    assigned_to: Optional[uuid.UUID]
    assigned_to_name: Optional[str]
    scheduled_date: UtcDatetime
    status: TaskStatus
    observations: Optional[str]
    images: List[str]
    completed_at: Optional[UtcDatetime]
    completed_by: Optional[uuid.UUID]
    completed_by_name: Optional[str]
    is_overdue: bool
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime]


class ImageUploadResponse(BaseModel):
    url: str
