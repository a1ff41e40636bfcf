"""
Cleaning task model with status state machine
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, JSON
from datetime import datetime
from typing import Optional, List
from enum import Enum
import uuid

from housekeeping.core.database import as_utc, utcnow
from housekeeping.core.errors import InvalidTransitionError


class TaskStatus(str, Enum):
    """Status of a cleaning task"""
    PENDING = "pending"             # Waiting to be cleaned
    URGENT = "urgent"               # Waiting, cleaner should pick it first
    IN_PROGRESS = "in_progress"     # Cleaner is working on it
    COMPLETED = "completed"         # Cleaner finished, awaiting verification
    VERIFIED = "verified"           # Admin checked the room, terminal

    @classmethod
    def _missing_(cls, value):
        return LEGACY_STATUS_ALIASES.get(value)


LEGACY_STATUS_ALIASES = {
    "to_clean": TaskStatus.PENDING,
    "to_clean_urgent": TaskStatus.URGENT,
}

STARTABLE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.URGENT})
OPEN_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.URGENT, TaskStatus.IN_PROGRESS})
DONE_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.VERIFIED})


class CleaningTask(SQLModel, table=True):
    """Cleaning task scheduled for a room"""

    __tablename__ = "cleaning_tasks"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    room_id: uuid.UUID = Field(foreign_key="rooms.id", index=True, description="Room to clean")

    # Assignment
    assigned_to: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="accounts.id",
        index=True,
        nullable=True,
        description="Cleaner the task is assigned to"
    )
    scheduled_date: datetime = Field(sa_type=DateTime(timezone=True), nullable=False, index=True)

    # Task status
    status: TaskStatus = Field(
        default=TaskStatus.PENDING,
        index=True,
        description="Current status of the task"
    )

    # Completion details
    observations: Optional[str] = Field(default=None, max_length=1000)
    images: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    completed_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True), nullable=True, index=True
    )
    completed_by: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="accounts.id",
        nullable=True,
        description="Account that completed the task"
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    @property
    def is_overdue(self) -> bool:
        """Scheduled in the past and not finished yet"""
        return as_utc(self.scheduled_date) < utcnow() and self.status not in DONE_STATUSES

    # State machine methods
    def can_start(self) -> bool:
        """Check if a cleaner can start working on the task"""
        return self.status in STARTABLE_STATUSES

    def can_complete(self) -> bool:
        """Check if the task can be marked as completed"""
        return self.status not in DONE_STATUSES

    def can_verify(self) -> bool:
        """Check if an admin can verify the task"""
        return self.status == TaskStatus.COMPLETED

    def can_delete(self) -> bool:
        """Completed and verified tasks are kept as history"""
        return self.status not in DONE_STATUSES

    def start(self, cleaner_id: uuid.UUID) -> None:
        """Transition to IN_PROGRESS, taking the task if unassigned"""
        if not self.can_start():
            raise InvalidTransitionError(
                "Solo se pueden marcar como en progreso las tareas pendientes o urgentes"
            )
        self.status = TaskStatus.IN_PROGRESS
        if self.assigned_to is None:
            self.assigned_to = cleaner_id
        self.updated_at = utcnow()

    def complete(
        self,
        completed_by: uuid.UUID,
        observations: Optional[str] = None,
        images: Optional[List[str]] = None,
    ) -> None:
        """Transition to COMPLETED

        Observations and images replace the stored ones only when given.
        """
        if not self.can_complete():
            raise InvalidTransitionError("La tarea ya está completada")
        now = utcnow()
        self.status = TaskStatus.COMPLETED
        self.completed_at = now
        self.completed_by = completed_by
        if self.assigned_to is None:
            self.assigned_to = completed_by
        if observations is not None:
            self.observations = observations
        if images is not None:
            self.images = list(images)
        elif self.images is None:
            self.images = []
        self.updated_at = now

    def verify(self) -> None:
        """Transition to VERIFIED"""
        if not self.can_verify():
            raise InvalidTransitionError("Solo se pueden verificar tareas completadas")
        self.status = TaskStatus.VERIFIED
        self.updated_at = utcnow()
