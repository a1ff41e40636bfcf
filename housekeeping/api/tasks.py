"""
Cleaning tasks API endpoints
"""

from fastapi import APIRouter, Depends, File, UploadFile, status
from typing import List, Optional
import uuid

from housekeeping.api.deps import get_task_service
from housekeeping.core.config import get_settings
from housekeeping.core.dependencies import get_current_actor, require_permission, require_roles
from housekeeping.core.permissions import Actor, Permission
from housekeeping.core.pagination import PageParams, page_params
from housekeeping.models.task import TaskStatus
from housekeeping.models.user import UserRole
from housekeeping.schemas.common import Page, UtcDatetime
from housekeeping.schemas.task import (
    ImageUploadResponse,
    TaskComplete,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
)
from housekeeping.services.tasks import TaskService

router = APIRouter()
settings = get_settings()


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    actor: Actor = Depends(require_permission(Permission.TASK_MANAGE)),
    tasks: TaskService = Depends(get_task_service),
):
    """Schedule a cleaning task for a room"""
    return await tasks.create(task_data, actor)


@router.get("/", response_model=Page[TaskResponse])
async def list_tasks(
    room_id: Optional[uuid.UUID] = None,
    building_id: Optional[uuid.UUID] = None,
    company_id: Optional[uuid.UUID] = None,
    status: Optional[TaskStatus] = None,
    assigned_to: Optional[uuid.UUID] = None,
    date_from: Optional[UtcDatetime] = None,
    date_to: Optional[UtcDatetime] = None,
    params: PageParams = Depends(page_params),
    actor: Actor = Depends(require_permission(Permission.TASK_VIEW)),
    tasks: TaskService = Depends(get_task_service),
):
    """List the tasks visible to the caller"""
    items, total = await tasks.list(
        actor,
        params,
        room_id=room_id,
        building_id=building_id,
        company_id=company_id,
        status=status,
        assigned_to=assigned_to,
        date_from=date_from,
        date_to=date_to,
    )
    return Page.build(items, total, params.page, params.limit)


@router.get("/my-tasks", response_model=List[TaskResponse])
async def list_my_tasks(
    actor: Actor = Depends(require_roles(UserRole.CLEANER)),
    tasks: TaskService = Depends(get_task_service),
):
    """Open tasks of the calling cleaner plus unassigned ones"""
    return await tasks.my_tasks(actor)


@router.post("/upload-image", response_model=ImageUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_task_image(
    file: UploadFile = File(...),
    actor: Actor = Depends(require_permission(Permission.TASK_UPLOAD_IMAGE)),
    tasks: TaskService = Depends(get_task_service),
):
    """Upload a room photo to attach when completing a task"""
    # One byte past the limit is enough to reject oversized files
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    return await tasks.upload_image(data, file.content_type, file.filename, actor)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.TASK_VIEW)),
    tasks: TaskService = Depends(get_task_service),
):
    """Get task by ID"""
    return await tasks.get(task_id, actor)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: uuid.UUID,
    task_data: TaskUpdate,
    actor: Actor = Depends(require_permission(Permission.TASK_MANAGE)),
    tasks: TaskService = Depends(get_task_service),
):
    """Reschedule, reassign or reprioritize a task"""
    return await tasks.update(task_id, task_data, actor)


@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(
    task_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    tasks: TaskService = Depends(get_task_service),
):
    """Mark a pending or urgent task as in progress"""
    return await tasks.start(task_id, actor)


@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: uuid.UUID,
    completion: Optional[TaskComplete] = None,
    actor: Actor = Depends(require_permission(Permission.TASK_COMPLETE)),
    tasks: TaskService = Depends(get_task_service),
):
    """Complete a task with optional observations and photos"""
    return await tasks.complete(task_id, completion or TaskComplete(), actor)


@router.post("/{task_id}/verify", response_model=TaskResponse)
async def verify_task(
    task_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    tasks: TaskService = Depends(get_task_service),
):
    """Verify a completed task"""
    return await tasks.verify(task_id, actor)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.TASK_MANAGE)),
    tasks: TaskService = Depends(get_task_service),
):
    """Delete a task that was never completed"""
    await tasks.remove(task_id, actor)
