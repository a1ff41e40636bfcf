"""
Rooms API endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
import uuid

from housekeeping.api.deps import get_room_service
from housekeeping.core.dependencies import require_permission
from housekeeping.core.pagination import PageParams, page_params
from housekeeping.core.permissions import Actor, Permission
from housekeeping.schemas.common import Page
from housekeeping.schemas.room import RoomCreate, RoomOption, RoomResponse, RoomUpdate
from housekeeping.services.rooms import RoomService

router = APIRouter()


@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    room_data: RoomCreate,
    actor: Actor = Depends(require_permission(Permission.ROOM_EDIT)),
    rooms: RoomService = Depends(get_room_service),
):
    """Create a room in a building"""
    return await rooms.create(room_data, actor)


@router.get("/", response_model=Page[RoomResponse])
async def list_rooms(
    building_id: Optional[uuid.UUID] = None,
    floor: Optional[int] = None,
    is_active: Optional[bool] = None,
    company_id: Optional[uuid.UUID] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    params: PageParams = Depends(page_params),
    actor: Actor = Depends(require_permission(Permission.ROOM_VIEW)),
    rooms: RoomService = Depends(get_room_service),
):
    """List rooms of the caller's company"""
    items, total = await rooms.list(
        actor,
        params,
        building_id=building_id,
        floor=floor,
        is_active=is_active,
        company_id=company_id,
        search=search,
    )
    return Page.build(items, total, params.page, params.limit)


@router.get("/select-options", response_model=List[RoomOption])
async def room_select_options(
    building_id: Optional[uuid.UUID] = None,
    actor: Actor = Depends(require_permission(Permission.ROOM_VIEW)),
    rooms: RoomService = Depends(get_room_service),
):
    return await rooms.select_options(actor, building_id)


@router.get("/by-building/{building_id}", response_model=List[RoomResponse])
async def list_rooms_by_building(
    building_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.ROOM_VIEW)),
    rooms: RoomService = Depends(get_room_service),
):
    """Active rooms of a building"""
    return await rooms.by_building(building_id, actor)


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.ROOM_VIEW)),
    rooms: RoomService = Depends(get_room_service),
):
    """Get room by ID"""
    return await rooms.get(room_id, actor)


@router.put("/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: uuid.UUID,
    room_data: RoomUpdate,
    actor: Actor = Depends(require_permission(Permission.ROOM_EDIT_NOTES)),
    rooms: RoomService = Depends(get_room_service),
):
    """Update room; cleaners may only change the cleaning notes"""
    return await rooms.update(room_id, room_data, actor)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(
    room_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.ROOM_EDIT)),
    rooms: RoomService = Depends(get_room_service),
):
    """Soft delete a room without open tasks"""
    await rooms.remove(room_id, actor)
