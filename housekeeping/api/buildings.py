"""
Buildings API endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
import uuid

from housekeeping.api.deps import get_building_service
from housekeeping.core.dependencies import require_permission
from housekeeping.core.pagination import PageParams, page_params
from housekeeping.core.permissions import Actor, Permission
from housekeeping.models.building import BuildingType
from housekeeping.schemas.building import BuildingCreate, BuildingOption, BuildingResponse, BuildingUpdate
from housekeeping.schemas.common import Page
from housekeeping.services.buildings import BuildingService

router = APIRouter()


@router.post("/", response_model=BuildingResponse, status_code=status.HTTP_201_CREATED)
async def create_building(
    building_data: BuildingCreate,
    actor: Actor = Depends(require_permission(Permission.BUILDING_EDIT)),
    buildings: BuildingService = Depends(get_building_service),
):
    """Create a building within the plan quota"""
    return await buildings.create(building_data, actor)


@router.get("/", response_model=Page[BuildingResponse])
async def list_buildings(
    type: Optional[BuildingType] = None,
    is_active: Optional[bool] = None,
    company_id: Optional[uuid.UUID] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    params: PageParams = Depends(page_params),
    actor: Actor = Depends(require_permission(Permission.BUILDING_VIEW)),
    buildings: BuildingService = Depends(get_building_service),
):
    """List buildings of the caller's company"""
    items, total = await buildings.list(
        actor, params, type=type, is_active=is_active, company_id=company_id, search=search
    )
    return Page.build(items, total, params.page, params.limit)


@router.get("/select-options", response_model=List[BuildingOption])
async def building_select_options(
    company_id: Optional[uuid.UUID] = None,
    actor: Actor = Depends(require_permission(Permission.BUILDING_VIEW)),
    buildings: BuildingService = Depends(get_building_service),
):
    return await buildings.select_options(actor, company_id)


@router.get("/by-company/{company_id}", response_model=List[BuildingResponse])
async def list_buildings_by_company(
    company_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.BUILDING_VIEW)),
    buildings: BuildingService = Depends(get_building_service),
):
    """Active buildings of a company"""
    return await buildings.by_company(company_id, actor)


@router.get("/{building_id}", response_model=BuildingResponse)
async def get_building(
    building_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.BUILDING_VIEW)),
    buildings: BuildingService = Depends(get_building_service),
):
    """Get building by ID"""
    return await buildings.get(building_id, actor)


@router.put("/{building_id}", response_model=BuildingResponse)
async def update_building(
    building_id: uuid.UUID,
    building_data: BuildingUpdate,
    actor: Actor = Depends(require_permission(Permission.BUILDING_EDIT)),
    buildings: BuildingService = Depends(get_building_service),
):
    """Update building"""
    return await buildings.update(building_id, building_data, actor)


@router.delete("/{building_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_building(
    building_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.BUILDING_EDIT)),
    buildings: BuildingService = Depends(get_building_service),
):
    """Soft delete a building without active rooms"""
    await buildings.remove(building_id, actor)
