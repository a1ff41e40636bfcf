"""
Users API endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
import uuid

from housekeeping.api.deps import get_user_service
from housekeeping.core.dependencies import get_current_actor, require_permission
from housekeeping.core.pagination import PageParams, page_params
from housekeeping.core.permissions import Actor, Permission
from housekeeping.models.user import UserRole
from housekeeping.schemas.common import MessageResponse, Page
from housekeeping.schemas.user import ChangePassword, UserCreate, UserResponse, UserUpdate
from housekeeping.services.users import UserService

router = APIRouter()


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    actor: Actor = Depends(require_permission(Permission.USER_MANAGE)),
    users: UserService = Depends(get_user_service),
):
    """Create a staff account"""
    return await users.create(user_data, actor)


@router.get("/", response_model=Page[UserResponse])
async def list_users(
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    company_id: Optional[uuid.UUID] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    params: PageParams = Depends(page_params),
    actor: Actor = Depends(require_permission(Permission.USER_LIST)),
    users: UserService = Depends(get_user_service),
):
    """List users of the caller's company"""
    items, total = await users.list(
        actor, params, role=role, is_active=is_active, company_id=company_id, search=search
    )
    return Page.build(items, total, params.page, params.limit)


@router.get("/by-company/{company_id}", response_model=List[UserResponse])
async def list_users_by_company(
    company_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.USER_LIST)),
    users: UserService = Depends(get_user_service),
):
    """Active accounts of a company"""
    return await users.by_company(company_id, actor)


@router.get("/by-company/{company_id}/cleaners", response_model=List[UserResponse])
async def list_cleaners_by_company(
    company_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.USER_LIST)),
    users: UserService = Depends(get_user_service),
):
    """Active cleaners of a company, for task assignment"""
    return await users.cleaners_by_company(company_id, actor)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    """Get user by ID"""
    return await users.get(user_id, actor)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    user_data: UserUpdate,
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    """Update user"""
    return await users.update(user_id, user_data, actor)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.USER_MANAGE)),
    users: UserService = Depends(get_user_service),
):
    """Deactivate a user and disable the login"""
    await users.remove(user_id, actor)


@router.post("/{user_id}/change-password", response_model=MessageResponse)
async def change_password(
    user_id: uuid.UUID,
    password_data: ChangePassword,
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    return await users.change_password(user_id, password_data, actor)


@router.post("/{user_id}/last-login", status_code=status.HTTP_204_NO_CONTENT)
async def update_last_login(
    user_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    users: UserService = Depends(get_user_service),
):
    await users.update_last_login(user_id, actor)
