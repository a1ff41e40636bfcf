"""
Authentication API endpoints
"""

from fastapi import APIRouter, Depends, status
import uuid

from housekeeping.api.deps import get_auth_service
from housekeeping.core.dependencies import get_current_actor, require_permission
from housekeeping.core.permissions import Actor, Permission
from housekeeping.schemas.common import MessageResponse
from housekeeping.schemas.token import (
    AuthStats,
    LoginRequest,
    RegisterRequest,
    ResetPasswordConfirm,
    ResetPasswordRequest,
    TokenResponse,
    UserStatusUpdate,
    VerifyTokenRequest,
    VerifyTokenResponse,
)
from housekeeping.schemas.user import UserProfile, UserResponse
from housekeeping.services.auth import AuthService

router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """Register an admin with their company, or a cleaner joining one"""
    return await auth.register(register_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """Login user"""
    return await auth.login(login_data)


@router.get("/profile", response_model=UserProfile)
async def get_profile(
    actor: Actor = Depends(get_current_actor),
    auth: AuthService = Depends(get_auth_service),
):
    """Get current user info"""
    return await auth.profile(actor.id)


@router.get("/profile/{user_id}", response_model=UserProfile)
async def get_user_profile(
    user_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.USER_LIST)),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.profile_for(user_id, actor)


@router.post("/verify-token", response_model=VerifyTokenResponse)
async def verify_token(
    token_data: VerifyTokenRequest,
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.verify_token(token_data.token)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    reset_data: ResetPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """Request a password reset link"""
    return await auth.reset_password(reset_data.email)


@router.post("/reset-password/confirm", response_model=MessageResponse)
async def confirm_reset_password(
    confirm_data: ResetPasswordConfirm,
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.confirm_password_reset(confirm_data)


@router.patch("/users/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: uuid.UUID,
    status_data: UserStatusUpdate,
    actor: Actor = Depends(require_permission(Permission.USER_MANAGE)),
    auth: AuthService = Depends(get_auth_service),
):
    """Enable or disable an account"""
    return await auth.set_user_status(user_id, status_data.is_active, actor)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: uuid.UUID,
    actor: Actor = Depends(require_permission(Permission.USER_HARD_DISABLE)),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.delete_user(user_id, actor)


@router.get("/stats", response_model=AuthStats)
async def get_auth_stats(
    actor: Actor = Depends(require_permission(Permission.AUTH_STATS)),
    auth: AuthService = Depends(get_auth_service),
):
    """Platform wide account figures"""
    return await auth.stats(actor)
