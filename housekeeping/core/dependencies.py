"""
Authentication dependencies for FastAPI
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from housekeeping.core.auth import verify_token
from housekeeping.core.database import get_session
from housekeeping.core.permissions import (
    Actor,
    Permission,
    get_permissions_for_role,
    has_permission,
)
from housekeeping.models.user import Account, UserRole

logger = structlog.get_logger(__name__)
security = HTTPBearer()


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> Actor:
    """Resolve the bearer token into the acting account

    Role and tenant are read from the stored account rather than the token
    claims, so deactivations and role changes apply immediately.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = verify_token(credentials.credentials)
    if user_id is None:
        raise credentials_exception

    account = await session.get(Account, user_id)
    if account is None:
        raise credentials_exception
    if not account.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuario inactivo",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.debug("actor_authenticated", user_id=str(account.id), role=account.role.value)
    return Actor(
        id=account.id,
        role=account.role,
        company_id=account.company_id,
        email=account.email,
        name=account.name,
    )


def require_permission(required_permission: Permission):
    """Dependency factory to check permissions"""
    async def check_permission(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not has_permission(required_permission, get_permissions_for_role(actor.role)):
            logger.warning(
                "permission_denied",
                user_id=str(actor.id),
                role=actor.role.value,
                permission=required_permission.value,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tenés permisos para realizar esta acción",
            )
        return actor
    return check_permission


def require_roles(*roles: UserRole):
    """Dependency factory to restrict an endpoint to some roles"""
    allowed = frozenset(roles)
    detail = "Esta acción requiere el rol " + " o ".join(role.value for role in roles)

    async def check_role(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            logger.warning("role_denied", user_id=str(actor.id), role=actor.role.value)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return actor
    return check_role
