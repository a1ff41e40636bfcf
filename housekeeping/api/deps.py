"""
Service dependencies for the API routers
"""

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from housekeeping.core.config import get_settings
from housekeeping.core.database import async_session_maker, get_session
from housekeeping.services.auth import AuthService
from housekeeping.services.buildings import BuildingService
from housekeeping.services.companies import CompanyService
from housekeeping.services.identity import DatabaseIdentityProvider, IdentityProvider
from housekeeping.services.rooms import RoomService
from housekeeping.services.storage import LocalObjectStore, ObjectStore, S3ObjectStore
from housekeeping.services.tasks import TaskService
from housekeeping.services.users import UserService

settings = get_settings()


def get_identity_provider() -> IdentityProvider:
    return DatabaseIdentityProvider(async_session_maker)


def get_object_store() -> ObjectStore:
    """Object store picked by STORAGE_BACKEND"""
    if settings.STORAGE_BACKEND == "s3":
        if not (settings.S3_BUCKET and settings.S3_PUBLIC_BASE_URL):
            raise RuntimeError("S3 storage is not fully configured")
        return S3ObjectStore(
            bucket=settings.S3_BUCKET,
            public_base_url=settings.S3_PUBLIC_BASE_URL,
            region=settings.S3_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
            access_key_id=settings.S3_ACCESS_KEY_ID,
            secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            prefix=settings.S3_PREFIX,
        )
    return LocalObjectStore(settings.UPLOAD_DIR, settings.PUBLIC_BASE_URL)


def get_company_service(session: AsyncSession = Depends(get_session)) -> CompanyService:
    return CompanyService(session)


def get_building_service(
    session: AsyncSession = Depends(get_session),
    companies: CompanyService = Depends(get_company_service),
) -> BuildingService:
    return BuildingService(session, companies)


def get_room_service(
    session: AsyncSession = Depends(get_session),
    buildings: BuildingService = Depends(get_building_service),
) -> RoomService:
    return RoomService(session, buildings)


def get_task_service(
    session: AsyncSession = Depends(get_session),
    rooms: RoomService = Depends(get_room_service),
    storage: ObjectStore = Depends(get_object_store),
) -> TaskService:
    return TaskService(session, rooms, storage)


def get_user_service(
    session: AsyncSession = Depends(get_session),
    companies: CompanyService = Depends(get_company_service),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> UserService:
    return UserService(session, companies, identity)


def get_auth_service(
    session: AsyncSession = Depends(get_session),
    users: UserService = Depends(get_user_service),
    companies: CompanyService = Depends(get_company_service),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> AuthService:
    return AuthService(session, users, companies, identity)
