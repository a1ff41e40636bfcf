"""
Test configuration for pytest
"""

import os
import tempfile

# Test environment variables, set before any housekeeping import reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="housekeeping-uploads-")
os.environ["PUBLIC_BASE_URL"] = "http://test"

from typing import Optional
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import housekeeping.models  # noqa: F401
from housekeeping.api.deps import get_identity_provider, get_object_store
from housekeeping.core.database import get_session
from housekeeping.main import app
from housekeeping.models.building import Building, BuildingType
from housekeeping.models.company import SYSTEM_COMPANY_ID, Company, CompanyPlan, default_max_buildings
from housekeeping.models.room import Room
from housekeeping.models.user import Account, UserRole
from housekeeping.services.auth import AuthService
from housekeeping.services.buildings import BuildingService
from housekeeping.services.companies import CompanyService
from housekeeping.services.rooms import RoomService
from housekeeping.services.tasks import TaskService
from housekeeping.services.users import UserService

from helpers import InMemoryIdentityProvider, InMemoryObjectStore


# Database

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test"""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as db_session:
        yield db_session


# Collaborators

@pytest.fixture
def identity() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def storage() -> InMemoryObjectStore:
    return InMemoryObjectStore()


# Services

@pytest.fixture
def companies(session) -> CompanyService:
    return CompanyService(session)


@pytest.fixture
def buildings(session, companies) -> BuildingService:
    return BuildingService(session, companies)


@pytest.fixture
def rooms(session, buildings) -> RoomService:
    return RoomService(session, buildings)


@pytest.fixture
def tasks(session, rooms, storage) -> TaskService:
    return TaskService(session, rooms, storage)


@pytest.fixture
def users(session, companies, identity) -> UserService:
    return UserService(session, companies, identity)


@pytest.fixture
def auth(session, users, companies, identity) -> AuthService:
    return AuthService(session, users, companies, identity)


# Factories

@pytest.fixture
def make_company(session):
    async def _make_company(
        name: str = "Hotel Plaza",
        plan: CompanyPlan = CompanyPlan.BASIC,
        max_buildings: Optional[int] = None,
        is_active: bool = True,
    ) -> Company:
        company = Company(
            name=name,
            plan=plan,
            max_buildings=max_buildings or default_max_buildings(plan),
            is_active=is_active,
        )
        session.add(company)
        await session.commit()
        await session.refresh(company)
        return company
    return _make_company


@pytest.fixture
def make_building(session):
    async def _make_building(
        company: Company,
        name: str = "Main",
        type: BuildingType = BuildingType.HOTEL,
        is_active: bool = True,
    ) -> Building:
        building = Building(company_id=company.id, name=name, type=type, is_active=is_active)
        session.add(building)
        await session.commit()
        await session.refresh(building)
        return building
    return _make_building


@pytest.fixture
def make_room(session):
    async def _make_room(
        building: Building,
        name: str = "101",
        king_beds: int = 1,
        individual_beds: int = 0,
        is_active: bool = True,
    ) -> Room:
        room = Room(
            building_id=building.id,
            name=name,
            king_beds=king_beds,
            individual_beds=individual_beds,
            is_active=is_active,
        )
        session.add(room)
        await session.commit()
        await session.refresh(room)
        return room
    return _make_room


@pytest.fixture
def make_account(users):
    """Accounts created through the user service, so they get an identity"""
    async def _make_account(
        company: Optional[Company] = None,
        role: UserRole = UserRole.CLEANER,
        email: Optional[str] = None,
        name: str = "Test User",
        password: str = "secret123",
    ) -> Account:
        company_id = company.id if company is not None else SYSTEM_COMPANY_ID
        return await users.create_account(
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            password=password,
            name=name,
            role=role,
            company_id=company_id,
            must_change_password=False,
        )
    return _make_account


@pytest_asyncio.fixture
async def super_admin(make_account) -> Account:
    return await make_account(role=UserRole.SUPER_ADMIN, email="root@example.com", name="Root")


# HTTP

@pytest_asyncio.fixture
async def client(session_maker, identity, storage):
    """API client bound to the test database and in-memory collaborators"""
    async def override_get_session():
        async with session_maker() as db_session:
            yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_identity_provider] = lambda: identity
    app.dependency_overrides[get_object_store] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as api_client:
        yield api_client

    app.dependency_overrides.clear()
