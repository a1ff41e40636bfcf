"""
Tests for the company directory
"""

from datetime import timedelta
import uuid

import pytest

from helpers import actor_for
from housekeeping.core.database import utcnow
from housekeeping.core.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from housekeeping.core.pagination import PageParams
from housekeeping.models.company import CompanyPlan
from housekeeping.models.task import CleaningTask, TaskStatus
from housekeeping.models.user import UserRole
from housekeeping.schemas.company import CompanyCreate, CompanyUpdate


class TestCreate:
    """Company creation"""

    @pytest.mark.asyncio
    async def test_quota_defaults_from_plan(self, companies, super_admin):
        """max_buildings comes from the plan when omitted"""
        company = await companies.create(
            CompanyCreate(name="  Hotel Plaza  ", plan=CompanyPlan.PROFESSIONAL), actor_for(super_admin)
        )

        assert company.name == "Hotel Plaza"
        assert company.max_buildings == 25
        assert company.is_active

    @pytest.mark.asyncio
    async def test_explicit_quota_wins(self, companies, super_admin):
        """An explicit max_buildings overrides the plan default"""
        company = await companies.create(
            CompanyCreate(name="Hotel Plaza", max_buildings=1), actor_for(super_admin)
        )
        assert company.max_buildings == 1

    @pytest.mark.asyncio
    async def test_duplicate_active_name_rejected(self, companies, super_admin, make_company):
        """Names are unique among active companies"""
        await make_company("Hotel Plaza")

        with pytest.raises(ConflictError) as exc_info:
            await companies.create(CompanyCreate(name="Hotel Plaza"), actor_for(super_admin))
        assert exc_info.value.message == "Ya existe una empresa con este nombre"

    @pytest.mark.asyncio
    async def test_inactive_name_can_be_reused(self, companies, super_admin, make_company):
        """A soft-deleted company frees its name"""
        await make_company("Hotel Plaza", is_active=False)

        company = await companies.create(CompanyCreate(name="Hotel Plaza"), actor_for(super_admin))
        assert company.is_active

    @pytest.mark.asyncio
    async def test_admin_cannot_create(self, companies, make_company, make_account):
        """Only super admins create companies"""
        admin = await make_account(await make_company(), role=UserRole.ADMIN)

        with pytest.raises(ForbiddenError):
            await companies.create(CompanyCreate(name="Otra"), actor_for(admin))


class TestReadAndList:
    """get and list"""

    @pytest.mark.asyncio
    async def test_admin_reads_only_own_company(self, companies, make_company, make_account):
        """Cross-tenant reads are forbidden"""
        own = await make_company("Hotel Plaza")
        other = await make_company("Hotel Sur")
        admin = await make_account(own, role=UserRole.ADMIN)

        assert (await companies.get(own.id, actor_for(admin))).id == own.id
        with pytest.raises(ForbiddenError) as exc_info:
            await companies.get(other.id, actor_for(admin))
        assert exc_info.value.message == "No tenés acceso a esta empresa"

    @pytest.mark.asyncio
    async def test_unknown_company(self, companies, super_admin):
        """Unknown ids give NotFound"""
        with pytest.raises(NotFoundError) as exc_info:
            await companies.get(uuid.uuid4(), actor_for(super_admin))
        assert exc_info.value.message == "Empresa no encontrada"

    @pytest.mark.asyncio
    async def test_list_filters_and_paginates(self, companies, super_admin, make_company):
        """Filters apply before pagination"""
        await make_company("Hotel Plaza", plan=CompanyPlan.BASIC)
        await make_company("Plaza Apartments", plan=CompanyPlan.ENTERPRISE)
        await make_company("Oficinas Centro", plan=CompanyPlan.BASIC)

        items, total = await companies.list(actor_for(super_admin), PageParams(page=1, limit=10), search="plaza")
        assert total == 2
        assert {c.name for c in items} == {"Hotel Plaza", "Plaza Apartments"}

        items, total = await companies.list(
            actor_for(super_admin), PageParams(page=1, limit=1), plan=CompanyPlan.BASIC
        )
        assert total == 2
        assert len(items) == 1

    @pytest.mark.asyncio
    async def test_cleaner_cannot_list(self, companies, make_company, make_account):
        """Listing companies is a platform operation"""
        cleaner = await make_account(await make_company())

        with pytest.raises(ForbiddenError):
            await companies.list(actor_for(cleaner), PageParams())


class TestUpdateAndRemove:
    """update and soft delete"""

    @pytest.mark.asyncio
    async def test_admin_cannot_change_plan(self, companies, make_company, make_account):
        """Plan and quota are super admin fields"""
        company = await make_company()
        admin = await make_account(company, role=UserRole.ADMIN)

        with pytest.raises(ForbiddenError):
            await companies.update(company.id, CompanyUpdate(plan=CompanyPlan.ENTERPRISE), actor_for(admin))

        updated = await companies.update(company.id, CompanyUpdate(description="Frente al mar"), actor_for(admin))
        assert updated.description == "Frente al mar"

    @pytest.mark.asyncio
    async def test_rename_checks_duplicates(self, companies, super_admin, make_company):
        """Renaming onto an active name is rejected"""
        await make_company("Hotel Plaza")
        company = await make_company("Hotel Sur")

        with pytest.raises(ConflictError):
            await companies.update(company.id, CompanyUpdate(name="Hotel Plaza"), actor_for(super_admin))

    @pytest.mark.asyncio
    async def test_remove_blocked_by_active_buildings(self, companies, super_admin, make_company, make_building):
        """A company with active buildings cannot be deleted"""
        company = await make_company()
        await make_building(company)

        with pytest.raises(InvalidInputError) as exc_info:
            await companies.remove(company.id, actor_for(super_admin))
        assert "tiene edificios activos" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_remove_soft_deletes(self, companies, super_admin, make_company, make_building):
        """Inactive buildings do not block deletion"""
        company = await make_company()
        await make_building(company, is_active=False)

        await companies.remove(company.id, actor_for(super_admin))

        assert not (await companies.get_or_404(company.id)).is_active

    @pytest.mark.asyncio
    async def test_deactivation_blocked_by_active_buildings(
        self, session, companies, super_admin, make_company, make_building
    ):
        """Turning is_active off through update follows the delete rule"""
        company = await make_company()
        building = await make_building(company)
        root = actor_for(super_admin)

        with pytest.raises(InvalidInputError) as exc_info:
            await companies.update(company.id, CompanyUpdate(is_active=False), root)
        assert "tiene edificios activos" in exc_info.value.message
        assert (await companies.get_or_404(company.id)).is_active

        building.is_active = False
        session.add(building)
        await session.commit()

        updated = await companies.update(company.id, CompanyUpdate(is_active=False), root)
        assert not updated.is_active


class TestStats:
    """compute-stats"""

    @pytest.mark.asyncio
    async def test_stats_count_active_assets_and_recent_tasks(
        self, session, companies, super_admin, make_company, make_building, make_room, make_account
    ):
        """Figures cover active rows and tasks from the trailing 30 days"""
        company = await make_company()
        building = await make_building(company)
        await make_building(company, name="Cerrado", is_active=False)
        room = await make_room(building)
        await make_room(building, name="102", is_active=False)
        await make_account(company)

        now = utcnow()
        session.add_all([
            CleaningTask(room_id=room.id, scheduled_date=now, status=TaskStatus.PENDING, images=[]),
            CleaningTask(room_id=room.id, scheduled_date=now, status=TaskStatus.COMPLETED, images=[]),
            CleaningTask(room_id=room.id, scheduled_date=now, status=TaskStatus.VERIFIED, images=[]),
            CleaningTask(
                room_id=room.id,
                scheduled_date=now,
                status=TaskStatus.PENDING,
                images=[],
                created_at=now - timedelta(days=45),
            ),
        ])
        await session.commit()

        stats = await companies.stats(company.id, actor_for(super_admin))

        assert stats.total_buildings == 1
        assert stats.total_rooms == 1
        assert stats.total_users == 1
        assert stats.total_tasks == 3
        assert stats.completed_tasks == 2
        assert stats.pending_tasks == 1
