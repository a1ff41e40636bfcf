"""
Tenant directory: companies, their plans and building quotas
"""

from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Tuple
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import func, or_, select
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from housekeeping.core.database import utcnow
from housekeeping.core.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from housekeeping.core.pagination import PageParams, paginate
from housekeeping.core.permissions import Actor, can_access_company
from housekeeping.models.building import Building
from housekeeping.models.company import (
    SYSTEM_COMPANY_ID,
    SYSTEM_COMPANY_NAME,
    Company,
    CompanyPlan,
    default_max_buildings,
)
from housekeeping.models.room import Room
from housekeeping.models.task import DONE_STATUSES, CleaningTask
from housekeeping.models.user import Account
from housekeeping.schemas.company import CompanyCreate, CompanyStats, CompanyUpdate

logger = structlog.get_logger(__name__)

DUPLICATE_NAME = "Ya existe una empresa con este nombre"
NOT_FOUND = "Empresa no encontrada"
STATS_WINDOW = timedelta(days=30)


class CompanyService:
    """Company CRUD and statistics"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_or_404(self, company_id: uuid.UUID) -> Company:
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError(NOT_FOUND)
        return company

    async def lock(self, company_id: uuid.UUID) -> Company:
        """Load a company holding a row lock until the transaction ends"""
        result = await self.session.exec(
            select(Company).where(Company.id == company_id).with_for_update()
        )
        company = result.first()
        if company is None:
            raise NotFoundError(NOT_FOUND)
        return company

    async def name_taken(self, name: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        statement = select(Company.id).where(Company.name == name, Company.is_active == True)
        if exclude_id is not None:
            statement = statement.where(Company.id != exclude_id)
        return (await self.session.exec(statement)).first() is not None

    async def names_for(self, company_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, str]:
        """Display names keyed by id, including the system tenant"""
        ids = set(company_ids)
        names = {SYSTEM_COMPANY_ID: SYSTEM_COMPANY_NAME} if SYSTEM_COMPANY_ID in ids else {}
        ids.discard(SYSTEM_COMPANY_ID)
        if ids:
            result = await self.session.exec(
                select(Company.id, Company.name).where(Company.id.in_(ids))
            )
            names.update({company_id: name for company_id, name in result.all()})
        return names

    async def _insert(self, company: Company) -> Company:
        self.session.add(company)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError(DUPLICATE_NAME)
        await self.session.refresh(company)
        logger.info("company_created", company_id=str(company.id), plan=company.plan.value)
        return company

    def _build(
        self,
        name: str,
        description: Optional[str],
        plan: CompanyPlan,
        max_buildings: Optional[int],
        is_active: bool = True,
    ) -> Company:
        return Company(
            name=name,
            description=description,
            plan=plan,
            max_buildings=max_buildings or default_max_buildings(plan),
            is_active=is_active,
        )

    async def create(self, data: CompanyCreate, actor: Actor) -> Company:
        """Create a company (super admins only)"""
        if not actor.is_super_admin:
            raise ForbiddenError("Solo los super administradores pueden crear empresas")

        name = data.name.strip()
        if await self.name_taken(name):
            raise ConflictError(DUPLICATE_NAME)

        company = self._build(name, data.description, data.plan, data.max_buildings, data.is_active)
        return await self._insert(company)

    async def create_for_registration(
        self,
        name: str,
        description: Optional[str],
        plan: CompanyPlan,
    ) -> Company:
        """Company opened by an admin signing up"""
        name = name.strip()
        if await self.name_taken(name):
            raise ConflictError(DUPLICATE_NAME)
        return await self._insert(self._build(name, description, plan, None))

    async def discard(self, company: Company) -> None:
        """Hard delete of a company created moments ago that nothing references"""
        await self.session.delete(company)
        await self.session.commit()
        logger.info("company_discarded", company_id=str(company.id))

    async def _ensure_removable(self, company_id: uuid.UUID) -> None:
        active_building = (
            await self.session.exec(
                select(Building.id).where(Building.company_id == company_id, Building.is_active == True)
            )
        ).first()
        if active_building is not None:
            raise InvalidInputError(
                "No se puede eliminar la empresa porque tiene edificios activos. "
                "Eliminá primero los edificios."
            )

    async def get(self, company_id: uuid.UUID, actor: Actor) -> Company:
        company = await self.get_or_404(company_id)
        if not can_access_company(actor, company.id):
            raise ForbiddenError("No tenés acceso a esta empresa")
        return company

    async def list(
        self,
        actor: Actor,
        params: PageParams,
        plan: Optional[CompanyPlan] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Company], int]:
        """Paginated companies, newest first"""
        if not actor.is_super_admin:
            raise ForbiddenError("Solo los super administradores pueden listar empresas")

        statement = select(Company)
        if plan is not None:
            statement = statement.where(Company.plan == plan)
        if is_active is not None:
            statement = statement.where(Company.is_active == is_active)
        if search:
            term = search.strip().lower()
            statement = statement.where(
                or_(
                    func.lower(Company.name).contains(term, autoescape=True),
                    func.lower(func.coalesce(Company.description, "")).contains(term, autoescape=True),
                )
            )
        statement = statement.order_by(Company.created_at.desc(), Company.id)
        return await paginate(self.session, statement, params)

    async def update(self, company_id: uuid.UUID, data: CompanyUpdate, actor: Actor) -> Company:
        company = await self.get(company_id, actor)
        changes = data.model_dump(exclude_unset=True)

        if not actor.is_super_admin and changes.keys() & {"plan", "max_buildings", "is_active"}:
            raise ForbiddenError("Solo los super administradores pueden modificar el plan de la empresa")

        if "name" in changes and changes["name"] is not None:
            changes["name"] = changes["name"].strip()
            if changes["name"] != company.name and await self.name_taken(changes["name"], exclude_id=company.id):
                raise ConflictError(DUPLICATE_NAME)
        if changes.get("is_active") is False and company.is_active:
            await self._ensure_removable(company.id)

        for key, value in changes.items():
            if value is None and key != "description":
                continue
            setattr(company, key, value)

        company.updated_at = utcnow()
        self.session.add(company)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError(DUPLICATE_NAME)
        await self.session.refresh(company)
        logger.info("company_updated", company_id=str(company_id), fields=sorted(changes))
        return company

    async def remove(self, company_id: uuid.UUID, actor: Actor) -> None:
        """Soft delete, refused while the company has active buildings"""
        if not actor.is_super_admin:
            raise ForbiddenError("Solo los super administradores pueden eliminar empresas")
        company = await self.get_or_404(company_id)
        await self._ensure_removable(company_id)

        company.is_active = False
        company.updated_at = utcnow()
        self.session.add(company)
        await self.session.commit()
        logger.info("company_deleted", company_id=str(company_id))

    async def stats(self, company_id: uuid.UUID, actor: Actor) -> CompanyStats:
        """Activity figures over the trailing 30 days"""
        await self.get(company_id, actor)
        since = utcnow() - STATS_WINDOW

        total_buildings = (
            await self.session.exec(
                select(func.count(Building.id)).where(
                    Building.company_id == company_id, Building.is_active == True
                )
            )
        ).one()
        total_rooms = (
            await self.session.exec(
                select(func.count(Room.id))
                .join(Building, Room.building_id == Building.id)
                .where(
                    Building.company_id == company_id,
                    Building.is_active == True,
                    Room.is_active == True,
                )
            )
        ).one()
        total_users = (
            await self.session.exec(
                select(func.count(Account.id)).where(
                    Account.company_id == company_id, Account.is_active == True
                )
            )
        ).one()
        by_status = (
            await self.session.exec(
                select(CleaningTask.status, func.count(CleaningTask.id))
                .join(Room, CleaningTask.room_id == Room.id)
                .join(Building, Room.building_id == Building.id)
                .where(
                    Building.company_id == company_id,
                    Building.is_active == True,
                    Room.is_active == True,
                    CleaningTask.created_at >= since,
                )
                .group_by(CleaningTask.status)
            )
        ).all()

        total_tasks = sum(count for _, count in by_status)
        completed_tasks = sum(count for status, count in by_status if status in DONE_STATUSES)
        return CompanyStats(
            company_id=company_id,
            total_buildings=total_buildings,
            total_rooms=total_rooms,
            total_users=total_users,
            total_tasks=total_tasks,
            completed_tasks=completed_tasks,
            pending_tasks=total_tasks - completed_tasks,
            period_start=since,
        )
