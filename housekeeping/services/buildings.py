"""
Buildings: per-company uniqueness, plan quota and room statistics
"""

from typing import Dict, List, Optional, Sequence, Tuple
import uuid

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlmodel import func, or_, select
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from housekeeping.core.database import start_of_day, utcnow
from housekeeping.core.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from housekeeping.core.pagination import PageParams, paginate
from housekeeping.core.permissions import (
    Actor,
    Operation,
    authorize,
    can_access_company,
    ensure,
    resolve_target_company,
    scoped_company_filter,
)
from housekeeping.models.building import Building, BuildingType
from housekeeping.models.room import Room
from housekeeping.models.task import DONE_STATUSES, OPEN_STATUSES, CleaningTask
from housekeeping.schemas.building import (
    BuildingCreate,
    BuildingOption,
    BuildingResponse,
    BuildingStats,
    BuildingUpdate,
)
from housekeeping.services.companies import CompanyService

logger = structlog.get_logger(__name__)

DUPLICATE_NAME = "Ya existe un edificio con este nombre en tu empresa"
NOT_FOUND = "Edificio no encontrado"
CROSS_TENANT = "No tenés acceso a edificios de otras empresas"


class BuildingService:
    """Building CRUD scoped to the caller's company"""

    def __init__(self, session: AsyncSession, companies: CompanyService):
        self.session = session
        self.companies = companies

    async def get_or_404(self, building_id: uuid.UUID) -> Building:
        building = await self.session.get(Building, building_id)
        if building is None:
            raise NotFoundError(NOT_FOUND)
        return building

    async def get_accessible(self, building_id: uuid.UUID, actor: Actor) -> Building:
        """Load a building the actor's tenant owns"""
        building = await self.get_or_404(building_id)
        ensure(authorize(actor, Operation.READ, building.company_id, denial=CROSS_TENANT))
        return building

    async def _name_taken(
        self,
        company_id: uuid.UUID,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool:
        statement = select(Building.id).where(
            Building.company_id == company_id,
            Building.name == name,
            Building.is_active == True,
        )
        if exclude_id is not None:
            statement = statement.where(Building.id != exclude_id)
        return (await self.session.exec(statement)).first() is not None

    async def _active_count(self, company_id: uuid.UUID) -> int:
        return (
            await self.session.exec(
                select(func.count(Building.id)).where(
                    Building.company_id == company_id, Building.is_active == True
                )
            )
        ).one()

    async def _ensure_removable(self, building_id: uuid.UUID) -> None:
        active_room = (
            await self.session.exec(
                select(Room.id).where(Room.building_id == building_id, Room.is_active == True)
            )
        ).first()
        if active_room is not None:
            raise InvalidInputError(
                "No se puede eliminar el edificio porque tiene habitaciones activas. "
                "Eliminá primero las habitaciones."
            )

    async def create(self, data: BuildingCreate, actor: Actor) -> BuildingResponse:
        """Create a building within the plan quota of its company"""
        if actor.is_cleaner:
            raise ForbiddenError("Solo los administradores pueden crear edificios")

        company_id = resolve_target_company(actor, data.company_id)
        if company_id is None:
            raise InvalidInputError("Super admin debe especificar una empresa")

        # Serialize concurrent creates for the same company
        company = await self.companies.lock(company_id)
        if not company.is_active:
            raise InvalidInputError("La empresa está inactiva")

        name = data.name.strip()
        if data.is_active:
            if await self._name_taken(company_id, name):
                raise ConflictError(DUPLICATE_NAME)
            if await self._active_count(company_id) >= company.max_buildings:
                raise InvalidInputError(
                    f"Has alcanzado el límite de {company.max_buildings} edificios para tu plan. "
                    "Contactá al administrador para ampliar tu plan."
                )

        building = Building(
            company_id=company_id,
            name=name,
            type=data.type,
            address=data.address,
            description=data.description,
            floors=data.floors,
            phone=data.phone,
            email=data.email,
            is_active=data.is_active,
        )
        self.session.add(building)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError(DUPLICATE_NAME)
        await self.session.refresh(building)

        logger.info("building_created", building_id=str(building.id), company_id=str(company_id))
        return (await self.to_responses([building]))[0]

    async def list(
        self,
        actor: Actor,
        params: PageParams,
        type: Optional[BuildingType] = None,
        is_active: Optional[bool] = None,
        company_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[BuildingResponse], int]:
        """Paginated buildings, newest first

        Admins and cleaners only ever see their own company, whatever
        ``company_id`` they pass.
        """
        statement = select(Building)
        scoped = scoped_company_filter(actor, company_id)
        if scoped is not None:
            statement = statement.where(Building.company_id == scoped)
        if type is not None:
            statement = statement.where(Building.type == type)
        if is_active is not None:
            statement = statement.where(Building.is_active == is_active)
        if search:
            term = search.strip().lower()
            statement = statement.where(
                or_(
                    func.lower(Building.name).contains(term, autoescape=True),
                    func.lower(func.coalesce(Building.address, "")).contains(term, autoescape=True),
                    func.lower(func.coalesce(Building.description, "")).contains(term, autoescape=True),
                )
            )
        statement = statement.order_by(Building.created_at.desc(), Building.id)

        buildings, total = await paginate(self.session, statement, params)
        return await self.to_responses(buildings), total

    async def get(self, building_id: uuid.UUID, actor: Actor) -> BuildingResponse:
        building = await self.get_accessible(building_id, actor)
        return (await self.to_responses([building]))[0]

    async def update(self, building_id: uuid.UUID, data: BuildingUpdate, actor: Actor) -> BuildingResponse:
        if actor.is_cleaner:
            raise ForbiddenError("Solo los administradores pueden modificar edificios")
        building = await self.get_accessible(building_id, actor)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("name") is not None:
            changes["name"] = changes["name"].strip()

        name = changes.get("name") or building.name
        becomes_active = changes.get("is_active") is True and not building.is_active
        if (name != building.name and building.is_active) or becomes_active:
            if await self._name_taken(building.company_id, name, exclude_id=building.id):
                raise ConflictError(DUPLICATE_NAME)
        if changes.get("is_active") is False and building.is_active:
            await self._ensure_removable(building.id)
        if becomes_active:
            company = await self.companies.lock(building.company_id)
            if await self._active_count(building.company_id) >= company.max_buildings:
                raise InvalidInputError(
                    f"Has alcanzado el límite de {company.max_buildings} edificios para tu plan. "
                    "Contactá al administrador para ampliar tu plan."
                )

        for key, value in changes.items():
            if value is None and key in {"name", "type", "is_active"}:
                continue
            setattr(building, key, value)

        building.updated_at = utcnow()
        self.session.add(building)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError(DUPLICATE_NAME)
        await self.session.refresh(building)

        logger.info("building_updated", building_id=str(building_id), fields=sorted(changes))
        return (await self.to_responses([building]))[0]

    async def remove(self, building_id: uuid.UUID, actor: Actor) -> None:
        """Soft delete, refused while the building has active rooms"""
        if actor.is_cleaner:
            raise ForbiddenError("Solo los administradores pueden eliminar edificios")
        building = await self.get_accessible(building_id, actor)
        await self._ensure_removable(building_id)

        building.is_active = False
        building.updated_at = utcnow()
        self.session.add(building)
        await self.session.commit()
        logger.info("building_deleted", building_id=str(building_id))

    async def by_company(self, company_id: uuid.UUID, actor: Actor) -> List[BuildingResponse]:
        """Active buildings of one company, by name"""
        if not can_access_company(actor, company_id):
            raise ForbiddenError(CROSS_TENANT)
        result = await self.session.exec(
            select(Building)
            .where(Building.company_id == company_id, Building.is_active == True)
            .order_by(Building.name)
        )
        return await self.to_responses(result.all())

    async def select_options(self, actor: Actor, company_id: Optional[uuid.UUID] = None) -> List[BuildingOption]:
        """Id, name and type of active buildings for dropdowns"""
        statement = select(Building).where(Building.is_active == True).order_by(Building.name)
        scoped = scoped_company_filter(actor, company_id)
        if scoped is not None:
            statement = statement.where(Building.company_id == scoped)
        result = await self.session.exec(statement)
        return [BuildingOption(id=b.id, name=b.name, type=b.type) for b in result.all()]

    async def stats_for(self, building_ids: Sequence[uuid.UUID]) -> Dict[uuid.UUID, BuildingStats]:
        """Room and task figures for a batch of buildings"""
        stats = {building_id: BuildingStats() for building_id in building_ids}
        if not stats:
            return stats
        ids = list(stats)

        room_counts = await self.session.exec(
            select(
                Room.building_id,
                func.count(Room.id),
                func.sum(case((Room.is_active == True, 1), else_=0)),
            )
            .where(Room.building_id.in_(ids))
            .group_by(Room.building_id)
        )
        for building_id, total, active in room_counts.all():
            stats[building_id].total_rooms = total
            stats[building_id].active_rooms = int(active or 0)

        pending = await self.session.exec(
            select(Room.building_id, func.count(CleaningTask.id))
            .select_from(CleaningTask)
            .join(Room, CleaningTask.room_id == Room.id)
            .where(
                Room.building_id.in_(ids),
                Room.is_active == True,
                CleaningTask.status.in_(list(OPEN_STATUSES)),
            )
            .group_by(Room.building_id)
        )
        for building_id, count in pending.all():
            stats[building_id].pending_tasks = count

        done_today = await self.session.exec(
            select(Room.building_id, func.count(CleaningTask.id))
            .select_from(CleaningTask)
            .join(Room, CleaningTask.room_id == Room.id)
            .where(
                Room.building_id.in_(ids),
                Room.is_active == True,
                CleaningTask.status.in_(list(DONE_STATUSES)),
                CleaningTask.completed_at >= start_of_day(),
            )
            .group_by(Room.building_id)
        )
        for building_id, count in done_today.all():
            stats[building_id].completed_tasks_today = count

        return stats

    async def to_responses(self, buildings: Sequence[Building]) -> List[BuildingResponse]:
        """Attach company names and statistics"""
        names = await self.companies.names_for(b.company_id for b in buildings)
        stats = await self.stats_for([b.id for b in buildings])
        return [
            BuildingResponse(
                **building.model_dump(),
                company_name=names.get(building.company_id, ""),
                stats=stats[building.id],
            )
            for building in buildings
        ]
