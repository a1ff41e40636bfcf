"""
Rooms: scoped through their building, with bed layout and task statistics
"""

from typing import Dict, List, Optional, Sequence, Tuple
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import func, or_, select
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from housekeeping.core.database import as_utc, start_of_day, utcnow
from housekeeping.core.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from housekeeping.core.pagination import PageParams, paginate
from housekeeping.core.permissions import Actor, allowed_room_fields, scoped_company_filter
from housekeeping.models.building import Building
from housekeeping.models.room import Room
from housekeeping.models.task import DONE_STATUSES, OPEN_STATUSES, CleaningTask
from housekeeping.schemas.room import (
    BedConfiguration,
    RoomCreate,
    RoomOption,
    RoomResponse,
    RoomStats,
    RoomUpdate,
)
from housekeeping.services.buildings import BuildingService
from housekeeping.services.users import account_names

logger = structlog.get_logger(__name__)

DUPLICATE_NAME = "Ya existe una habitación con este nombre en el edificio"
NOT_FOUND = "Habitación no encontrada"
NO_BEDS = "La habitación debe tener al menos una cama"


def _check_beds(beds: BedConfiguration) -> None:
    if beds.king_beds + beds.individual_beds < 1:
        raise InvalidInputError(NO_BEDS)


class RoomService:
    """Room CRUD, authorized through the parent building"""

    def __init__(self, session: AsyncSession, buildings: BuildingService):
        self.session = session
        self.buildings = buildings

    async def get_or_404(self, room_id: uuid.UUID) -> Room:
        room = await self.session.get(Room, room_id)
        if room is None:
            raise NotFoundError(NOT_FOUND)
        return room

    async def get_accessible(self, room_id: uuid.UUID, actor: Actor) -> Tuple[Room, Building]:
        """Load a room and its building, checking tenant access on the building"""
        room = await self.get_or_404(room_id)
        building = await self.buildings.get_accessible(room.building_id, actor)
        return room, building

    async def _name_taken(
        self,
        building_id: uuid.UUID,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool:
        statement = select(Room.id).where(
            Room.building_id == building_id,
            Room.name == name,
            Room.is_active == True,
        )
        if exclude_id is not None:
            statement = statement.where(Room.id != exclude_id)
        return (await self.session.exec(statement)).first() is not None

    async def _commit(self, room: Room) -> Room:
        self.session.add(room)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError(DUPLICATE_NAME)
        await self.session.refresh(room)
        return room

    async def _ensure_removable(self, room_id: uuid.UUID) -> None:
        open_task = (
            await self.session.exec(
                select(CleaningTask.id).where(
                    CleaningTask.room_id == room_id,
                    CleaningTask.status.in_(list(OPEN_STATUSES)),
                )
            )
        ).first()
        if open_task is not None:
            raise InvalidInputError(
                "No se puede eliminar la habitación porque tiene tareas pendientes. "
                "Completá o eliminá las tareas primero."
            )

    async def create(self, data: RoomCreate, actor: Actor) -> RoomResponse:
        if actor.is_cleaner:
            raise ForbiddenError("Solo los administradores pueden crear habitaciones")

        building = await self.buildings.get_accessible(data.building_id, actor)
        if not building.is_active:
            raise InvalidInputError("No se pueden crear habitaciones en un edificio inactivo")
        _check_beds(data.bed_configuration)

        name = data.name.strip()
        if data.is_active and await self._name_taken(building.id, name):
            raise ConflictError(DUPLICATE_NAME)

        room = Room(
            building_id=building.id,
            name=name,
            king_beds=data.bed_configuration.king_beds,
            individual_beds=data.bed_configuration.individual_beds,
            bed_description=data.bed_configuration.description,
            floor=data.floor,
            area=data.area,
            description=data.description,
            cleaning_notes=data.cleaning_notes,
            is_active=data.is_active,
        )
        room = await self._commit(room)

        logger.info("room_created", room_id=str(room.id), building_id=str(building.id))
        return (await self.to_responses([room]))[0]

    async def list(
        self,
        actor: Actor,
        params: PageParams,
        building_id: Optional[uuid.UUID] = None,
        floor: Optional[int] = None,
        is_active: Optional[bool] = None,
        company_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[RoomResponse], int]:
        """Paginated rooms of the caller's company, newest first"""
        if building_id is not None:
            await self.buildings.get_accessible(building_id, actor)

        statement = select(Room).join(Building, Room.building_id == Building.id)
        scoped = scoped_company_filter(actor, company_id)
        if scoped is not None:
            statement = statement.where(Building.company_id == scoped)
        if building_id is not None:
            statement = statement.where(Room.building_id == building_id)
        if floor is not None:
            statement = statement.where(Room.floor == floor)
        if is_active is not None:
            statement = statement.where(Room.is_active == is_active)
        if search:
            term = search.strip().lower()
            statement = statement.where(
                or_(
                    func.lower(Room.name).contains(term, autoescape=True),
                    func.lower(func.coalesce(Room.description, "")).contains(term, autoescape=True),
                )
            )
        statement = statement.order_by(Room.created_at.desc(), Room.id)

        rooms, total = await paginate(self.session, statement, params)
        return await self.to_responses(rooms), total

    async def get(self, room_id: uuid.UUID, actor: Actor) -> RoomResponse:
        room, building = await self.get_accessible(room_id, actor)
        return (await self.to_responses([room], {building.id: building}))[0]

    async def update(self, room_id: uuid.UUID, data: RoomUpdate, actor: Actor) -> RoomResponse:
        room, building = await self.get_accessible(room_id, actor)
        changes = data.model_dump(exclude_unset=True)

        allowed = allowed_room_fields(actor)
        if allowed is not None and set(changes) - allowed:
            raise ForbiddenError("Solo podés modificar las notas de limpieza")

        beds = changes.pop("bed_configuration", None)
        if beds is not None:
            beds = BedConfiguration(**beds)
            _check_beds(beds)
            room.king_beds = beds.king_beds
            room.individual_beds = beds.individual_beds
            room.bed_description = beds.description

        if changes.get("name") is not None:
            changes["name"] = changes["name"].strip()
        name = changes.get("name") or room.name
        becomes_active = changes.get("is_active") is True and not room.is_active
        if (name != room.name and room.is_active) or becomes_active:
            if await self._name_taken(room.building_id, name, exclude_id=room.id):
                raise ConflictError(DUPLICATE_NAME)
        if changes.get("is_active") is False and room.is_active:
            await self._ensure_removable(room.id)

        for key, value in changes.items():
            if value is None and key in {"name", "is_active"}:
                continue
            setattr(room, key, value)

        room.updated_at = utcnow()
        room = await self._commit(room)

        logger.info("room_updated", room_id=str(room_id), fields=sorted(data.model_dump(exclude_unset=True)))
        return (await self.to_responses([room], {building.id: building}))[0]

    async def remove(self, room_id: uuid.UUID, actor: Actor) -> None:
        """Soft delete, refused while the room has open tasks"""
        if actor.is_cleaner:
            raise ForbiddenError("Solo los administradores pueden eliminar habitaciones")
        room, _ = await self.get_accessible(room_id, actor)
        await self._ensure_removable(room_id)

        room.is_active = False
        room.updated_at = utcnow()
        self.session.add(room)
        await self.session.commit()
        logger.info("room_deleted", room_id=str(room_id))

    async def by_building(self, building_id: uuid.UUID, actor: Actor) -> List[RoomResponse]:
        """Active rooms of a building, by name"""
        building = await self.buildings.get_accessible(building_id, actor)
        result = await self.session.exec(
            select(Room)
            .where(Room.building_id == building_id, Room.is_active == True)
            .order_by(Room.name)
        )
        return await self.to_responses(result.all(), {building.id: building})

    async def select_options(self, actor: Actor, building_id: Optional[uuid.UUID] = None) -> List[RoomOption]:
        """Active rooms in active buildings, for dropdowns"""
        if building_id is not None:
            await self.buildings.get_accessible(building_id, actor)

        statement = (
            select(Room, Building)
            .join(Building, Room.building_id == Building.id)
            .where(Room.is_active == True, Building.is_active == True)
            .order_by(Building.name, Room.name)
        )
        scoped = scoped_company_filter(actor, None)
        if scoped is not None:
            statement = statement.where(Building.company_id == scoped)
        if building_id is not None:
            statement = statement.where(Room.building_id == building_id)

        result = await self.session.exec(statement)
        return [
            RoomOption(
                id=room.id,
                name=room.name,
                building_id=building.id,
                building_name=building.name,
                bed_summary=room.bed_summary,
            )
            for room, building in result.all()
        ]

    async def stats_for(self, room_ids: Sequence[uuid.UUID]) -> Dict[uuid.UUID, RoomStats]:
        """Task figures for a batch of rooms"""
        stats = {room_id: RoomStats() for room_id in room_ids}
        if not stats:
            return stats
        ids = list(stats)

        totals = await self.session.exec(
            select(CleaningTask.room_id, func.count(CleaningTask.id))
            .where(CleaningTask.room_id.in_(ids))
            .group_by(CleaningTask.room_id)
        )
        for room_id, count in totals.all():
            stats[room_id].total_tasks = count

        pending = await self.session.exec(
            select(CleaningTask.room_id, func.count(CleaningTask.id))
            .where(
                CleaningTask.room_id.in_(ids),
                CleaningTask.status.in_(list(OPEN_STATUSES)),
            )
            .group_by(CleaningTask.room_id)
        )
        for room_id, count in pending.all():
            stats[room_id].pending_tasks = count

        done = await self.session.exec(
            select(CleaningTask.room_id, CleaningTask.completed_at, CleaningTask.completed_by)
            .where(
                CleaningTask.room_id.in_(ids),
                CleaningTask.status.in_(list(DONE_STATUSES)),
                CleaningTask.completed_at.is_not(None),
            )
            .order_by(CleaningTask.completed_at.desc())
        )
        today = start_of_day()
        last_cleaners = {}
        for room_id, completed_at, completed_by in done.all():
            if as_utc(completed_at) >= today:
                stats[room_id].completed_tasks_today += 1
            if stats[room_id].last_cleaned_at is None:
                stats[room_id].last_cleaned_at = as_utc(completed_at)
                if completed_by is not None:
                    last_cleaners[room_id] = completed_by

        names = await account_names(self.session, last_cleaners.values())
        for room_id, account_id in last_cleaners.items():
            stats[room_id].last_cleaned_by = names.get(account_id)

        return stats

    async def to_responses(
        self,
        rooms: Sequence[Room],
        buildings: Optional[Dict[uuid.UUID, Building]] = None,
    ) -> List[RoomResponse]:
        """Attach building context, bed summary and statistics"""
        buildings = dict(buildings or {})
        missing = {room.building_id for room in rooms} - set(buildings)
        if missing:
            result = await self.session.exec(select(Building).where(Building.id.in_(missing)))
            buildings.update({b.id: b for b in result.all()})

        stats = await self.stats_for([room.id for room in rooms])
        responses = []
        for room in rooms:
            building = buildings[room.building_id]
            responses.append(
                RoomResponse(
                    id=room.id,
                    building_id=room.building_id,
                    building_name=building.name,
                    company_id=building.company_id,
                    name=room.name,
                    bed_configuration=BedConfiguration(
                        king_beds=room.king_beds,
                        individual_beds=room.individual_beds,
                        description=room.bed_description,
                    ),
                    bed_summary=room.bed_summary,
                    floor=room.floor,
                    area=room.area,
                    description=room.description,
                    cleaning_notes=room.cleaning_notes,
                    is_active=room.is_active,
                    created_at=room.created_at,
                    updated_at=room.updated_at,
                    stats=stats[room.id],
                )
            )
        return responses
