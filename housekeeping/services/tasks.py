"""
Task engine: cleaning task lifecycle and visibility rules
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple
import uuid

from sqlmodel import or_, select
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from housekeeping.core.config import get_settings
from housekeeping.core.database import utcnow
from housekeeping.core.errors import ForbiddenError, InvalidInputError, InvalidTransitionError, NotFoundError
from housekeeping.core.pagination import PageParams, paginate
from housekeeping.core.permissions import Actor, can_access_task, scoped_company_filter
from housekeeping.models.building import Building
from housekeeping.models.room import Room
from housekeeping.models.task import OPEN_STATUSES, CleaningTask, TaskStatus
from housekeeping.models.user import Account, UserRole
from housekeeping.schemas.task import ImageUploadResponse, TaskComplete, TaskCreate, TaskResponse, TaskUpdate
from housekeeping.services.rooms import RoomService
from housekeeping.services.storage import ObjectStore
from housekeeping.services.users import account_names

logger = structlog.get_logger(__name__)
settings = get_settings()

NOT_FOUND = "Tarea no encontrada"
NO_ACCESS = "No tenés acceso a esta tarea"
ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})


class TaskService:
    """Cleaning tasks scoped to rooms the caller can reach"""

    def __init__(self, session: AsyncSession, rooms: RoomService, storage: ObjectStore):
        self.session = session
        self.rooms = rooms
        self.storage = storage

    async def get_or_404(self, task_id: uuid.UUID) -> CleaningTask:
        task = await self.session.get(CleaningTask, task_id)
        if task is None:
            raise NotFoundError(NOT_FOUND)
        return task

    async def _load(
        self,
        task_id: uuid.UUID,
        actor: Actor,
        denial: str = NO_ACCESS,
    ) -> Tuple[CleaningTask, Room, Building]:
        """Load a task with its room and building, enforcing visibility"""
        task = await self.get_or_404(task_id)
        room = await self.rooms.get_or_404(task.room_id)
        building = await self.rooms.buildings.get_or_404(room.building_id)
        if not can_access_task(actor, task.assigned_to, building.company_id):
            raise ForbiddenError(denial if building.company_id == actor.company_id else NO_ACCESS)
        return task, room, building

    async def _check_assignee(self, assignee_id: uuid.UUID, company_id: uuid.UUID) -> Account:
        assignee = await self.session.get(Account, assignee_id)
        if assignee is None:
            raise NotFoundError("Usuario no encontrado")
        if assignee.role != UserRole.CLEANER:
            raise InvalidInputError("Solo se puede asignar tareas a mucamas")
        if assignee.company_id != company_id:
            raise InvalidInputError("La mucama debe pertenecer a la misma empresa")
        if not assignee.is_active:
            raise InvalidInputError("La mucama está inactiva")
        return assignee

    async def _save(self, task: CleaningTask) -> CleaningTask:
        self.session.add(task)
        await self.session.commit()
        await self.session.refresh(task)
        return task

    async def create(self, data: TaskCreate, actor: Actor) -> TaskResponse:
        if actor.is_cleaner:
            raise ForbiddenError("Solo los administradores pueden crear tareas")

        room, building = await self.rooms.get_accessible(data.room_id, actor)
        if not room.is_active:
            raise InvalidInputError("No se pueden crear tareas en una habitación inactiva")
        if data.assigned_to is not None:
            await self._check_assignee(data.assigned_to, building.company_id)

        task = await self._save(
            CleaningTask(
                room_id=room.id,
                assigned_to=data.assigned_to,
                scheduled_date=data.scheduled_date,
                status=data.status,
                observations=data.observations,
                images=[],
            )
        )
        logger.info("task_created", task_id=str(task.id), room_id=str(room.id), status=task.status.value)
        return (await self.to_responses([task]))[0]

    def _visible_statement(self, actor: Actor, company_id: Optional[uuid.UUID] = None):
        """Tasks joined to their building, restricted to what the actor may see"""
        statement = (
            select(CleaningTask)
            .join(Room, CleaningTask.room_id == Room.id)
            .join(Building, Room.building_id == Building.id)
        )
        scoped = scoped_company_filter(actor, company_id)
        if scoped is not None:
            statement = statement.where(Building.company_id == scoped)
        if actor.is_cleaner:
            statement = statement.where(
                or_(CleaningTask.assigned_to == actor.id, CleaningTask.assigned_to.is_(None))
            )
        return statement

    async def list(
        self,
        actor: Actor,
        params: PageParams,
        room_id: Optional[uuid.UUID] = None,
        building_id: Optional[uuid.UUID] = None,
        company_id: Optional[uuid.UUID] = None,
        status: Optional[TaskStatus] = None,
        assigned_to: Optional[uuid.UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Tuple[List[TaskResponse], int]:
        """Paginated tasks, latest scheduled first

        Tasks the actor cannot see are left out instead of failing the call.
        """
        if room_id is not None:
            await self.rooms.get_accessible(room_id, actor)

        statement = self._visible_statement(actor, company_id)
        if room_id is not None:
            statement = statement.where(CleaningTask.room_id == room_id)
        if building_id is not None:
            statement = statement.where(Room.building_id == building_id)
        if status is not None:
            statement = statement.where(CleaningTask.status == status)
        if assigned_to is not None:
            statement = statement.where(CleaningTask.assigned_to == assigned_to)
        if date_from is not None:
            statement = statement.where(CleaningTask.scheduled_date >= date_from)
        if date_to is not None:
            statement = statement.where(CleaningTask.scheduled_date <= date_to)
        statement = statement.order_by(CleaningTask.scheduled_date.desc(), CleaningTask.id)

        tasks, total = await paginate(self.session, statement, params)
        return await self.to_responses(tasks), total

    async def my_tasks(self, actor: Actor) -> List[TaskResponse]:
        """Open tasks assigned to the cleaner plus the unassigned ones to pick up"""
        if not actor.is_cleaner:
            raise ForbiddenError("Solo las mucamas tienen tareas asignadas")

        statement = (
            self._visible_statement(actor)
            .where(CleaningTask.status.in_(list(OPEN_STATUSES)))
            .order_by(CleaningTask.scheduled_date, CleaningTask.id)
        )
        result = await self.session.exec(statement)
        return await self.to_responses(result.all())

    async def get(self, task_id: uuid.UUID, actor: Actor) -> TaskResponse:
        task, _, _ = await self._load(task_id, actor)
        return (await self.to_responses([task]))[0]

    async def update(self, task_id: uuid.UUID, data: TaskUpdate, actor: Actor) -> TaskResponse:
        """Reschedule, reassign or reprioritize a task"""
        if actor.is_cleaner:
            raise ForbiddenError("Solo los administradores pueden modificar tareas")
        task, _, building = await self._load(task_id, actor)
        changes = data.model_dump(exclude_unset=True)

        new_status = changes.get("status")
        if new_status is not None and new_status != task.status:
            if task.status not in OPEN_STATUSES:
                raise InvalidTransitionError("No se puede cambiar el estado de una tarea completada")
        if changes.get("assigned_to") is not None:
            await self._check_assignee(changes["assigned_to"], building.company_id)

        for key, value in changes.items():
            if value is None and key in {"scheduled_date", "status"}:
                continue
            setattr(task, key, value)

        task.updated_at = utcnow()
        task = await self._save(task)
        logger.info("task_updated", task_id=str(task_id), fields=sorted(changes))
        return (await self.to_responses([task]))[0]

    async def start(self, task_id: uuid.UUID, actor: Actor) -> TaskResponse:
        """Cleaner takes the task and starts cleaning"""
        if not actor.is_cleaner:
            raise ForbiddenError("Solo las mucamas pueden marcar tareas como en progreso")
        task, _, _ = await self._load(task_id, actor)

        task.start(actor.id)
        task = await self._save(task)
        logger.info("task_started", task_id=str(task_id), user_id=str(actor.id))
        return (await self.to_responses([task]))[0]

    async def complete(self, task_id: uuid.UUID, data: TaskComplete, actor: Actor) -> TaskResponse:
        task, _, _ = await self._load(task_id, actor, denial="No podés completar esta tarea")

        task.complete(actor.id, observations=data.observations, images=data.images)
        task = await self._save(task)
        logger.info("task_completed", task_id=str(task_id), user_id=str(actor.id))
        return (await self.to_responses([task]))[0]

    async def verify(self, task_id: uuid.UUID, actor: Actor) -> TaskResponse:
        if actor.is_cleaner:
            raise ForbiddenError("Solo los administradores pueden verificar tareas")
        task, _, _ = await self._load(task_id, actor)

        task.verify()
        task = await self._save(task)
        logger.info("task_verified", task_id=str(task_id), user_id=str(actor.id))
        return (await self.to_responses([task]))[0]

    async def remove(self, task_id: uuid.UUID, actor: Actor) -> None:
        """Hard delete of a task that was never completed"""
        if actor.is_cleaner:
            raise ForbiddenError("Solo los administradores pueden eliminar tareas")
        task, _, _ = await self._load(task_id, actor)
        if not task.can_delete():
            raise InvalidInputError("No se pueden eliminar tareas completadas o verificadas")

        await self.session.delete(task)
        await self.session.commit()
        logger.info("task_deleted", task_id=str(task_id))

    async def upload_image(
        self,
        data: bytes,
        content_type: Optional[str],
        filename: Optional[str],
        actor: Actor,
    ) -> ImageUploadResponse:
        """Store a room photo and return its public URL"""
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise InvalidInputError("Solo se permiten imágenes JPG, PNG o WEBP")
        if not data:
            raise InvalidInputError("La imagen está vacía")
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise InvalidInputError("La imagen no puede superar los 5MB")

        url = await self.storage.put(data, content_type, filename)
        logger.info("task_image_uploaded", user_id=str(actor.id), size=len(data))
        return ImageUploadResponse(url=url)

    async def to_responses(self, tasks: Sequence[CleaningTask]) -> List[TaskResponse]:
        """Attach room, building and staff names"""
        room_ids = {task.room_id for task in tasks}
        rooms: Dict[uuid.UUID, Room] = {}
        buildings: Dict[uuid.UUID, Building] = {}
        if room_ids:
            result = await self.session.exec(
                select(Room, Building)
                .join(Building, Room.building_id == Building.id)
                .where(Room.id.in_(room_ids))
            )
            for room, building in result.all():
                rooms[room.id] = room
                buildings[building.id] = building

        names = await account_names(
            self.session,
            [task.assigned_to for task in tasks] + [task.completed_by for task in tasks],
        )

        responses = []
        for task in tasks:
            room = rooms[task.room_id]
            building = buildings[room.building_id]
            responses.append(
                TaskResponse(
                    id=task.id,
                    room_id=task.room_id,
                    room_name=room.name,
                    building_id=building.id,
                    building_name=building.name,
                    company_id=building.company_id,
                    assigned_to=task.assigned_to,
                    assigned_to_name=names.get(task.assigned_to),
                    scheduled_date=task.scheduled_date,
                    status=task.status,
                    observations=task.observations,
                    images=task.images or [],
                    completed_at=task.completed_at,
                    completed_by=task.completed_by,
                    completed_by_name=names.get(task.completed_by),
                    is_overdue=task.is_overdue,
                    created_at=task.created_at,
                    updated_at=task.updated_at,
                )
            )
        return responses
