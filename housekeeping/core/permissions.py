"""
RBAC (Role-Based Access Control) and tenant authorization rules

Everything here is a pure decision over the acting account and the tenant or
owner of the resource. Services call ``ensure(...)`` to turn a denial into a
``ForbiddenError`` carrying the reason.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Set
import uuid

from housekeeping.core.errors import ForbiddenError
from housekeeping.models.company import SYSTEM_COMPANY_ID
from housekeeping.models.user import ADMIN_ROLES, UserRole


@dataclass(frozen=True)
class Actor:
    """Authenticated caller attached to every request"""
    id: uuid.UUID
    role: UserRole
    company_id: uuid.UUID
    email: str = ""
    name: str = ""

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_cleaner(self) -> bool:
        return self.role == UserRole.CLEANER


class Operation(str, Enum):
    """Operation classes checked against a resource"""
    READ = "read"
    WRITE = "write"
    ADMIN_WRITE = "admin_write"
    DELETE = "delete"


class Permission(str, Enum):
    """Permission definitions"""
    # Company permissions
    COMPANY_CREATE = "company:create"
    COMPANY_LIST = "company:list"
    COMPANY_VIEW = "company:view"
    COMPANY_EDIT = "company:edit"
    COMPANY_DELETE = "company:delete"
    COMPANY_STATS = "company:stats"

    # Building permissions
    BUILDING_VIEW = "building:view"
    BUILDING_EDIT = "building:edit"

    # Room permissions
    ROOM_VIEW = "room:view"
    ROOM_EDIT = "room:edit"
    ROOM_EDIT_NOTES = "room:edit_notes"

    # Task permissions
    TASK_VIEW = "task:view"
    TASK_MANAGE = "task:manage"
    TASK_START = "task:start"
    TASK_COMPLETE = "task:complete"
    TASK_VERIFY = "task:verify"
    TASK_UPLOAD_IMAGE = "task:upload_image"

    # User permissions
    USER_LIST = "user:list"
    USER_MANAGE = "user:manage"

    # Platform permissions
    AUTH_STATS = "auth:stats"
    USER_HARD_DISABLE = "user:hard_disable"


_ADMIN_PERMISSIONS = {
    Permission.COMPANY_VIEW,
    Permission.COMPANY_EDIT,
    Permission.COMPANY_STATS,
    Permission.BUILDING_VIEW,
    Permission.BUILDING_EDIT,
    Permission.ROOM_VIEW,
    Permission.ROOM_EDIT,
    Permission.ROOM_EDIT_NOTES,
    Permission.TASK_VIEW,
    Permission.TASK_MANAGE,
    Permission.TASK_COMPLETE,
    Permission.TASK_VERIFY,
    Permission.TASK_UPLOAD_IMAGE,
    Permission.USER_LIST,
    Permission.USER_MANAGE,
}

# Role permission mapping
ROLE_PERMISSIONS = {
    UserRole.SUPER_ADMIN: set(Permission),
    UserRole.ADMIN: _ADMIN_PERMISSIONS,
    UserRole.CLEANER: {
        # Cleaners read their tenant and work their tasks
        Permission.BUILDING_VIEW,
        Permission.ROOM_VIEW,
        Permission.ROOM_EDIT_NOTES,
        Permission.TASK_VIEW,
        Permission.TASK_START,
        Permission.TASK_COMPLETE,
        Permission.TASK_UPLOAD_IMAGE,
    },
}

CLEANER_ROOM_FIELDS = frozenset({"cleaning_notes"})
SELF_SERVICE_USER_FIELDS = frozenset({"name", "phone"})


def get_permissions_for_role(role: str) -> Set[Permission]:
    """Get permissions for a given role"""
    try:
        return ROLE_PERMISSIONS.get(UserRole(role), set())
    except ValueError:
        return set()


def has_permission(required_permission: Permission, user_permissions: Set[Permission]) -> bool:
    """Check if user has required permission"""
    return required_permission in user_permissions


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check"""
    allowed: bool
    reason: Optional[str] = field(default=None)

    @classmethod
    def ok(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.allowed


def ensure(decision: Decision) -> None:
    """Raise ForbiddenError for a denied decision"""
    if not decision.allowed:
        raise ForbiddenError(decision.reason or "Acceso denegado")


def can_access_company(actor: Actor, company_id: Optional[uuid.UUID]) -> bool:
    """Super admins see every tenant, everybody else only their own"""
    return actor.is_super_admin or actor.company_id == company_id


def authorize(
    actor: Actor,
    operation: Operation,
    resource_company_id: Optional[uuid.UUID] = None,
    resource_owner_id: Optional[uuid.UUID] = None,
    denial: str = "No tenés acceso a este recurso",
) -> Decision:
    """Decide whether ``actor`` may perform ``operation`` on a resource

    ``resource_owner_id`` marks self-service resources: the owner may read
    and write them whatever their role.
    """
    if actor.is_super_admin:
        return Decision.ok()

    is_owner = resource_owner_id is not None and resource_owner_id == actor.id
    if not is_owner and resource_company_id is not None and resource_company_id != actor.company_id:
        return Decision.deny(denial)

    if actor.is_admin:
        return Decision.ok()

    # Cleaners: read within their tenant, write only what they own
    if operation == Operation.READ:
        return Decision.ok()
    if operation == Operation.WRITE and is_owner:
        return Decision.ok()
    return Decision.deny(denial)


def can_access_task(
    actor: Actor,
    assigned_to: Optional[uuid.UUID],
    task_company_id: uuid.UUID,
) -> bool:
    """Task visibility

    Admins see every task of their tenant; cleaners only the ones assigned to
    them plus the unassigned ones of their tenant.
    """
    if actor.is_super_admin:
        return True
    if actor.company_id != task_company_id:
        return False
    if actor.is_admin:
        return True
    return assigned_to == actor.id or assigned_to is None


def can_manage_account(
    actor: Actor,
    target_role: UserRole,
    target_company_id: uuid.UUID,
) -> Decision:
    """Admin-level writes on somebody else's account"""
    if actor.is_super_admin:
        return Decision.ok()
    if not actor.is_admin:
        return Decision.deny("No tenés permisos para gestionar usuarios")
    if target_company_id != actor.company_id:
        return Decision.deny("No tenés acceso a usuarios de otras empresas")
    if target_role in ADMIN_ROLES:
        return Decision.deny("No podés modificar administradores")
    return Decision.ok()


def can_assign_role(actor: Actor, role: UserRole) -> bool:
    """Only super admins hand out admin roles"""
    return actor.is_super_admin or role not in ADMIN_ROLES


def allowed_room_fields(actor: Actor) -> Optional[frozenset]:
    """Room fields the actor may change, None meaning all of them"""
    if actor.is_cleaner:
        return CLEANER_ROOM_FIELDS
    return None


def resolve_target_company(actor: Actor, requested: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
    """Tenant a new resource belongs to

    Admins and cleaners are pinned to their own tenant. Super admins must say
    which one, so None is returned when they did not.
    """
    if actor.is_super_admin:
        if requested is None or requested == SYSTEM_COMPANY_ID:
            return None
        return requested
    return actor.company_id


def scoped_company_filter(actor: Actor, requested: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
    """Tenant filter for listings, None meaning every tenant"""
    if actor.is_super_admin:
        return requested
    return actor.company_id


