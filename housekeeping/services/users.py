"""
Staff directory: account lifecycle scoped to a company
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import func, or_, select
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from housekeeping.core.database import utcnow
from housekeeping.core.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from housekeeping.core.pagination import PageParams, paginate
from housekeeping.core.permissions import (
    SELF_SERVICE_USER_FIELDS,
    Actor,
    Operation,
    authorize,
    can_access_company,
    can_assign_role,
    can_manage_account,
    ensure,
    scoped_company_filter,
)
from housekeeping.models.company import SYSTEM_COMPANY_ID
from housekeeping.models.user import ADMIN_ROLES, Account, UserRole
from housekeeping.schemas.common import MessageResponse
from housekeeping.schemas.user import ChangePassword, UserCreate, UserResponse, UserUpdate
from housekeeping.services.companies import CompanyService
from housekeeping.services.identity import DUPLICATE_EMAIL, IdentityProvider, normalize_email

logger = structlog.get_logger(__name__)

NOT_FOUND = "Usuario no encontrado"
CROSS_TENANT = "No tenés acceso a usuarios de otras empresas"


async def account_names(session: AsyncSession, account_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, str]:
    """Display names keyed by account id"""
    ids = {account_id for account_id in account_ids if account_id is not None}
    if not ids:
        return {}
    result = await session.exec(select(Account.id, Account.name).where(Account.id.in_(ids)))
    return {account_id: name for account_id, name in result.all()}


class UserService:
    """Account CRUD with tenant and role guards"""

    def __init__(self, session: AsyncSession, companies: CompanyService, identity: IdentityProvider):
        self.session = session
        self.companies = companies
        self.identity = identity

    async def get_or_404(self, user_id: uuid.UUID) -> Account:
        account = await self.session.get(Account, user_id)
        if account is None:
            raise NotFoundError(NOT_FOUND)
        return account

    async def email_taken(self, email: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        statement = select(Account.id).where(Account.email == normalize_email(email))
        if exclude_id is not None:
            statement = statement.where(Account.id != exclude_id)
        return (await self.session.exec(statement)).first() is not None

    async def _rollback_identity(self, uid: uuid.UUID) -> None:
        """Best effort removal of an identity whose account was never stored"""
        try:
            await self.identity.delete_identity(uid)
        except Exception as e:
            # Leaves an orphaned identity behind; surfaced in logs only
            logger.error("identity_rollback_failed", uid=str(uid), error=str(e))
        else:
            logger.info("identity_rolled_back", uid=str(uid))

    async def _restore_identity(
        self,
        uid: uuid.UUID,
        previous: Dict[str, object],
        email_changed: bool,
        name_changed: bool,
    ) -> None:
        """Best effort revert of identity fields whose account change was not stored"""
        if not (email_changed or name_changed):
            return
        try:
            await self.identity.update_identity(
                uid,
                email=previous["email"] if email_changed else None,
                display_name=previous["name"] if name_changed else None,
            )
        except Exception as e:
            logger.error("identity_restore_failed", uid=str(uid), error=str(e))
        else:
            logger.info("identity_restored", uid=str(uid))

    async def create_account(
        self,
        email: str,
        password: str,
        name: str,
        role: UserRole,
        company_id: uuid.UUID,
        phone: Optional[str] = None,
        must_change_password: bool = True,
    ) -> Account:
        """Create identity then account, undoing the identity if the account fails"""
        email = normalize_email(email)
        if await self.email_taken(email):
            raise ConflictError(DUPLICATE_EMAIL)

        uid = await self.identity.create_identity(email, password, name)
        account = Account(
            id=uid,
            email=email,
            name=name,
            phone=phone,
            role=role,
            company_id=company_id,
            must_change_password=must_change_password,
        )
        self.session.add(account)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            await self._rollback_identity(uid)
            raise ConflictError(DUPLICATE_EMAIL)
        except Exception:
            await self.session.rollback()
            await self._rollback_identity(uid)
            raise
        await self.session.refresh(account)

        logger.info("user_created", user_id=str(uid), role=role.value, company_id=str(company_id))
        return account

    async def create(self, data: UserCreate, actor: Actor) -> UserResponse:
        if actor.is_cleaner:
            raise ForbiddenError("No tenés permisos para crear usuarios")
        if not can_assign_role(actor, data.role):
            raise ForbiddenError("No podés crear usuarios con rol de administrador")

        if data.role == UserRole.SUPER_ADMIN:
            company_id = SYSTEM_COMPANY_ID
        elif actor.is_super_admin:
            if data.company_id is None or data.company_id == SYSTEM_COMPANY_ID:
                raise InvalidInputError("Super admin debe especificar una empresa")
            company_id = data.company_id
        else:
            company_id = actor.company_id

        if company_id != SYSTEM_COMPANY_ID:
            company = await self.companies.get_or_404(company_id)
            if not company.is_active:
                raise InvalidInputError("La empresa está inactiva")

        account = await self.create_account(
            email=data.email,
            password=data.password,
            name=data.name,
            role=data.role,
            company_id=company_id,
            phone=data.phone,
        )
        return await self.to_response(account)

    async def list(
        self,
        actor: Actor,
        params: PageParams,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        company_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[UserResponse], int]:
        """Paginated accounts, newest first"""
        if actor.is_cleaner:
            raise ForbiddenError("No tenés permisos para listar usuarios")

        statement = select(Account)
        scoped = scoped_company_filter(actor, company_id)
        if scoped is not None:
            statement = statement.where(Account.company_id == scoped)
        if role is not None:
            statement = statement.where(Account.role == role)
        if is_active is not None:
            statement = statement.where(Account.is_active == is_active)
        if search:
            term = search.strip().lower()
            statement = statement.where(
                or_(
                    func.lower(Account.name).contains(term, autoescape=True),
                    func.lower(Account.email).contains(term, autoescape=True),
                )
            )
        statement = statement.order_by(Account.created_at.desc(), Account.id)

        accounts, total = await paginate(self.session, statement, params)
        return await self.to_responses(accounts), total

    async def get_visible(self, user_id: uuid.UUID, actor: Actor) -> Account:
        account = await self.get_or_404(user_id)
        if actor.is_cleaner and account.id != actor.id:
            raise ForbiddenError("Solo podés ver tu propio perfil")
        ensure(
            authorize(
                actor,
                Operation.READ,
                resource_company_id=account.company_id,
                resource_owner_id=account.id,
                denial=CROSS_TENANT,
            )
        )
        return account

    async def get(self, user_id: uuid.UUID, actor: Actor) -> UserResponse:
        return await self.to_response(await self.get_visible(user_id, actor))

    async def update(self, user_id: uuid.UUID, data: UserUpdate, actor: Actor) -> UserResponse:
        account = await self.get_or_404(user_id)
        changes = data.model_dump(exclude_unset=True)
        is_self = account.id == actor.id
        new_role = changes.get("role")
        role_changes = new_role is not None and new_role != account.role

        if actor.is_cleaner:
            if not is_self or set(changes) - SELF_SERVICE_USER_FIELDS:
                raise ForbiddenError("Solo podés modificar tu nombre y teléfono")
        elif actor.is_admin:
            if account.company_id != actor.company_id:
                raise ForbiddenError(CROSS_TENANT)
            if not is_self and account.role in ADMIN_ROLES:
                raise ForbiddenError("No podés modificar administradores")
            if role_changes and not can_assign_role(actor, new_role):
                raise ForbiddenError("No podés asignar roles de administrador")

        if is_self and changes.get("is_active") is False:
            raise ForbiddenError("No podés desactivarte a vos mismo")
        if is_self and role_changes:
            raise ForbiddenError("No podés cambiar tu propio rol")
        if role_changes and UserRole.SUPER_ADMIN in (new_role, account.role):
            # Super admins live in the system tenant, every other role in a company
            raise ForbiddenError("El rol de super administrador no se puede asignar ni quitar")

        if changes.get("email") is not None:
            changes["email"] = normalize_email(changes["email"])
            if changes["email"] != account.email and await self.email_taken(changes["email"], exclude_id=account.id):
                raise ConflictError(DUPLICATE_EMAIL)

        previous = {"email": account.email, "name": account.name, "is_active": account.is_active}
        email_changed = changes.get("email") not in (None, account.email)
        name_changed = changes.get("name") not in (None, account.name)

        # Identity first, reverted if the account commit fails
        if email_changed or name_changed:
            await self.identity.update_identity(
                account.id,
                email=changes["email"] if email_changed else None,
                display_name=changes["name"] if name_changed else None,
            )

        for key, value in changes.items():
            if value is None and key != "phone":
                continue
            setattr(account, key, value)

        account.updated_at = utcnow()
        self.session.add(account)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            await self._restore_identity(user_id, previous, email_changed, name_changed)
            raise ConflictError(DUPLICATE_EMAIL)
        except Exception:
            await self.session.rollback()
            await self._restore_identity(user_id, previous, email_changed, name_changed)
            raise
        await self.session.refresh(account)

        if account.is_active != previous["is_active"]:
            await self.identity.set_disabled(account.id, not account.is_active)

        logger.info("user_updated", user_id=str(user_id), fields=sorted(changes))
        return await self.to_response(account)

    async def set_active(self, user_id: uuid.UUID, is_active: bool, actor: Actor) -> UserResponse:
        """Enable or disable an account and its identity"""
        account = await self.get_or_404(user_id)
        if account.id == actor.id:
            raise ForbiddenError("No podés cambiar tu propio estado")
        ensure(can_manage_account(actor, account.role, account.company_id))

        account.is_active = is_active
        account.updated_at = utcnow()
        self.session.add(account)
        await self.session.commit()
        await self.session.refresh(account)
        await self.identity.set_disabled(account.id, not is_active)

        logger.info("user_status_changed", user_id=str(user_id), is_active=is_active)
        return await self.to_response(account)

    async def remove(self, user_id: uuid.UUID, actor: Actor) -> None:
        """Soft delete and disable the identity"""
        if actor.is_cleaner:
            raise ForbiddenError("No tenés permisos para eliminar usuarios")
        if user_id == actor.id:
            raise ForbiddenError("No podés eliminarte a vos mismo")

        account = await self.get_or_404(user_id)
        if actor.is_admin:
            if account.company_id != actor.company_id:
                raise ForbiddenError(CROSS_TENANT)
            if account.role in ADMIN_ROLES:
                raise ForbiddenError("No podés eliminar administradores")

        account.is_active = False
        account.updated_at = utcnow()
        self.session.add(account)
        await self.session.commit()
        await self.identity.set_disabled(account.id, True)
        logger.info("user_deleted", user_id=str(user_id))

    async def change_password(self, user_id: uuid.UUID, data: ChangePassword, actor: Actor) -> MessageResponse:
        if user_id != actor.id:
            raise ForbiddenError("Solo podés cambiar tu propia contraseña")
        account = await self.get_or_404(user_id)

        if not await self.identity.check_password(account.id, data.current_password):
            raise InvalidInputError("La contraseña actual es incorrecta")
        await self.identity.set_password(account.id, data.new_password)

        account.must_change_password = False
        account.updated_at = utcnow()
        self.session.add(account)
        await self.session.commit()

        logger.info("user_password_changed", user_id=str(user_id))
        return MessageResponse(message="Contraseña actualizada exitosamente")

    async def touch_last_login(self, account: Account) -> Account:
        account.last_login_at = utcnow()
        self.session.add(account)
        await self.session.commit()
        await self.session.refresh(account)
        return account

    async def update_last_login(self, user_id: uuid.UUID, actor: Actor) -> None:
        if user_id != actor.id:
            raise ForbiddenError("Solo podés actualizar tu propio último login")
        await self.touch_last_login(await self.get_or_404(user_id))

    async def by_company(
        self,
        company_id: uuid.UUID,
        actor: Actor,
        role: Optional[UserRole] = None,
    ) -> List[UserResponse]:
        """Active accounts of a company, by name"""
        if actor.is_cleaner:
            raise ForbiddenError("No tenés permisos para listar usuarios")
        if not can_access_company(actor, company_id):
            raise ForbiddenError(CROSS_TENANT)

        statement = (
            select(Account)
            .where(Account.company_id == company_id, Account.is_active == True)
            .order_by(Account.name)
        )
        if role is not None:
            statement = statement.where(Account.role == role)
        result = await self.session.exec(statement)
        return await self.to_responses(result.all())

    async def cleaners_by_company(self, company_id: uuid.UUID, actor: Actor) -> List[UserResponse]:
        return await self.by_company(company_id, actor, role=UserRole.CLEANER)

    async def to_responses(self, accounts: Sequence[Account]) -> List[UserResponse]:
        names = await self.companies.names_for(a.company_id for a in accounts)
        return [
            UserResponse(
                id=account.id,
                email=account.email,
                name=account.name,
                phone=account.phone,
                role=account.role,
                company_id=account.company_id,
                company_name=names.get(account.company_id),
                is_active=account.is_active,
                must_change_password=account.must_change_password,
                created_at=account.created_at,
                updated_at=account.updated_at,
                last_login_at=account.last_login_at,
            )
            for account in accounts
        ]

    async def to_response(self, account: Account) -> UserResponse:
        return (await self.to_responses([account]))[0]
