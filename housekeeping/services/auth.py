"""
Authentication: registration, login, profiles and password reset
"""

import uuid

from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from housekeeping.core.auth import create_access_token, decode_access_token
from housekeeping.core.config import get_settings
from housekeeping.core.errors import AuthenticationError, ConflictError, ForbiddenError, InvalidInputError
from housekeeping.core.permissions import Actor
from housekeeping.models.company import SYSTEM_COMPANY_ID, Company
from housekeeping.models.user import Account, UserRole
from housekeeping.schemas.common import MessageResponse
from housekeeping.schemas.token import (
    AuthStats,
    LoginRequest,
    RegisterRequest,
    ResetPasswordConfirm,
    TokenResponse,
    VerifyTokenResponse,
)
from housekeeping.schemas.user import UserProfile, UserResponse
from housekeeping.services.companies import CompanyService
from housekeeping.services.identity import DUPLICATE_EMAIL, IdentityNotFoundError, IdentityProvider
from housekeeping.services.users import UserService

logger = structlog.get_logger(__name__)
settings = get_settings()

RESET_PASSWORD_MESSAGE = (
    "Si el correo electrónico existe, recibirás instrucciones para resetear tu contraseña"
)
INVALID_CREDENTIALS = "Credenciales inválidas"


class AuthService:
    def __init__(
        self,
        session: AsyncSession,
        users: UserService,
        companies: CompanyService,
        identity: IdentityProvider,
    ):
        self.session = session
        self.users = users
        self.companies = companies
        self.identity = identity

    async def _company_for_signup(self, company_id: uuid.UUID) -> Company:
        company = await self.companies.get_or_404(company_id)
        if not company.is_active:
            raise InvalidInputError("La empresa está inactiva")
        return company

    async def register(self, data: RegisterRequest) -> TokenResponse:
        """Sign up an admin opening a company, or a cleaner joining one"""
        if data.role == UserRole.SUPER_ADMIN:
            raise ForbiddenError("No se puede registrar un super administrador")
        if await self.users.email_taken(data.email):
            raise ConflictError(DUPLICATE_EMAIL)

        created_company = None
        if data.role == UserRole.ADMIN:
            if data.company_id is not None:
                raise ForbiddenError("Los administradores se registran creando una empresa nueva")
            if not data.company_name:
                raise InvalidInputError("Debés indicar el nombre de la empresa")
            created_company = await self.companies.create_for_registration(
                data.company_name, data.company_description, data.company_plan
            )
            company_id = created_company.id
        elif data.company_id is None:
            raise InvalidInputError("Las mucamas deben indicar una empresa existente")
        else:
            company_id = (await self._company_for_signup(data.company_id)).id

        try:
            account = await self.users.create_account(
                email=data.email,
                password=data.password,
                name=data.name,
                role=data.role,
                company_id=company_id,
                phone=data.phone,
                must_change_password=False,
            )
        except Exception:
            if created_company is not None:
                await self.companies.discard(created_company)
            raise

        logger.info("user_registered", user_id=str(account.id), role=account.role.value)
        return await self._token_response(account)

    async def login(self, data: LoginRequest) -> TokenResponse:
        uid = await self.identity.authenticate(data.email, data.password)
        if uid is None:
            raise AuthenticationError(INVALID_CREDENTIALS)
        account = await self.session.get(Account, uid)
        if account is None:
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not account.is_active:
            raise AuthenticationError("Usuario inactivo")

        account = await self.users.touch_last_login(account)
        logger.info("user_logged_in", user_id=str(account.id))
        return await self._token_response(account)

    async def _token_response(self, account: Account) -> TokenResponse:
        access_token = create_access_token(
            user_id=account.id,
            tenant_id=account.company_id,
            role=account.role.value,
        )
        return TokenResponse(access_token=access_token, user=await self.profile_of(account))

    async def profile_of(self, account: Account) -> UserProfile:
        base: UserResponse = await self.users.to_response(account)
        profile = UserProfile(**base.model_dump())
        if account.company_id != SYSTEM_COMPANY_ID:
            company = await self.session.get(Company, account.company_id)
            if company is not None:
                profile.company_plan = company.plan
                profile.company_description = company.description
        return profile

    async def profile(self, user_id: uuid.UUID) -> UserProfile:
        return await self.profile_of(await self.users.get_or_404(user_id))

    async def profile_for(self, user_id: uuid.UUID, actor: Actor) -> UserProfile:
        """Another user's profile, within the actor's company"""
        return await self.profile_of(await self.users.get_visible(user_id, actor))

    async def verify_token(self, token: str) -> VerifyTokenResponse:
        payload = decode_access_token(token)
        if payload is None:
            raise AuthenticationError("Token inválido o expirado")
        try:
            user_id = uuid.UUID(payload.get("sub"))
        except (TypeError, ValueError):
            raise AuthenticationError("Token inválido o expirado")

        account = await self.session.get(Account, user_id)
        if account is None or not account.is_active:
            raise AuthenticationError("Usuario no encontrado o inactivo")
        return VerifyTokenResponse(valid=True, user=await self.profile_of(account))

    async def reset_password(self, email: str) -> MessageResponse:
        """Send reset instructions without revealing whether the email exists"""
        try:
            link = await self.identity.generate_password_reset_link(email)
        except IdentityNotFoundError:
            logger.info("password_reset_unknown_email")
        else:
            # Delivery is out of band; the link is only logged in debug mode
            logger.info("password_reset_link_generated", link=link if settings.DEBUG else None)
        return MessageResponse(message=RESET_PASSWORD_MESSAGE)

    async def confirm_password_reset(self, data: ResetPasswordConfirm) -> MessageResponse:
        uid = await self.identity.confirm_password_reset(data.token, data.new_password)
        account = await self.session.get(Account, uid)
        if account is not None and account.must_change_password:
            account.must_change_password = False
            self.session.add(account)
            await self.session.commit()
        logger.info("password_reset_completed", user_id=str(uid))
        return MessageResponse(message="Contraseña actualizada exitosamente")

    async def set_user_status(self, user_id: uuid.UUID, is_active: bool, actor: Actor) -> UserResponse:
        return await self.users.set_active(user_id, is_active, actor)

    async def delete_user(self, user_id: uuid.UUID, actor: Actor) -> None:
        if not actor.is_super_admin:
            raise ForbiddenError("Solo los super administradores pueden eliminar usuarios")
        await self.users.remove(user_id, actor)

    async def stats(self, actor: Actor) -> AuthStats:
        """Platform wide account figures"""
        if not actor.is_super_admin:
            raise ForbiddenError("Solo los super administradores pueden ver estas estadísticas")

        rows = (
            await self.session.exec(
                select(Account.role, Account.is_active, func.count(Account.id))
                .group_by(Account.role, Account.is_active)
            )
        ).all()
        total_companies = (await self.session.exec(select(func.count(Company.id)))).one()

        users_by_role = {role.value: 0 for role in UserRole}
        active_users = inactive_users = 0
        for role, is_active, count in rows:
            users_by_role[role.value] += count
            if is_active:
                active_users += count
            else:
                inactive_users += count

        return AuthStats(
            total_users=active_users + inactive_users,
            total_companies=total_companies,
            active_users=active_users,
            inactive_users=inactive_users,
            users_by_role=users_by_role,
        )
