"""
Unit test for JWT authentication
"""

import pytest
from datetime import timedelta
import uuid
from sqlmodel import select

from housekeeping.core.auth import (
    PASSWORD_RESET_TOKEN_TYPE,
    create_access_token,
    create_password_reset_token,
    decode_access_token,
    verify_token,
)
from housekeeping.core.config import get_settings
from housekeeping.core.errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
)
from housekeeping.models.company import Company, CompanyPlan
from housekeeping.models.identity import Identity
from housekeeping.models.user import Account, UserRole
from housekeeping.schemas.token import LoginRequest, RegisterRequest, ResetPasswordConfirm
from housekeeping.services.auth import RESET_PASSWORD_MESSAGE
from housekeeping.services.identity import INVALID_RESET_LINK, DatabaseIdentityProvider, IdentityNotFoundError

from helpers import actor_for

settings = get_settings()


def test_create_access_token():
    """Test JWT token creation"""
    user_id = uuid.uuid4()
    tenant_id = uuid.uuid4()
    role = "cleaner"
    expires_delta = timedelta(hours=24)

    token = create_access_token(
        user_id=user_id,
        tenant_id=tenant_id,
        role=role,
        expires_delta=expires_delta
    )

    assert token is not None
    assert isinstance(token, str)

    # Verify subject
    assert verify_token(token) == user_id


def test_decode_valid_token():
    """Test decoding a valid token"""
    user_id = uuid.uuid4()
    tenant_id = uuid.uuid4()
    role = "admin"

    token = create_access_token(
        user_id=user_id,
        tenant_id=tenant_id,
        role=role,
        expires_delta=timedelta(hours=1)
    )

    payload = decode_access_token(token)

    assert payload is not None
    assert payload["sub"] == str(user_id)
    assert payload["tenant_id"] == str(tenant_id)
    assert payload["role"] == role
    assert "exp" in payload


def test_verify_invalid_token():
    """Test token verification with invalid token"""
    assert verify_token("invalid.token.string.here") is None


def test_expired_token():
    """Test that expired tokens are rejected"""
    token = create_access_token(
        user_id=uuid.uuid4(),
        tenant_id=uuid.uuid4(),
        role="cleaner",
        expires_delta=timedelta(hours=-1)
    )

    assert decode_access_token(token) is None
    assert verify_token(token) is None


def test_reset_token_is_not_an_access_token():
    """Test that password reset tokens cannot be used as bearer tokens"""
    uid = uuid.uuid4()
    token = create_password_reset_token(uid, "carla@example.com", "3f2a9c0d1e4b5a67")

    assert verify_token(token) is None
    payload = decode_access_token(token, token_type=PASSWORD_RESET_TOKEN_TYPE)
    assert payload["sub"] == str(uid)
    assert payload["email"] == "carla@example.com"
    assert payload["pwd"] == "3f2a9c0d1e4b5a67"


class TestRegister:
    """Self-registration"""

    @pytest.mark.asyncio
    async def test_admin_opens_company(self, session, auth):
        """An admin without company_id creates one with the plan quota"""
        response = await auth.register(
            RegisterRequest(
                email="ana@example.com",
                password="secret123",
                name="Ana Admin",
                company_name="Hotel Plaza",
                company_plan=CompanyPlan.PROFESSIONAL,
            )
        )

        assert response.token_type == "bearer"
        assert response.user.role == UserRole.ADMIN
        assert response.user.company_name == "Hotel Plaza"
        assert response.user.company_plan == CompanyPlan.PROFESSIONAL
        assert not response.user.must_change_password
        assert verify_token(response.access_token) == response.user.id

        company = await session.get(Company, response.user.company_id)
        assert company.max_buildings == 25

    @pytest.mark.asyncio
    async def test_admin_needs_company_name(self, auth):
        with pytest.raises(InvalidInputError):
            await auth.register(RegisterRequest(email="ana@example.com", password="secret123", name="Ana Admin"))

    @pytest.mark.asyncio
    async def test_cleaner_joins_existing_company(self, auth, make_company):
        company = await make_company()

        response = await auth.register(
            RegisterRequest(
                email="carla@example.com",
                password="secret123",
                name="Carla",
                role=UserRole.CLEANER,
                company_id=company.id,
            )
        )
        assert response.user.company_id == company.id

    @pytest.mark.asyncio
    async def test_admin_cannot_join_existing_company(self, session, auth, make_company):
        """Admins only sign up by opening their own company"""
        company = await make_company()

        with pytest.raises(ForbiddenError) as exc_info:
            await auth.register(
                RegisterRequest(
                    email="ana@example.com",
                    password="secret123",
                    name="Ana Admin",
                    role=UserRole.ADMIN,
                    company_id=company.id,
                )
            )
        assert exc_info.value.message == "Los administradores se registran creando una empresa nueva"

        result = await session.exec(select(Account).where(Account.email == "ana@example.com"))
        assert result.first() is None

    @pytest.mark.asyncio
    async def test_cleaner_needs_company(self, auth):
        with pytest.raises(InvalidInputError) as exc_info:
            await auth.register(
                RegisterRequest(email="carla@example.com", password="secret123", name="Carla", role=UserRole.CLEANER)
            )
        assert exc_info.value.message == "Las mucamas deben indicar una empresa existente"

    @pytest.mark.asyncio
    async def test_inactive_company_rejected(self, auth, make_company):
        company = await make_company(is_active=False)

        with pytest.raises(InvalidInputError):
            await auth.register(
                RegisterRequest(
                    email="carla@example.com",
                    password="secret123",
                    name="Carla",
                    role=UserRole.CLEANER,
                    company_id=company.id,
                )
            )

    @pytest.mark.asyncio
    async def test_super_admin_cannot_register(self, auth):
        with pytest.raises(ForbiddenError):
            await auth.register(
                RegisterRequest(email="root@example.com", password="secret123", name="Root", role=UserRole.SUPER_ADMIN)
            )

    @pytest.mark.asyncio
    async def test_duplicate_email(self, auth, make_account):
        account = await make_account()

        with pytest.raises(ConflictError):
            await auth.register(
                RegisterRequest(email=account.email, password="secret123", name="Otra", company_name="Otra SA")
            )

    @pytest.mark.asyncio
    async def test_new_company_discarded_when_account_fails(self, session, auth, identity):
        """A company opened during a failed signup does not survive"""
        # Identity exists without an account, so only the identity step fails
        await identity.create_identity("ana@example.com", "secret123", "Ana")

        with pytest.raises(ConflictError):
            await auth.register(
                RegisterRequest(
                    email="ana@example.com", password="secret123", name="Ana Admin", company_name="Hotel Plaza"
                )
            )

        result = await session.exec(select(Company).where(Company.name == "Hotel Plaza"))
        assert result.first() is None


class TestLogin:
    """Login and token verification"""

    @pytest.mark.asyncio
    async def test_login(self, auth, make_company, make_account):
        company = await make_company()
        account = await make_account(company, email="carla@example.com")

        response = await auth.login(LoginRequest(email="CARLA@example.com", password="secret123"))

        assert response.user.id == account.id
        assert response.user.last_login_at is not None
        assert response.user.company_plan == CompanyPlan.BASIC

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth, make_account):
        await make_account(email="carla@example.com")

        with pytest.raises(AuthenticationError) as exc_info:
            await auth.login(LoginRequest(email="carla@example.com", password="nope"))
        assert exc_info.value.message == "Credenciales inválidas"

    @pytest.mark.asyncio
    async def test_inactive_account(self, session, auth, make_account):
        """A disabled account is refused even if its identity is enabled"""
        account = await make_account(email="carla@example.com")
        account.is_active = False
        session.add(account)
        await session.commit()

        with pytest.raises(AuthenticationError) as exc_info:
            await auth.login(LoginRequest(email="carla@example.com", password="secret123"))
        assert exc_info.value.message == "Usuario inactivo"

    @pytest.mark.asyncio
    async def test_verify_token(self, session, auth, make_account):
        account = await make_account()
        token = create_access_token(user_id=account.id, tenant_id=account.company_id, role=account.role.value)

        response = await auth.verify_token(token)
        assert response.valid
        assert response.user.id == account.id

        with pytest.raises(AuthenticationError):
            await auth.verify_token("garbage")

        account.is_active = False
        session.add(account)
        await session.commit()
        with pytest.raises(AuthenticationError) as exc_info:
            await auth.verify_token(token)
        assert exc_info.value.message == "Usuario no encontrado o inactivo"


class TestPasswordReset:
    """Reset links and confirmation"""

    @pytest.mark.asyncio
    async def test_same_message_for_unknown_email(self, auth, identity, make_account):
        """The response never reveals whether the email exists"""
        await make_account(email="carla@example.com")

        known = await auth.reset_password("carla@example.com")
        unknown = await auth.reset_password("nadie@example.com")

        assert known.message == unknown.message == RESET_PASSWORD_MESSAGE
        assert len(identity.reset_links) == 1

    @pytest.mark.asyncio
    async def test_confirm_reset(self, session, auth, identity, users, make_company):
        """Following the link sets the password and clears the forced change"""
        account = await users.create_account(
            email="carla@example.com",
            password="secret123",
            name="Carla",
            role=UserRole.CLEANER,
            company_id=(await make_company()).id,
        )
        assert account.must_change_password
        await auth.reset_password("carla@example.com")
        token = identity.reset_links[0].split("token=")[1]

        response = await auth.confirm_password_reset(ResetPasswordConfirm(token=token, new_password="nueva123"))

        assert response.message == "Contraseña actualizada exitosamente"
        assert identity.identities[account.id]["password"] == "nueva123"
        await session.refresh(account)
        assert not account.must_change_password

    @pytest.mark.asyncio
    async def test_reset_link_works_once(self, auth, identity, make_account):
        """A used link cannot set the password again"""
        account = await make_account(email="carla@example.com")
        await auth.reset_password("carla@example.com")
        token = identity.reset_links[0].split("token=")[1]
        await auth.confirm_password_reset(ResetPasswordConfirm(token=token, new_password="nueva123"))

        with pytest.raises(InvalidInputError) as exc_info:
            await auth.confirm_password_reset(ResetPasswordConfirm(token=token, new_password="otra123"))
        assert exc_info.value.message == INVALID_RESET_LINK
        assert identity.identities[account.id]["password"] == "nueva123"

    @pytest.mark.asyncio
    async def test_confirm_with_access_token_fails(self, auth, make_account):
        account = await make_account()
        token = create_access_token(user_id=account.id, tenant_id=account.company_id, role="cleaner")

        with pytest.raises(InvalidInputError):
            await auth.confirm_password_reset(ResetPasswordConfirm(token=token, new_password="nueva123"))


class TestAdministration:
    """Status changes, hard disable and platform stats"""

    @pytest.mark.asyncio
    async def test_delete_user_requires_super_admin(self, auth, make_company, make_account, super_admin):
        company = await make_company()
        admin = await make_account(company, role=UserRole.ADMIN)
        cleaner = await make_account(company)

        with pytest.raises(ForbiddenError) as exc_info:
            await auth.delete_user(cleaner.id, actor_for(admin))
        assert exc_info.value.message == "Solo los super administradores pueden eliminar usuarios"

        await auth.delete_user(cleaner.id, actor_for(super_admin))

    @pytest.mark.asyncio
    async def test_set_user_status(self, auth, make_company, make_account):
        company = await make_company()
        admin = await make_account(company, role=UserRole.ADMIN)
        cleaner = await make_account(company)

        response = await auth.set_user_status(cleaner.id, False, actor_for(admin))
        assert not response.is_active

    @pytest.mark.asyncio
    async def test_stats(self, session, auth, make_company, make_account, super_admin):
        company = await make_company()
        await make_account(company, role=UserRole.ADMIN)
        await make_account(company)
        inactive = await make_account(company)
        inactive.is_active = False
        session.add(inactive)
        await session.commit()

        stats = await auth.stats(actor_for(super_admin))

        assert stats.total_users == 4
        assert stats.active_users == 3
        assert stats.inactive_users == 1
        assert stats.users_by_role == {"super_admin": 1, "admin": 1, "cleaner": 2}
        assert stats.total_companies == 1

        with pytest.raises(ForbiddenError):
            await auth.stats(actor_for(await make_account(company, role=UserRole.ADMIN)))


class TestDatabaseIdentityProvider:
    """bcrypt-backed identities in their own table"""

    @pytest.mark.asyncio
    async def test_credentials_lifecycle(self, session_maker):
        provider = DatabaseIdentityProvider(session_maker)

        uid = await provider.create_identity("Carla@Example.com", "secret123", "Carla")

        assert await provider.authenticate("carla@example.com", "secret123") == uid
        assert await provider.authenticate("carla@example.com", "wrong") is None
        assert await provider.check_password(uid, "secret123")

        await provider.set_password(uid, "nueva123")
        assert await provider.authenticate("carla@example.com", "nueva123") == uid

        await provider.set_disabled(uid, True)
        assert await provider.authenticate("carla@example.com", "nueva123") is None

        async with session_maker() as session:
            identity = await session.get(Identity, uid)
            assert identity.password_hash != "nueva123"
            assert identity.email == "carla@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_and_delete(self, session_maker):
        provider = DatabaseIdentityProvider(session_maker)
        uid = await provider.create_identity("carla@example.com", "secret123", "Carla")

        with pytest.raises(ConflictError):
            await provider.create_identity("CARLA@example.com", "otra123", "Otra")

        await provider.delete_identity(uid)
        with pytest.raises(IdentityNotFoundError):
            await provider.delete_identity(uid)

    @pytest.mark.asyncio
    async def test_reset_link_expires_with_password_change(self, session_maker):
        """Changing the password invalidates links issued before"""
        provider = DatabaseIdentityProvider(session_maker)
        await provider.create_identity("carla@example.com", "secret123", "Carla")
        link = await provider.generate_password_reset_link("carla@example.com")

        uid = await provider.authenticate("carla@example.com", "secret123")
        await provider.set_password(uid, "cambiada123")

        with pytest.raises(InvalidInputError):
            await provider.confirm_password_reset(link.split("token=")[1], "nueva123")
        assert await provider.check_password(uid, "cambiada123")

    @pytest.mark.asyncio
    async def test_reset_link_roundtrip(self, session_maker):
        provider = DatabaseIdentityProvider(session_maker)
        uid = await provider.create_identity("carla@example.com", "secret123", "Carla")

        link = await provider.generate_password_reset_link("carla@example.com")
        assert link.startswith(f"{settings.FRONTEND_URL}/reset-password?token=")

        assert await provider.confirm_password_reset(link.split("token=")[1], "nueva123") == uid
        assert await provider.check_password(uid, "nueva123")

        with pytest.raises(InvalidInputError):
            await provider.confirm_password_reset(link.split("token=")[1], "otra123")
        assert await provider.check_password(uid, "nueva123")

        with pytest.raises(IdentityNotFoundError):
            await provider.generate_password_reset_link("nadie@example.com")
