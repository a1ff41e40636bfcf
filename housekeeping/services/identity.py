"""
Identity provider

Credentials live apart from the account profile, behind the ``IdentityProvider``
interface. Services only see uids; the default implementation keeps bcrypt
hashes in the ``identities`` table and commits through its own sessions, so
its writes are independent from the caller's transaction.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional
from urllib.parse import urlencode
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from housekeeping.core.auth import (
    PASSWORD_RESET_TOKEN_TYPE,
    create_password_reset_token,
    decode_access_token,
    hash_password,
    password_fingerprint,
    verify_password,
)
from housekeeping.core.config import get_settings
from housekeeping.core.database import utcnow
from housekeeping.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UpstreamError,
)
from housekeeping.models.identity import Identity

logger = structlog.get_logger(__name__)

DUPLICATE_EMAIL = "Ya existe un usuario con este correo electrónico"
INVALID_RESET_LINK = "El enlace para resetear la contraseña es inválido o expiró"


class IdentityNotFoundError(NotFoundError):
    """No identity record for the given uid or email"""


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityProvider(ABC):
    """Credential store and password lifecycle"""

    @abstractmethod
    async def create_identity(self, email: str, password: str, display_name: str) -> uuid.UUID:
        """Create credentials and return the new uid"""

    @abstractmethod
    async def delete_identity(self, uid: uuid.UUID) -> None:
        ...

    @abstractmethod
    async def update_identity(
        self,
        uid: uuid.UUID,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    async def set_disabled(self, uid: uuid.UUID, disabled: bool) -> None:
        ...

    @abstractmethod
    async def authenticate(self, email: str, password: str) -> Optional[uuid.UUID]:
        """Return the uid when the password matches an enabled identity"""

    @abstractmethod
    async def check_password(self, uid: uuid.UUID, password: str) -> bool:
        ...

    @abstractmethod
    async def set_password(self, uid: uuid.UUID, password: str) -> None:
        ...

    @abstractmethod
    async def generate_password_reset_link(self, email: str) -> str:
        """Raises IdentityNotFoundError for unknown emails"""

    @abstractmethod
    async def confirm_password_reset(self, token: str, new_password: str) -> uuid.UUID:
        ...


class DatabaseIdentityProvider(IdentityProvider):
    """Identity provider backed by the ``identities`` table"""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory
        self._settings = get_settings()

    async def _get(self, session: AsyncSession, uid: uuid.UUID) -> Identity:
        identity = await session.get(Identity, uid)
        if identity is None:
            raise IdentityNotFoundError("Usuario no encontrado")
        return identity

    async def create_identity(self, email: str, password: str, display_name: str) -> uuid.UUID:
        identity = Identity(
            email=normalize_email(email),
            password_hash=hash_password(password),
            display_name=display_name,
        )
        async with self._session_factory() as session:
            session.add(identity)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ConflictError(DUPLICATE_EMAIL)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("identity_create_failed", error=str(e))
                raise UpstreamError("No se pudo crear la identidad del usuario") from e
        logger.info("identity_created", uid=str(identity.uid))
        return identity.uid

    async def delete_identity(self, uid: uuid.UUID) -> None:
        async with self._session_factory() as session:
            identity = await self._get(session, uid)
            await session.delete(identity)
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise UpstreamError("No se pudo eliminar la identidad del usuario") from e
        logger.info("identity_deleted", uid=str(uid))

    async def update_identity(
        self,
        uid: uuid.UUID,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> None:
        async with self._session_factory() as session:
            identity = await self._get(session, uid)
            if email is not None:
                identity.email = normalize_email(email)
            if display_name is not None:
                identity.display_name = display_name
            identity.updated_at = utcnow()
            session.add(identity)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ConflictError(DUPLICATE_EMAIL)

    async def set_disabled(self, uid: uuid.UUID, disabled: bool) -> None:
        async with self._session_factory() as session:
            identity = await self._get(session, uid)
            identity.disabled = disabled
            identity.updated_at = utcnow()
            session.add(identity)
            await session.commit()
        logger.info("identity_status_changed", uid=str(uid), disabled=disabled)

    async def authenticate(self, email: str, password: str) -> Optional[uuid.UUID]:
        async with self._session_factory() as session:
            result = await session.exec(
                select(Identity).where(Identity.email == normalize_email(email))
            )
            identity = result.first()
        if identity is None or identity.disabled:
            return None
        if not verify_password(password, identity.password_hash):
            return None
        return identity.uid

    async def check_password(self, uid: uuid.UUID, password: str) -> bool:
        async with self._session_factory() as session:
            identity = await self._get(session, uid)
        return verify_password(password, identity.password_hash)

    async def set_password(self, uid: uuid.UUID, password: str) -> None:
        async with self._session_factory() as session:
            identity = await self._get(session, uid)
            identity.password_hash = hash_password(password)
            identity.updated_at = utcnow()
            session.add(identity)
            await session.commit()
        logger.info("identity_password_changed", uid=str(uid))

    async def generate_password_reset_link(self, email: str) -> str:
        normalized = normalize_email(email)
        async with self._session_factory() as session:
            result = await session.exec(select(Identity).where(Identity.email == normalized))
            identity = result.first()
        if identity is None:
            raise IdentityNotFoundError("Usuario no encontrado")

        token = create_password_reset_token(
            identity.uid, identity.email, password_fingerprint(identity.password_hash)
        )
        query = urlencode({"token": token})
        return f"{self._settings.FRONTEND_URL}/reset-password?{query}"

    async def confirm_password_reset(self, token: str, new_password: str) -> uuid.UUID:
        payload = decode_access_token(token, token_type=PASSWORD_RESET_TOKEN_TYPE)
        if payload is None:
            raise InvalidInputError(INVALID_RESET_LINK)
        uid = uuid.UUID(payload["sub"])
        async with self._session_factory() as session:
            identity = await session.get(Identity, uid)
        # Used or outdated links carry the fingerprint of an older password
        if identity is None or payload.get("pwd") != password_fingerprint(identity.password_hash):
            raise InvalidInputError(INVALID_RESET_LINK)
        await self.set_password(uid, new_password)
        return uid
