"""
Test doubles and helpers shared by the test modules
"""

from typing import Dict, List, Optional
import uuid

from housekeeping.core.auth import (
    PASSWORD_RESET_TOKEN_TYPE,
    create_access_token,
    create_password_reset_token,
    decode_access_token,
    password_fingerprint,
)
from housekeeping.core.config import get_settings
from housekeeping.core.errors import ConflictError, InvalidInputError
from housekeeping.core.permissions import Actor
from housekeeping.models.user import Account
from housekeeping.services.identity import (
    DUPLICATE_EMAIL,
    INVALID_RESET_LINK,
    IdentityNotFoundError,
    IdentityProvider,
    normalize_email,
)
from housekeeping.services.storage import ObjectStore

settings = get_settings()


class InMemoryIdentityProvider(IdentityProvider):
    """Identity provider keeping plain-text credentials in a dict"""

    def __init__(self):
        self.identities: Dict[uuid.UUID, dict] = {}
        self.reset_links: List[str] = []
        self.fail_delete = False

    def _by_email(self, email: str) -> Optional[uuid.UUID]:
        email = normalize_email(email)
        for uid, identity in self.identities.items():
            if identity["email"] == email:
                return uid
        return None

    async def create_identity(self, email: str, password: str, display_name: str) -> uuid.UUID:
        if self._by_email(email) is not None:
            raise ConflictError(DUPLICATE_EMAIL)
        uid = uuid.uuid4()
        self.identities[uid] = {
            "email": normalize_email(email),
            "password": password,
            "display_name": display_name,
            "disabled": False,
        }
        return uid

    async def delete_identity(self, uid: uuid.UUID) -> None:
        if self.fail_delete:
            raise RuntimeError("identity backend unavailable")
        if self.identities.pop(uid, None) is None:
            raise IdentityNotFoundError("Usuario no encontrado")

    async def update_identity(self, uid, email=None, display_name=None) -> None:
        if email is not None:
            holder = self._by_email(email)
            if holder is not None and holder != uid:
                raise ConflictError(DUPLICATE_EMAIL)
            self.identities[uid]["email"] = normalize_email(email)
        if display_name is not None:
            self.identities[uid]["display_name"] = display_name

    async def set_disabled(self, uid: uuid.UUID, disabled: bool) -> None:
        self.identities[uid]["disabled"] = disabled

    async def authenticate(self, email: str, password: str) -> Optional[uuid.UUID]:
        uid = self._by_email(email)
        if uid is None:
            return None
        identity = self.identities[uid]
        if identity["disabled"] or identity["password"] != password:
            return None
        return uid

    async def check_password(self, uid: uuid.UUID, password: str) -> bool:
        return self.identities[uid]["password"] == password

    async def set_password(self, uid: uuid.UUID, password: str) -> None:
        self.identities[uid]["password"] = password

    async def generate_password_reset_link(self, email: str) -> str:
        uid = self._by_email(email)
        if uid is None:
            raise IdentityNotFoundError("Usuario no encontrado")
        identity = self.identities[uid]
        token = create_password_reset_token(uid, identity["email"], password_fingerprint(identity["password"]))
        link = f"{settings.FRONTEND_URL}/reset-password?token={token}"
        self.reset_links.append(link)
        return link

    async def confirm_password_reset(self, token: str, new_password: str) -> uuid.UUID:
        payload = decode_access_token(token, token_type=PASSWORD_RESET_TOKEN_TYPE)
        if payload is None:
            raise InvalidInputError(INVALID_RESET_LINK)
        uid = uuid.UUID(payload["sub"])
        if payload.get("pwd") != password_fingerprint(self.identities[uid]["password"]):
            raise InvalidInputError(INVALID_RESET_LINK)
        await self.set_password(uid, new_password)
        return uid


class InMemoryObjectStore(ObjectStore):
    """Object store remembering every blob it was given"""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}

    async def put(self, data: bytes, content_type: str, filename: Optional[str] = None) -> str:
        url = f"http://cdn.test/tasks/{len(self.objects) + 1}"
        self.objects[url] = data
        return url


def actor_for(account: Account) -> Actor:
    return Actor(
        id=account.id,
        role=account.role,
        company_id=account.company_id,
        email=account.email,
        name=account.name,
    )


def auth_headers(account: Account) -> Dict[str, str]:
    token = create_access_token(
        user_id=account.id,
        tenant_id=account.company_id,
        role=account.role.value,
    )
    return {"Authorization": f"Bearer {token}"}
