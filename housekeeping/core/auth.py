"""
JWT and password hashing utilities
"""

from datetime import datetime, timedelta, timezone
import hashlib
from jose import JWTError, jwt
from passlib.context import CryptContext
from typing import Dict, Optional
import uuid

from housekeeping.core.config import get_settings

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
PASSWORD_RESET_TOKEN_TYPE = "password_reset"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(
    user_id: uuid.UUID,
    tenant_id: uuid.UUID,
    role: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token with user claims"""
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id),
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "exp": expire,
        "iat": now,
    }

    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


def password_fingerprint(password_hash: str) -> str:
    """Short digest of a stored hash, changes whenever the password does"""
    return hashlib.sha256(password_hash.encode()).hexdigest()[:16]


def create_password_reset_token(uid: uuid.UUID, email: str, fingerprint: str) -> str:
    """Short-lived token embedded in password reset links

    ``fingerprint`` ties the token to the current password, so it stops
    working once the password is reset.
    """
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(uid),
        "email": email,
        "pwd": fingerprint,
        "type": PASSWORD_RESET_TOKEN_TYPE,
        "exp": now + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
        "iat": now,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> Optional[Dict]:
    """Decode and validate JWT token"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def verify_token(token: str) -> Optional[uuid.UUID]:
    """Verify token and return user_id if valid"""
    payload = decode_access_token(token)
    if payload is None:
        return None

    try:
        return uuid.UUID(payload.get("sub"))
    except (TypeError, ValueError):
        return None
