import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from .config import settings

# Password hashing (bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

STAFF_TOKEN = "staff"
CLIENT_TOKEN = "client"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def generate_temp_password(length: int = 12) -> str:
    return secrets.token_urlsafe(length)[:length]


def _encode(payload: dict, expires_minutes: int) -> str:
    payload = dict(payload)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: str,              # user id (string)
    tenant_id: int,
    role_name: str,
    expires_minutes: Optional[int] = None,
) -> str:
    payload = {"sub": subject, "tenant": tenant_id, "role": role_name, "kind": STAFF_TOKEN}
    return _encode(payload, expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)


def create_client_token(client_id: int, tenant_id: int, expires_minutes: Optional[int] = None) -> str:
    payload = {"sub": str(client_id), "tenant": tenant_id, "kind": CLIENT_TOKEN}
    return _encode(payload, expires_minutes or settings.CLIENT_TOKEN_EXPIRE_MINUTES)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise ValueError("Invalid token") from e
