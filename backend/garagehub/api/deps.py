# backend/garagehub/api/deps.py
from typing import List, Set, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..core.config import SessionLocal
from ..core.permissions import ALL, SUPER_ADMIN_ROLE, has_any_permission, resolve_permissions
from ..core.security import CLIENT_TOKEN, STAFF_TOKEN, decode_token
from ..models import Client, Role, Tenant, User

# Single Bearer field for the "Authorize" button in Swagger
auth_scheme = HTTPBearer(auto_error=False)


# ---------------------------
# DB Session Dependency
# ---------------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------
# Current User DTO
# ---------------------------
class CurrentUser:
    def __init__(self, id: int, tenant_id: int, email: str, role_name: str, permissions: Optional[Set[str]] = None):
        self.id = id
        self.tenant_id = tenant_id
        self.email = email
        self.role_name = role_name
        self.permissions = set(permissions or ())

    @property
    def is_super_admin(self) -> bool:
        return self.role_name == SUPER_ADMIN_ROLE or ALL in self.permissions


class CurrentClient:
    def __init__(self, id: int, tenant_id: int, email: Optional[str]):
        self.id = id
        self.tenant_id = tenant_id
        self.email = email


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode(credentials: Optional[HTTPAuthorizationCredentials]) -> dict:
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        return decode_token(credentials.credentials)
    except ValueError:
        raise _unauthorized("Invalid token")


def load_permissions(db: Session, tenant_id: int, role_name: str) -> Set[str]:
    role = (
        db.query(Role)
        .filter(Role.tenant_id == tenant_id, Role.name == role_name)
        .first()
    )
    return resolve_permissions(role.permissions if role else None, role_name)


# ---------------------------
# AuthN: Token -> CurrentUser
# ---------------------------
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    db: Session = Depends(get_db),
) -> CurrentUser:
    payload = _decode(credentials)
    if payload.get("kind", STAFF_TOKEN) != STAFF_TOKEN:
        raise _unauthorized("Invalid token payload")

    user_id = payload.get("sub")
    tenant_id = payload.get("tenant")
    if user_id is None or tenant_id is None:
        raise _unauthorized("Invalid token payload")

    user = (
        db.query(User)
        .filter(User.id == int(user_id), User.tenant_id == int(tenant_id))
        .first()
    )
    if not user:
        raise _unauthorized("User not found")
    if user.is_active is False:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")

    tenant = db.get(Tenant, user.tenant_id)
    if tenant is not None and tenant.status != "active" and user.role_name != SUPER_ADMIN_ROLE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Tenant is not active")

    # Role is read from the DB row so role changes apply without a new token
    role_name = user.role_name or payload.get("role") or ""
    perms = load_permissions(db, user.tenant_id, role_name)
    return CurrentUser(id=user.id, tenant_id=user.tenant_id, email=user.email, role_name=role_name, permissions=perms)


async def get_current_client(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    db: Session = Depends(get_db),
) -> CurrentClient:
    payload = _decode(credentials)
    if payload.get("kind") != CLIENT_TOKEN:
        raise _unauthorized("Invalid token payload")

    client_id = payload.get("sub")
    tenant_id = payload.get("tenant")
    if client_id is None or tenant_id is None:
        raise _unauthorized("Invalid token payload")

    client = (
        db.query(Client)
        .filter(
            Client.id == int(client_id),
            Client.tenant_id == int(tenant_id),
            Client.portal_access.is_(True),
            Client.is_active.is_(True),
        )
        .first()
    )
    if not client:
        raise _unauthorized("Portal access not enabled")
    return CurrentClient(id=client.id, tenant_id=client.tenant_id, email=client.email)


# ---------------------------
# AuthZ: Permission Check
# ---------------------------
def require_permissions(required: List[str]):
    """
    Usage:
      dependencies=[Depends(require_permissions([JOB_MANAGEMENT, JOB_VIEW]))]

    Passes when the user holds ANY of the listed permissions ("all" passes everything).
    """
    required_set: Set[str] = set(required)

    def checker(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if ALL in current.permissions:
            return current
        if has_any_permission(current.permissions, required_set):
            return current
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")

    return checker


def require_super_admin(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current.is_super_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    return current
