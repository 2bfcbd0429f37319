from typing import Optional, List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.permissions import ALL, USER_MANAGEMENT, format_permissions, parse_permissions
from ..models import Role, User
from .common import get_tenant_row
from .deps import get_db, CurrentUser, require_permissions

router = APIRouter(prefix="/roles", tags=["roles"])


# ---------- Schemas ----------
class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    permissions: List[str] = []


class RoleUpdate(BaseModel):
    name: Optional[str] = None
    permissions: Optional[List[str]] = None


class RoleOut(BaseModel):
    id: int
    tenant_id: int
    name: str
    permissions: List[str]


def _serialize(role: Role) -> RoleOut:
    return RoleOut(
        id=role.id,
        tenant_id=role.tenant_id,
        name=role.name,
        permissions=sorted(parse_permissions(role.permissions)),
    )


def _clean_permissions(perms: List[str]) -> Optional[str]:
    # "all" is reserved for the platform super admin
    if ALL in perms:
        raise HTTPException(status_code=400, detail="Permission 'all' cannot be granted to a tenant role")
    return format_permissions(perms) or None


# ---------- Endpoints ----------
@router.get("/", response_model=List[RoleOut])
def list_roles(
    q: Optional[str] = Query(None, description="Search by role name"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([USER_MANAGEMENT])),
):
    qs = db.query(Role).filter(Role.tenant_id == current.tenant_id)
    if q:
        qs = qs.filter(Role.name.ilike(f"%{q}%"))
    return [_serialize(r) for r in qs.order_by(Role.name.asc()).all()]


@router.post("/", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(
    body: RoleCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([USER_MANAGEMENT])),
):
    name = body.name.strip()
    if db.query(Role).filter(Role.tenant_id == current.tenant_id, Role.name == name).first():
        raise HTTPException(status_code=409, detail="Role already exists")

    role = Role(tenant_id=current.tenant_id, name=name, permissions=_clean_permissions(body.permissions))
    db.add(role)
    db.commit()
    db.refresh(role)
    return _serialize(role)


@router.patch("/{role_id}", response_model=RoleOut)
def update_role(
    role_id: int,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([USER_MANAGEMENT])),
):
    role = get_tenant_row(db, Role, role_id, current.tenant_id, "Role")

    data = body.model_dump(exclude_unset=True)
    if data.get("name"):
        new_name = data["name"].strip()
        if new_name != role.name:
            # keep users pointing at the renamed role
            db.query(User).filter(User.tenant_id == current.tenant_id, User.role_name == role.name).update(
                {User.role_name: new_name}, synchronize_session=False
            )
            role.name = new_name
    if "permissions" in data:
        role.permissions = _clean_permissions(data["permissions"] or [])

    db.commit()
    db.refresh(role)
    return _serialize(role)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([USER_MANAGEMENT])),
):
    role = get_tenant_row(db, Role, role_id, current.tenant_id, "Role")
    in_use = (
        db.query(User)
        .filter(User.tenant_id == current.tenant_id, User.role_name == role.name)
        .count()
    )
    if in_use:
        raise HTTPException(status_code=409, detail="Role is assigned to users")

    db.delete(role)
    db.commit()
    return None
