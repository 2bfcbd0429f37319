# backend/garagehub/api/users.py

from typing import List, Optional, Dict, Any
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from ..core.permissions import USER_MANAGEMENT, USER_VIEW
from ..core.security import hash_password
from ..models import Role, User
from ..services.activity import log_activity
from .common import PageMeta, get_tenant_row, paginate
from .deps import get_db, CurrentUser, require_permissions

router = APIRouter(prefix="/users", tags=["users"])


# ---------------------------
# Pydantic Schemas
# ---------------------------

class UserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    role_name: Optional[str] = None
    is_active: Optional[bool] = None


class UserOut(BaseModel):
    id: int
    tenant_id: int
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role_name: Optional[str] = None
    is_active: Optional[bool] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UsersListOut(BaseModel):
    meta: PageMeta
    items: List[UserOut]


# ---------------------------
# Endpoints
# ---------------------------

@router.get(
    "/",
    response_model=UsersListOut,
    summary="List Users",
)
def list_users(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([USER_MANAGEMENT, USER_VIEW])),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Search in email/name/role"),
    role_name: Optional[str] = Query(None, description="Exact role filter, e.g. technician"),
):
    q = db.query(User).filter(User.tenant_id == current.tenant_id)

    if search:
        like = f"%{search.lower()}%"
        q = q.filter(
            or_(
                User.email.ilike(like),
                func.coalesce(User.first_name, "").ilike(like),
                func.coalesce(User.last_name, "").ilike(like),
                func.coalesce(User.role_name, "").ilike(like),
            )
        )
    if role_name:
        q = q.filter(User.role_name == role_name)

    page_data = paginate(q.order_by(User.id.desc()), page, size)
    return UsersListOut(
        meta=page_data["meta"],
        items=[UserOut.model_validate(u) for u in page_data["rows"]],
    )


@router.get(
    "/{user_id}",
    response_model=UserOut,
    summary="Get User",
)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([USER_MANAGEMENT, USER_VIEW])),
):
    return get_tenant_row(db, User, user_id, current.tenant_id, "User")


@router.patch(
    "/{user_id}",
    response_model=UserOut,
    summary="Update User (partial)",
)
def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([USER_MANAGEMENT])),
):
    user = get_tenant_row(db, User, user_id, current.tenant_id, "User")
    data = body.model_dump(exclude_unset=True)
    old: Dict[str, Any] = {}

    if "role_name" in data and data["role_name"]:
        exists = (
            db.query(Role)
            .filter(Role.tenant_id == current.tenant_id, Role.name == data["role_name"])
            .first()
        )
        if not exists:
            raise HTTPException(status_code=400, detail="Unknown role")
        old["role_name"] = user.role_name
        user.role_name = data["role_name"]

    if "is_active" in data and data["is_active"] is not None:
        if user.id == current.id and data["is_active"] is False:
            raise HTTPException(status_code=400, detail="You cannot deactivate yourself")
        old["is_active"] = user.is_active
        user.is_active = bool(data["is_active"])

    for field in ("first_name", "last_name", "phone"):
        if field in data:
            setattr(user, field, data[field])

    if data.get("password"):
        user.password_hash = hash_password(data["password"])

    try:
        log_activity(
            db, current.tenant_id, current.id, "user", user.id, "updated",
            old_values=old or None,
            new_values={k: v for k, v in data.items() if k != "password"},
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail="User violates a DB constraint") from e
    db.refresh(user)
    return user


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate User",
)
def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([USER_MANAGEMENT])),
):
    user = get_tenant_row(db, User, user_id, current.tenant_id, "User")
    if user.id == current.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate yourself")

    # Users are referenced from jobs, quotes and logs; keep the row
    user.is_active = False
    log_activity(db, current.tenant_id, current.id, "user", user.id, "deactivated")
    db.commit()
    return None
