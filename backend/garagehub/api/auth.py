# backend/garagehub/api/auth.py
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from ..core.permissions import USER_MANAGEMENT, accessible_routes
from ..core.security import create_access_token, generate_temp_password, hash_password, verify_password
from ..core.timeutil import utcnow
from ..models import Role, Tenant, User
from ..services.activity import log_activity
from ..services.tenants import check_tenant_slug, create_tenant_with_admin
from .deps import CurrentUser, get_current_user, get_db, require_permissions

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------- Schemas ----------

class SignupIn(BaseModel):
    company_name: str = Field(..., min_length=1)
    tenant_slug: Optional[str] = None  # derived from company_name when omitted
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: Optional[str] = None


class LoginIn(BaseModel):
    tenant_slug: str
    email: EmailStr
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeOut(BaseModel):
    id: int
    email: EmailStr
    tenant_id: int
    role: str
    permissions: List[str]
    routes: List[str]


class InviteIn(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    role_name: str = Field(..., min_length=1)


class InviteOut(BaseModel):
    id: int
    email: EmailStr
    role_name: str
    temporary_password: str


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", value.lower())


# ---------- Endpoints ----------

@router.post("/signup", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
def signup(body: SignupIn, db: Session = Depends(get_db)):
    """
    Registers a new shop: tenant, its default roles and job statuses, and an
    admin user. Returns an access token for the admin.
    """
    slug = slugify(body.tenant_slug or body.company_name)
    check_tenant_slug(slug)
    if db.query(Tenant).filter(Tenant.slug == slug).first():
        raise HTTPException(status_code=400, detail="Tenant slug already exists")

    tenant, admin = create_tenant_with_admin(
        db,
        name=body.company_name,
        slug=slug,
        email=body.email,
        phone=body.phone,
        admin_email=body.email,
        admin_password=body.password,
        admin_first_name=body.first_name,
        admin_last_name=body.last_name,
    )
    log_activity(db, tenant.id, admin.id, "tenant", tenant.id, "signed_up", new_values={"slug": slug})

    token = create_access_token(subject=str(admin.id), tenant_id=tenant.id, role_name=admin.role_name)
    db.commit()
    return TokenOut(access_token=token)


@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, db: Session = Depends(get_db)):
    """Tenant slug + email + password -> access token."""
    tenant = db.query(Tenant).filter(Tenant.slug == body.tenant_slug).first()
    if not tenant:
        raise HTTPException(status_code=400, detail="Tenant not found")

    user = (
        db.query(User)
        .filter(User.tenant_id == tenant.id, User.email == body.email.lower())
        .first()
    )
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if user.is_active is False:
        raise HTTPException(status_code=403, detail="User is inactive")

    user.last_login_at = utcnow()
    db.commit()

    token = create_access_token(subject=str(user.id), tenant_id=tenant.id, role_name=user.role_name)
    return TokenOut(access_token=token)


@router.get("/me", response_model=MeOut)
def me(current: CurrentUser = Depends(get_current_user)):
    """Current user plus resolved permissions and the routes they unlock."""
    return MeOut(
        id=current.id,
        email=current.email,
        tenant_id=current.tenant_id,
        role=current.role_name,
        permissions=sorted(current.permissions),
        routes=accessible_routes(current.permissions),
    )


@router.post(
    "/invite",
    response_model=InviteOut,
    status_code=status.HTTP_201_CREATED,
)
def invite_user(
    body: InviteIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([USER_MANAGEMENT])),
):
    """Creates a staff user with a temporary password inside the caller's tenant."""
    role = (
        db.query(Role)
        .filter(Role.tenant_id == current.tenant_id, Role.name == body.role_name)
        .first()
    )
    if not role:
        raise HTTPException(status_code=400, detail="Unknown role")

    email = body.email.lower()
    if db.query(User).filter(User.tenant_id == current.tenant_id, User.email == email).first():
        raise HTTPException(status_code=409, detail="Email already exists")

    temp_password = generate_temp_password()
    user = User(
        tenant_id=current.tenant_id,
        email=email,
        password_hash=hash_password(temp_password),
        role_name=role.name,
        first_name=body.first_name,
        last_name=body.last_name,
        is_active=True,
    )
    db.add(user)
    db.flush()
    log_activity(db, current.tenant_id, current.id, "user", user.id, "invited", new_values={"role": role.name})
    db.commit()
    return InviteOut(id=user.id, email=user.email, role_name=user.role_name, temporary_password=temp_password)
