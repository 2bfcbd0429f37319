from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import asc
from sqlalchemy.orm import Session

from ..core.permissions import ROLE_PERMISSIONS, SUPER_ADMIN_ROLE, TENANT_DEFAULT_ROLES, format_permissions
from ..core.security import hash_password
from ..models import JobStatus, Role, Tenant, User

DEFAULT_STATUS_NAME = "Request Received"

# (name, color, order_index, is_final)
DEFAULT_JOB_STATUSES = [
    ("Request Received",      "#6b7280", 0, False),
    ("Quote Sent",            "#3b82f6", 1, False),
    ("Awaiting Approval",     "#f59e0b", 2, False),
    ("Approved",              "#10b981", 3, False),
    ("In Progress",           "#8b5cf6", 4, False),
    ("Awaiting Parts",        "#f97316", 5, False),
    ("Ready for Collection",  "#14b8a6", 6, False),
    ("Completed",             "#22c55e", 7, True),
    ("Collected",             "#16a34a", 8, True),
    ("Cancelled",             "#ef4444", 9, True),
]


def ensure_default_roles(db: Session, tenant_id: int) -> List[Role]:
    existing = {r.name for r in db.query(Role).filter(Role.tenant_id == tenant_id).all()}
    created = []
    for name in TENANT_DEFAULT_ROLES:
        if name in existing:
            continue
        role = Role(tenant_id=tenant_id, name=name, permissions=format_permissions(ROLE_PERMISSIONS[name]))
        db.add(role)
        created.append(role)
    return created


def ensure_default_statuses(db: Session, tenant_id: int) -> List[JobStatus]:
    """Seeds the tenant's job status list on first use; returns it ordered."""
    rows = (
        db.query(JobStatus)
        .filter(JobStatus.tenant_id == tenant_id)
        .order_by(asc(JobStatus.order_index))
        .all()
    )
    if rows:
        return rows

    for name, color, order_idx, is_final in DEFAULT_JOB_STATUSES:
        db.add(JobStatus(tenant_id=tenant_id, name=name, color=color, order_index=order_idx, is_final=is_final))
    db.flush()
    return (
        db.query(JobStatus)
        .filter(JobStatus.tenant_id == tenant_id)
        .order_by(asc(JobStatus.order_index))
        .all()
    )


def default_status(db: Session, tenant_id: int) -> Optional[JobStatus]:
    statuses = ensure_default_statuses(db, tenant_id)
    for st in statuses:
        if st.name == DEFAULT_STATUS_NAME:
            return st
    return statuses[0] if statuses else None


def create_tenant_with_admin(
    db: Session,
    *,
    name: str,
    slug: str,
    admin_email: str,
    admin_password: str,
    subdomain: Optional[str] = None,
    subscription_tier: str = "basic",
    email: Optional[str] = None,
    phone: Optional[str] = None,
    admin_first_name: Optional[str] = None,
    admin_last_name: Optional[str] = None,
) -> tuple:
    """Tenant + default roles + job statuses + admin user. Caller commits."""
    tenant = Tenant(
        name=name,
        slug=slug,
        subdomain=subdomain,
        subscription_tier=subscription_tier,
        status="active",
        email=email,
        phone=phone,
    )
    db.add(tenant)
    db.flush()  # tenant.id

    ensure_default_roles(db, tenant.id)
    ensure_default_statuses(db, tenant.id)

    admin = User(
        tenant_id=tenant.id,
        email=admin_email.lower(),
        password_hash=hash_password(admin_password),
        role_name="admin",
        first_name=admin_first_name,
        last_name=admin_last_name,
        is_active=True,
    )
    db.add(admin)
    db.flush()
    return tenant, admin


PLATFORM_TENANT_SLUG = "platform"


def check_tenant_slug(slug: str) -> None:
    """400 for slugs no shop may hold: blank/all-dash ones and the platform tenant's."""
    if not slug.strip("-"):
        raise HTTPException(status_code=400, detail="Tenant slug must contain letters or digits")
    if slug == PLATFORM_TENANT_SLUG:
        raise HTTPException(status_code=400, detail="Tenant slug is reserved")


def ensure_super_admin(db: Session, email: str, password: str) -> User:
    """
    Creates (or resets the password of) a super admin living in the platform
    tenant. Caller commits.
    """
    tenant = db.query(Tenant).filter(Tenant.slug == PLATFORM_TENANT_SLUG).first()
    if tenant is None:
        tenant = Tenant(name="Platform", slug=PLATFORM_TENANT_SLUG, subscription_tier="enterprise", status="active")
        db.add(tenant)
        db.flush()
        db.add(Role(tenant_id=tenant.id, name=SUPER_ADMIN_ROLE, permissions=format_permissions(ROLE_PERMISSIONS[SUPER_ADMIN_ROLE])))

    email = email.lower()
    user = db.query(User).filter(User.tenant_id == tenant.id, User.email == email).first()
    if user is None:
        user = User(tenant_id=tenant.id, email=email, role_name=SUPER_ADMIN_ROLE, is_active=True)
        db.add(user)
    user.password_hash = hash_password(password)
    user.role_name = SUPER_ADMIN_ROLE
    db.flush()
    return user
