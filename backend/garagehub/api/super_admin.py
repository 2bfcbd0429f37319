# backend/garagehub/api/super_admin.py
import logging
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, EmailStr, Field, constr
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.permissions import ADMIN_ROLE
from ..core.security import generate_temp_password
from ..models import Invoice, Job, Tenant, TenantBranding, TenantFeatures, User
from ..services.activity import log_activity
from ..services.tenants import check_tenant_slug, create_tenant_with_admin
from .deps import CurrentUser, get_current_user, get_db, require_super_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/super-admin", tags=["super-admin"])

TenantStatus = Literal["active", "suspended", "cancelled"]
Tier = Literal["basic", "professional", "enterprise"]

SUBDOMAIN_PATTERN = r"^[a-z0-9-]+$"


# ---------- Schemas ----------

class TenantCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    subdomain: constr(strip_whitespace=True, to_lower=True, pattern=SUBDOMAIN_PATTERN)
    subscription_tier: Tier = "basic"
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    admin_email: EmailStr
    admin_first_name: constr(strip_whitespace=True, min_length=1)
    admin_last_name: constr(strip_whitespace=True, min_length=1)


class BrandingIn(BaseModel):
    company_name: constr(strip_whitespace=True, min_length=1)
    primary_color: constr(strip_whitespace=True, min_length=1)
    secondary_color: Optional[str] = None
    logo_url: Optional[str] = None
    custom_domain: Optional[str] = None


class BrandingOut(BrandingIn):
    tenant_id: int

    class Config:
        from_attributes = True


class FeaturesIn(BaseModel):
    flags: Dict[str, bool] = Field(default_factory=dict)


class FeaturesOut(FeaturesIn):
    tenant_id: int

    class Config:
        from_attributes = True


class TenantOut(BaseModel):
    id: int
    name: str
    slug: str
    subdomain: Optional[str] = None
    subscription_tier: str
    status: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    branding: Optional[BrandingOut] = None
    features: Optional[FeaturesOut] = None

    class Config:
        from_attributes = True


class TenantCreatedOut(BaseModel):
    tenant: TenantOut
    admin_user_id: int
    admin_email: EmailStr
    temporary_password: str


class TenantStatusIn(BaseModel):
    status: TenantStatus


class AnalyticsOut(BaseModel):
    tenant_id: Optional[int] = None
    total_tenants: int
    active_tenants: int
    total_jobs: int
    total_invoices: int
    total_revenue: float
    active_users: int


# ---------- Helpers ----------

def _get_tenant(db: Session, tenant_id: int) -> Tenant:
    tenant = db.get(Tenant, tenant_id)
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


def _scoped(qs, column, tenant_id: Optional[int]):
    return qs.filter(column == tenant_id) if tenant_id else qs


# ---------- Tenants ----------

@router.post("/tenants", response_model=TenantCreatedOut, status_code=status.HTTP_201_CREATED)
def create_tenant(
    body: TenantCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_super_admin),
):
    """New tenant with default roles, job statuses and an admin holding a temporary password."""
    check_tenant_slug(body.subdomain)
    exists = (
        db.query(Tenant.id)
        .filter((Tenant.subdomain == body.subdomain) | (Tenant.slug == body.subdomain))
        .first()
    )
    if exists:
        raise HTTPException(status_code=409, detail="Subdomain already taken")

    temp_password = generate_temp_password()
    tenant, admin = create_tenant_with_admin(
        db,
        name=body.name,
        slug=body.subdomain,
        subdomain=body.subdomain,
        subscription_tier=body.subscription_tier,
        email=body.email,
        phone=body.phone,
        admin_email=body.admin_email,
        admin_password=temp_password,
        admin_first_name=body.admin_first_name,
        admin_last_name=body.admin_last_name,
    )
    log_activity(
        db, current.tenant_id, current.id, "tenant", tenant.id, "created",
        new_values={"name": tenant.name, "subdomain": tenant.subdomain, "tier": tenant.subscription_tier},
    )
    db.commit()
    db.refresh(tenant)
    logger.info("Tenant %s created by super admin %s", tenant.subdomain, current.id)
    return TenantCreatedOut(
        tenant=TenantOut.model_validate(tenant),
        admin_user_id=admin.id,
        admin_email=admin.email,
        temporary_password=temp_password,
    )


@router.get("/tenants", response_model=List[TenantOut])
def list_tenants(
    status_filter: Optional[TenantStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_super_admin),
):
    qs = db.query(Tenant)
    if status_filter:
        qs = qs.filter(Tenant.status == status_filter)
    return qs.order_by(Tenant.created_at.desc(), Tenant.id.desc()).all()


@router.get("/tenants/{tenant_id}", response_model=TenantOut)
def get_tenant(
    tenant_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_super_admin),
):
    return _get_tenant(db, tenant_id)


@router.patch("/tenants/{tenant_id}/status", response_model=TenantOut)
def update_tenant_status(
    tenant_id: int,
    body: TenantStatusIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_super_admin),
):
    tenant = _get_tenant(db, tenant_id)
    old_status = tenant.status
    tenant.status = body.status
    log_activity(
        db, current.tenant_id, current.id, "tenant", tenant.id, "status_updated",
        old_values={"status": old_status}, new_values={"status": body.status},
    )
    db.commit()
    db.refresh(tenant)
    return tenant


# ---------- Branding / features ----------

@router.put("/tenants/{tenant_id}/branding", response_model=BrandingOut)
def upsert_branding(
    tenant_id: int,
    body: BrandingIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    # Tenant admins may brand their own shop
    own_admin = current.tenant_id == tenant_id and current.role_name == ADMIN_ROLE
    if not (current.is_super_admin or own_admin):
        raise HTTPException(status_code=403, detail="Unauthorized")

    tenant = _get_tenant(db, tenant_id)
    branding = tenant.branding
    old: Optional[Dict[str, Any]] = None
    if branding is None:
        branding = TenantBranding(tenant_id=tenant.id, **body.model_dump())
        db.add(branding)
    else:
        old = {k: getattr(branding, k) for k in body.model_dump()}
        for k, v in body.model_dump().items():
            setattr(branding, k, v)

    log_activity(
        db, current.tenant_id, current.id, "tenant", tenant.id, "branding_updated",
        old_values=old, new_values=body.model_dump(),
    )
    db.commit()
    db.refresh(branding)
    return branding


@router.put("/tenants/{tenant_id}/features", response_model=FeaturesOut)
def upsert_features(
    tenant_id: int,
    body: FeaturesIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_super_admin),
):
    tenant = _get_tenant(db, tenant_id)
    features = tenant.features
    old = dict(features.flags or {}) if features else None
    if features is None:
        features = TenantFeatures(tenant_id=tenant.id, flags=dict(body.flags))
        db.add(features)
    else:
        # reassign so the JSON column is flagged dirty
        features.flags = dict(body.flags)

    log_activity(
        db, current.tenant_id, current.id, "tenant", tenant.id, "features_updated",
        old_values=old, new_values=body.flags,
    )
    db.commit()
    db.refresh(features)
    return features


# ---------- Analytics ----------

@router.get("/analytics", response_model=AnalyticsOut)
def analytics(
    tenant_id: Optional[int] = Query(None, ge=1, description="Limit to one tenant"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_super_admin),
):
    if tenant_id:
        _get_tenant(db, tenant_id)

    tenants_q = _scoped(db.query(func.count(Tenant.id)), Tenant.id, tenant_id)
    total_tenants = tenants_q.scalar() or 0
    active_tenants = tenants_q.filter(Tenant.status == "active").scalar() or 0

    total_jobs = _scoped(db.query(func.count(Job.id)), Job.tenant_id, tenant_id).scalar() or 0
    total_invoices = _scoped(db.query(func.count(Invoice.id)), Invoice.tenant_id, tenant_id).scalar() or 0
    revenue = (
        _scoped(db.query(func.coalesce(func.sum(Invoice.total_amount), 0)), Invoice.tenant_id, tenant_id)
        .filter(Invoice.status == "paid")
        .scalar()
    )
    active_users = (
        _scoped(db.query(func.count(User.id)), User.tenant_id, tenant_id)
        .filter(User.is_active.is_(True))
        .scalar()
        or 0
    )

    return AnalyticsOut(
        tenant_id=tenant_id,
        total_tenants=total_tenants,
        active_tenants=active_tenants,
        total_jobs=total_jobs,
        total_invoices=total_invoices,
        total_revenue=float(revenue or 0),
        active_users=active_users,
    )
