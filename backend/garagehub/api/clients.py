# backend/garagehub/api/clients.py

from typing import Optional, List, Dict, Any
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, EmailStr, Field, constr
from sqlalchemy.orm import Session
from sqlalchemy import or_, func

from ..core.permissions import CLIENT_MANAGEMENT, JOB_MANAGEMENT
from ..core.security import hash_password
from ..models import Client, Job
from ..services.activity import log_activity
from .common import PageMeta, get_tenant_row, paginate
from .deps import get_db, CurrentUser, require_permissions

router = APIRouter(prefix="/clients", tags=["clients"])


# ---------- Schemas ----------

class ClientBase(BaseModel):
    first_name: constr(strip_whitespace=True, min_length=1)
    last_name: constr(strip_whitespace=True, min_length=1)
    company_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    first_name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    last_name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    company_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class ClientOut(ClientBase):
    id: int
    tenant_id: int
    is_active: bool
    portal_access: bool
    vehicle_count: int = 0
    created_at: Optional[datetime] = None


class ClientsListOut(BaseModel):
    meta: PageMeta
    items: List[ClientOut]


class PortalAccessIn(BaseModel):
    password: str = Field(..., min_length=6, description="Temporary portal password")


# ---------- Helpers ----------

def _apply_search(qs, q: Optional[str]):
    if not q:
        return qs
    q_norm = q.strip().lower()
    if not q_norm:
        return qs
    return qs.filter(
        or_(
            func.lower(Client.first_name).contains(q_norm),
            func.lower(Client.last_name).contains(q_norm),
            func.lower(func.coalesce(Client.company_name, "")).contains(q_norm),
            func.lower(func.coalesce(Client.email, "")).contains(q_norm),
            func.lower(func.coalesce(Client.phone, "")).contains(q_norm),
        )
    )


def serialize_client(c: Client) -> ClientOut:
    return ClientOut.model_validate({
        "id": c.id,
        "tenant_id": c.tenant_id,
        "first_name": c.first_name,
        "last_name": c.last_name,
        "company_name": c.company_name,
        "email": c.email,
        "phone": c.phone,
        "address": c.address,
        "notes": c.notes,
        "is_active": bool(c.is_active),
        "portal_access": bool(c.portal_access),
        "vehicle_count": len(c.vehicles or []),
        "created_at": c.created_at,
    })


def _email_taken(db: Session, tenant_id: int, email: Optional[str], exclude_id: Optional[int] = None) -> bool:
    if not email:
        return False
    qs = db.query(Client).filter(Client.tenant_id == tenant_id, func.lower(Client.email) == email.lower())
    if exclude_id:
        qs = qs.filter(Client.id != exclude_id)
    return qs.first() is not None


# ---------- Endpoints ----------

@router.get("/", response_model=ClientsListOut, summary="List Clients")
def list_clients(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, description="Search name/company/email/phone"),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT, JOB_MANAGEMENT])),
):
    qs = db.query(Client).filter(Client.tenant_id == current.tenant_id)
    qs = _apply_search(qs, q)
    if active_only:
        qs = qs.filter(Client.is_active.is_(True))

    page_data = paginate(qs.order_by(Client.first_name.asc(), Client.last_name.asc()), page, size)
    return ClientsListOut(meta=page_data["meta"], items=[serialize_client(c) for c in page_data["rows"]])


@router.post("/", response_model=ClientOut, status_code=status.HTTP_201_CREATED, summary="Create Client")
def create_client(
    body: ClientCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT])),
):
    if _email_taken(db, current.tenant_id, body.email):
        raise HTTPException(status_code=409, detail="A client with this email already exists")

    data = body.model_dump()
    if data.get("email"):
        data["email"] = data["email"].lower()
    client = Client(tenant_id=current.tenant_id, **data)
    db.add(client)
    db.flush()
    log_activity(db, current.tenant_id, current.id, "client", client.id, "created", new_values=data)
    db.commit()
    db.refresh(client)
    return serialize_client(client)


@router.get("/{client_id}", response_model=ClientOut, summary="Get Client")
def get_client(
    client_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT, JOB_MANAGEMENT])),
):
    return serialize_client(get_tenant_row(db, Client, client_id, current.tenant_id, "Client"))


@router.patch("/{client_id}", response_model=ClientOut, summary="Update Client (partial)")
def update_client(
    client_id: int,
    body: ClientUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT])),
):
    client = get_tenant_row(db, Client, client_id, current.tenant_id, "Client")
    data = body.model_dump(exclude_unset=True)
    if data.get("email"):
        data["email"] = data["email"].lower()
        if _email_taken(db, current.tenant_id, data["email"], exclude_id=client.id):
            raise HTTPException(status_code=409, detail="A client with this email already exists")

    old: Dict[str, Any] = {k: getattr(client, k) for k in data}
    for k, v in data.items():
        setattr(client, k, v)

    log_activity(db, current.tenant_id, current.id, "client", client.id, "updated", old_values=old, new_values=data)
    db.commit()
    db.refresh(client)
    return serialize_client(client)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Client")
def delete_client(
    client_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT])),
):
    client = get_tenant_row(db, Client, client_id, current.tenant_id, "Client")
    has_jobs = db.query(Job.id).filter(Job.tenant_id == current.tenant_id, Job.client_id == client.id).first()
    if has_jobs:
        raise HTTPException(status_code=409, detail="Client has jobs; deactivate instead")

    db.delete(client)
    log_activity(db, current.tenant_id, current.id, "client", client_id, "deleted")
    db.commit()
    return None


@router.post("/{client_id}/portal-access", response_model=ClientOut, summary="Enable client portal access")
def enable_portal_access(
    client_id: int,
    body: PortalAccessIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT])),
):
    client = get_tenant_row(db, Client, client_id, current.tenant_id, "Client")
    if not client.email:
        raise HTTPException(status_code=400, detail="Client needs an email address for portal access")

    client.portal_access = True
    client.portal_password_hash = hash_password(body.password)
    log_activity(db, current.tenant_id, current.id, "client", client.id, "portal_access_enabled")
    db.commit()
    db.refresh(client)
    return serialize_client(client)


@router.delete("/{client_id}/portal-access", response_model=ClientOut, summary="Revoke client portal access")
def revoke_portal_access(
    client_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT])),
):
    client = get_tenant_row(db, Client, client_id, current.tenant_id, "Client")
    client.portal_access = False
    client.portal_password_hash = None
    log_activity(db, current.tenant_id, current.id, "client", client.id, "portal_access_revoked")
    db.commit()
    db.refresh(client)
    return serialize_client(client)
