# backend/garagehub/api/client_portal.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.security import create_client_token, verify_password
from ..models import Client, Invoice, Job, Quote, Tenant
from ..services.approvals import approve_quote
from .deps import CurrentClient, get_current_client, get_db
from .invoices import InvoiceOut, serialize_invoice
from .jobs import JobOut, serialize_job
from .quotes import QuoteOut, serialize_quote

router = APIRouter(prefix="/portal", tags=["client-portal"])


# ---------------------------
# Schemas
# ---------------------------
class PortalLoginIn(BaseModel):
    tenant_slug: str
    email: EmailStr
    password: str


class PortalTokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    client_id: int


class PortalMeOut(BaseModel):
    id: int
    tenant_id: int
    first_name: str
    last_name: str
    company_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class PortalApproveIn(BaseModel):
    signature: Optional[str] = None


# ---------------------------
# Helpers
# ---------------------------
def _client_job_ids(current: CurrentClient):
    return select(Job.id).where(Job.tenant_id == current.tenant_id, Job.client_id == current.id)


def _portal_job(job: Job) -> JobOut:
    # Workshop notes stay internal
    return serialize_job(job).model_copy(update={"internal_notes": None})


# ---------------------------
# Endpoints
# ---------------------------
@router.post("/login", response_model=PortalTokenOut)
def portal_login(body: PortalLoginIn, db: Session = Depends(get_db)):
    tenant = db.query(Tenant).filter(Tenant.slug == body.tenant_slug).first()
    if not tenant or tenant.status != "active":
        raise HTTPException(status_code=400, detail="Tenant not found")

    client = (
        db.query(Client)
        .filter(
            Client.tenant_id == tenant.id,
            func.lower(Client.email) == body.email.lower(),
            Client.portal_access.is_(True),
            Client.is_active.is_(True),
        )
        .first()
    )
    if not client or not verify_password(body.password, client.portal_password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return PortalTokenOut(access_token=create_client_token(client.id, tenant.id), client_id=client.id)


@router.get("/me", response_model=PortalMeOut)
def portal_me(db: Session = Depends(get_db), current: CurrentClient = Depends(get_current_client)):
    client = db.get(Client, current.id)
    return PortalMeOut(
        id=client.id,
        tenant_id=client.tenant_id,
        first_name=client.first_name,
        last_name=client.last_name,
        company_name=client.company_name,
        email=client.email,
        phone=client.phone,
    )


@router.get("/jobs", response_model=List[JobOut])
def portal_jobs(db: Session = Depends(get_db), current: CurrentClient = Depends(get_current_client)):
    rows = (
        db.query(Job)
        .filter(Job.tenant_id == current.tenant_id, Job.client_id == current.id)
        .order_by(Job.created_at.desc(), Job.id.desc())
        .all()
    )
    return [_portal_job(j) for j in rows]


@router.get("/quotes", response_model=List[QuoteOut])
def portal_quotes(db: Session = Depends(get_db), current: CurrentClient = Depends(get_current_client)):
    """Quotes on the client's jobs that have left draft."""
    rows = (
        db.query(Quote)
        .filter(
            Quote.tenant_id == current.tenant_id,
            Quote.job_id.in_(_client_job_ids(current)),
            Quote.status != "draft",
        )
        .order_by(Quote.created_at.desc(), Quote.id.desc())
        .all()
    )
    return [serialize_quote(q) for q in rows]


@router.get("/invoices", response_model=List[InvoiceOut])
def portal_invoices(db: Session = Depends(get_db), current: CurrentClient = Depends(get_current_client)):
    rows = (
        db.query(Invoice)
        .filter(
            Invoice.tenant_id == current.tenant_id,
            Invoice.client_id == current.id,
            Invoice.status != "draft",
        )
        .order_by(Invoice.issue_date.desc(), Invoice.id.desc())
        .all()
    )
    return [serialize_invoice(i) for i in rows]


@router.post("/quotes/{quote_id}/approve", response_model=QuoteOut)
def portal_approve_quote(
    quote_id: int,
    body: PortalApproveIn,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentClient = Depends(get_current_client),
):
    quote = (
        db.query(Quote)
        .filter(
            Quote.id == quote_id,
            Quote.tenant_id == current.tenant_id,
            Quote.job_id.in_(_client_job_ids(current)),
        )
        .first()
    )
    if not quote:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quote not found")

    client_ip = request.client.host if request.client else None
    approve_quote(db, quote, body.signature, client_ip=client_ip)
    db.commit()
    db.refresh(quote)
    return serialize_quote(quote)
