# backend/garagehub/api/quotes.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..core.permissions import FINANCIAL_MANAGEMENT, FINANCIAL_VIEW, QUOTE_APPROVAL, QUOTES
from ..models import InventoryPart, Job, Quote, QuoteItem
from ..services.activity import log_activity
from ..services.approvals import approve_quote
from ..services.numbering import QUOTE_PREFIX, generate_number
from ..services.pricing import ITEM_TYPES, LABOR, line_total, recalculate_quote_totals
from ..services.system_config import get_default_tax_rate
from .common import PageMeta, get_tenant_row, paginate
from .deps import CurrentUser, get_db, require_permissions

router = APIRouter(prefix="/quotes", tags=["quotes"])

READ_PERMS = [QUOTES, FINANCIAL_VIEW, FINANCIAL_MANAGEMENT]
WRITE_PERMS = [QUOTES, FINANCIAL_MANAGEMENT]

QuoteStatus = Literal["draft", "sent", "approved", "rejected", "expired"]
ItemType = Literal["labor", "part", "service"]


# ---------------------------
# Schemas
# ---------------------------
class QuoteCreate(BaseModel):
    job_id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    valid_until: Optional[date] = None
    terms_and_conditions: Optional[str] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, description="Defaults to the tenant setting")


class QuoteItemIn(BaseModel):
    item_type: ItemType
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(Decimal("1"), gt=0)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    hours: Optional[Decimal] = Field(None, ge=0)
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    part_id: Optional[int] = None


class QuoteItemOut(BaseModel):
    id: int
    item_type: str
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    hours: Optional[Decimal] = None
    hourly_rate: Optional[Decimal] = None
    part_id: Optional[int] = None
    order_index: int

    class Config:
        from_attributes = True


class QuoteOut(BaseModel):
    id: int
    tenant_id: int
    job_id: int
    job_number: Optional[str] = None
    quote_number: str
    title: str
    description: Optional[str] = None
    status: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    valid_until: Optional[date] = None
    terms_and_conditions: Optional[str] = None
    client_approved: bool
    client_approved_at: Optional[datetime] = None
    client_signature: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[QuoteItemOut] = []


class QuotesListOut(BaseModel):
    meta: PageMeta
    items: List[QuoteOut]


class ApproveIn(BaseModel):
    signature: Optional[str] = None


class RejectIn(BaseModel):
    reason: Optional[str] = None


class StatusIn(BaseModel):
    status: QuoteStatus


# ---------------------------
# Helpers
# ---------------------------
def serialize_quote(q: Quote, with_items: bool = True) -> QuoteOut:
    return QuoteOut.model_validate({
        "id": q.id,
        "tenant_id": q.tenant_id,
        "job_id": q.job_id,
        "job_number": q.job.job_number if q.job else None,
        "quote_number": q.quote_number,
        "title": q.title,
        "description": q.description,
        "status": q.status,
        "subtotal": q.subtotal,
        "tax_rate": q.tax_rate,
        "tax_amount": q.tax_amount,
        "total_amount": q.total_amount,
        "valid_until": q.valid_until,
        "terms_and_conditions": q.terms_and_conditions,
        "client_approved": bool(q.client_approved),
        "client_approved_at": q.client_approved_at,
        "client_signature": q.client_signature,
        "rejection_reason": q.rejection_reason,
        "created_at": q.created_at,
        "updated_at": q.updated_at,
        "items": [QuoteItemOut.model_validate(i) for i in q.items] if with_items else [],
    })


def get_quote(db: Session, quote_id: int, tenant_id: int) -> Quote:
    return get_tenant_row(db, Quote, quote_id, tenant_id, "Quote")


# ---------------------------
# Endpoints
# ---------------------------
@router.get("/", response_model=QuotesListOut)
def list_quotes(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status_filter: Optional[QuoteStatus] = Query(None, alias="status"),
    job_id: Optional[int] = Query(None, ge=1),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    qs = db.query(Quote).filter(Quote.tenant_id == current.tenant_id)
    if status_filter:
        qs = qs.filter(Quote.status == status_filter)
    if job_id:
        qs = qs.filter(Quote.job_id == job_id)
    if search and search.strip():
        like = f"%{search.strip().lower()}%"
        qs = qs.filter(or_(func.lower(Quote.title).like(like), func.lower(Quote.quote_number).like(like)))

    page_data = paginate(qs.order_by(Quote.created_at.desc(), Quote.id.desc()), page, size)
    return QuotesListOut(
        meta=page_data["meta"],
        items=[serialize_quote(q, with_items=False) for q in page_data["rows"]],
    )


@router.post("/", response_model=QuoteOut, status_code=status.HTTP_201_CREATED)
def create_quote(
    body: QuoteCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    job = get_tenant_row(db, Job, body.job_id, current.tenant_id, "Job")
    tax_rate = body.tax_rate if body.tax_rate is not None else Decimal(str(get_default_tax_rate(db, current.tenant_id)))

    quote = Quote(
        tenant_id=current.tenant_id,
        job_id=job.id,
        quote_number=generate_number(QUOTE_PREFIX),
        title=body.title,
        description=body.description,
        status="draft",
        tax_rate=tax_rate,
        subtotal=Decimal("0"),
        tax_amount=Decimal("0"),
        total_amount=Decimal("0"),
        valid_until=body.valid_until,
        terms_and_conditions=body.terms_and_conditions,
        created_by=current.id,
    )
    db.add(quote)
    db.flush()
    log_activity(
        db, current.tenant_id, current.id, "quote", quote.id, "created",
        new_values={"quote_number": quote.quote_number, "job_id": job.id, "title": quote.title, "tax_rate": tax_rate},
    )
    db.commit()
    db.refresh(quote)
    return serialize_quote(quote)


@router.get("/{quote_id}", response_model=QuoteOut)
def get_quote_detail(
    quote_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    return serialize_quote(get_quote(db, quote_id, current.tenant_id))


@router.post("/{quote_id}/items", response_model=QuoteOut, status_code=status.HTTP_201_CREATED)
def add_quote_item(
    quote_id: int,
    body: QuoteItemIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    quote = get_quote(db, quote_id, current.tenant_id)
    if body.item_type not in ITEM_TYPES:
        raise HTTPException(status_code=400, detail="Invalid item type")
    if body.part_id:
        get_tenant_row(db, InventoryPart, body.part_id, current.tenant_id, "Part")

    unit_price, total_price = line_total(
        body.item_type, body.quantity, body.unit_price, body.hours, body.hourly_rate
    )
    is_labor = body.item_type == LABOR
    item = QuoteItem(
        part_id=body.part_id,
        item_type=body.item_type,
        description=body.description,
        quantity=body.quantity,
        unit_price=unit_price,
        total_price=total_price,
        hours=(body.hours or Decimal("0")) if is_labor else None,
        hourly_rate=(body.hourly_rate or Decimal("0")) if is_labor else None,
        order_index=max((i.order_index or 0 for i in quote.items), default=-1) + 1,
    )
    quote.items.append(item)
    recalculate_quote_totals(db, quote)

    log_activity(
        db, current.tenant_id, current.id, "quote", quote.id, "item_added",
        new_values={"item_type": item.item_type, "description": item.description, "total_price": total_price},
    )
    db.commit()
    db.refresh(quote)
    return serialize_quote(quote)


@router.delete("/{quote_id}/items/{item_id}", response_model=QuoteOut)
def remove_quote_item(
    quote_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    quote = get_quote(db, quote_id, current.tenant_id)
    item = db.query(QuoteItem).filter(QuoteItem.id == item_id, QuoteItem.quote_id == quote.id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Quote item not found")

    removed = {"description": item.description, "total_price": item.total_price}
    db.delete(item)
    recalculate_quote_totals(db, quote)

    log_activity(db, current.tenant_id, current.id, "quote", quote.id, "item_removed", old_values=removed)
    db.commit()
    db.refresh(quote)
    return serialize_quote(quote)


@router.post("/{quote_id}/send", response_model=QuoteOut)
def send_quote(
    quote_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    quote = get_quote(db, quote_id, current.tenant_id)
    old_status = quote.status
    quote.status = "sent"
    log_activity(
        db, current.tenant_id, current.id, "quote", quote.id, "sent",
        old_values={"status": old_status}, new_values={"status": "sent"},
    )
    db.commit()
    db.refresh(quote)
    return serialize_quote(quote)


@router.post("/{quote_id}/approve", response_model=QuoteOut)
def approve_quote_on_behalf(
    quote_id: int,
    body: ApproveIn,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([QUOTE_APPROVAL, *WRITE_PERMS])),
):
    """Records the client's signed approval (e.g. signed at the counter)."""
    quote = get_quote(db, quote_id, current.tenant_id)
    client_ip = request.client.host if request.client else None
    approve_quote(db, quote, body.signature, client_ip=client_ip, user_id=current.id)
    db.commit()
    db.refresh(quote)
    return serialize_quote(quote)


@router.post("/{quote_id}/reject", response_model=QuoteOut)
def reject_quote(
    quote_id: int,
    body: RejectIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([QUOTE_APPROVAL, *WRITE_PERMS])),
):
    quote = get_quote(db, quote_id, current.tenant_id)
    old_status = quote.status
    quote.status = "rejected"
    quote.client_approved = False
    quote.rejection_reason = body.reason
    log_activity(
        db, current.tenant_id, current.id, "quote", quote.id, "rejected",
        old_values={"status": old_status}, new_values={"status": "rejected", "reason": body.reason},
    )
    db.commit()
    db.refresh(quote)
    return serialize_quote(quote)


@router.post("/{quote_id}/status", response_model=QuoteOut)
def set_quote_status(
    quote_id: int,
    body: StatusIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    """Sets the status as given. Signed approval goes through /approve."""
    quote = get_quote(db, quote_id, current.tenant_id)
    old_status = quote.status
    quote.status = body.status
    if body.status != "approved":
        quote.client_approved = False
    log_activity(
        db, current.tenant_id, current.id, "quote", quote.id, "status_updated",
        old_values={"status": old_status}, new_values={"status": body.status},
    )
    db.commit()
    db.refresh(quote)
    return serialize_quote(quote)
