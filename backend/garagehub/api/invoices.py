# backend/garagehub/api/invoices.py
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..core.permissions import FINANCIAL_MANAGEMENT, FINANCIAL_VIEW, INVOICING
from ..core.timeutil import today
from ..models import Invoice, InvoiceItem, Quote
from ..services.activity import log_activity
from ..services.numbering import INVOICE_PREFIX, generate_number
from ..services.pricing import apply_payment, due_date_for, money
from ..services.system_config import get_invoice_due_days
from .common import PageMeta, get_tenant_row, paginate
from .deps import CurrentUser, get_db, require_permissions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["invoices"])

READ_PERMS = [INVOICING, FINANCIAL_VIEW, FINANCIAL_MANAGEMENT]
WRITE_PERMS = [INVOICING, FINANCIAL_MANAGEMENT]

InvoiceStatus = Literal["draft", "sent", "partial", "paid", "overdue", "cancelled"]
CLOSED_STATUSES = ("paid", "cancelled")


# ---------- Schemas ----------

class InvoiceItemOut(BaseModel):
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


class InvoiceOut(BaseModel):
    id: int
    tenant_id: int
    job_id: Optional[int] = None
    quote_id: Optional[int] = None
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    invoice_number: str
    title: str
    status: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    issue_date: date
    due_date: date
    paid_date: Optional[date] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[InvoiceItemOut] = []


class InvoicesListOut(BaseModel):
    meta: PageMeta
    items: List[InvoiceOut]


class FromQuoteIn(BaseModel):
    issue_date: Optional[date] = None
    due_days: Optional[int] = Field(None, ge=0, le=365, description="Defaults to the tenant setting")


class PaymentIn(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_date: Optional[date] = None


class MarkOverdueOut(BaseModel):
    updated: int


# ---------- Helpers ----------

def serialize_invoice(inv: Invoice, with_items: bool = True) -> InvoiceOut:
    return InvoiceOut.model_validate({
        "id": inv.id,
        "tenant_id": inv.tenant_id,
        "job_id": inv.job_id,
        "quote_id": inv.quote_id,
        "client_id": inv.client_id,
        "client_name": inv.client.full_name if inv.client else None,
        "invoice_number": inv.invoice_number,
        "title": inv.title,
        "status": inv.status,
        "subtotal": inv.subtotal,
        "tax_rate": inv.tax_rate,
        "tax_amount": inv.tax_amount,
        "total_amount": inv.total_amount,
        "amount_paid": inv.amount_paid,
        "amount_due": inv.amount_due,
        "issue_date": inv.issue_date,
        "due_date": inv.due_date,
        "paid_date": inv.paid_date,
        "payment_method": inv.payment_method,
        "payment_reference": inv.payment_reference,
        "terms_and_conditions": inv.terms_and_conditions,
        "created_at": inv.created_at,
        "items": [InvoiceItemOut.model_validate(i) for i in inv.items] if with_items else [],
    })


def get_invoice(db: Session, invoice_id: int, tenant_id: int) -> Invoice:
    return get_tenant_row(db, Invoice, invoice_id, tenant_id, "Invoice")


# ---------- Endpoints ----------

@router.get("/", response_model=InvoicesListOut)
def list_invoices(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    client_id: Optional[int] = Query(None, ge=1),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    qs = db.query(Invoice).filter(Invoice.tenant_id == current.tenant_id)
    if status_filter:
        qs = qs.filter(Invoice.status == status_filter)
    if client_id:
        qs = qs.filter(Invoice.client_id == client_id)
    if search and search.strip():
        like = f"%{search.strip().lower()}%"
        qs = qs.filter(or_(func.lower(Invoice.title).like(like), func.lower(Invoice.invoice_number).like(like)))

    page_data = paginate(qs.order_by(Invoice.issue_date.desc(), Invoice.id.desc()), page, size)
    return InvoicesListOut(
        meta=page_data["meta"],
        items=[serialize_invoice(i, with_items=False) for i in page_data["rows"]],
    )


@router.post("/from-quote/{quote_id}", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
def create_invoice_from_quote(
    quote_id: int,
    body: Optional[FromQuoteIn] = None,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    body = body or FromQuoteIn()
    quote = get_tenant_row(db, Quote, quote_id, current.tenant_id, "Quote")
    if quote.status != "approved":
        raise HTTPException(status_code=400, detail="Only approved quotes can be invoiced")
    if db.query(Invoice.id).filter(Invoice.quote_id == quote.id).first():
        raise HTTPException(status_code=409, detail="An invoice already exists for this quote")

    issue = body.issue_date or today()
    due_days = body.due_days if body.due_days is not None else get_invoice_due_days(db, current.tenant_id)
    total = money(quote.total_amount)

    invoice = Invoice(
        tenant_id=current.tenant_id,
        job_id=quote.job_id,
        quote_id=quote.id,
        client_id=quote.job.client_id if quote.job else None,
        invoice_number=generate_number(INVOICE_PREFIX),
        title=quote.title,
        status="draft",
        subtotal=quote.subtotal,
        tax_rate=quote.tax_rate,
        tax_amount=quote.tax_amount,
        total_amount=total,
        amount_paid=Decimal("0"),
        amount_due=total,
        issue_date=issue,
        due_date=due_date_for(issue, due_days),
        terms_and_conditions=quote.terms_and_conditions,
        created_by=current.id,
    )
    for qi in quote.items:
        invoice.items.append(InvoiceItem(
            part_id=qi.part_id,
            item_type=qi.item_type,
            description=qi.description,
            quantity=qi.quantity,
            unit_price=qi.unit_price,
            total_price=qi.total_price,
            hours=qi.hours,
            hourly_rate=qi.hourly_rate,
            order_index=qi.order_index,
        ))
    db.add(invoice)
    db.flush()

    log_activity(
        db, current.tenant_id, current.id, "invoice", invoice.id, "created",
        new_values={"invoice_number": invoice.invoice_number, "quote_id": quote.id, "total_amount": total},
    )
    db.commit()
    db.refresh(invoice)
    logger.info("Invoice %s created from quote %s", invoice.invoice_number, quote.quote_number)
    return serialize_invoice(invoice)


@router.post("/mark-overdue", response_model=MarkOverdueOut)
def mark_overdue_invoices(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    """Flags every open invoice past its due date as overdue."""
    rows = (
        db.query(Invoice)
        .filter(
            Invoice.tenant_id == current.tenant_id,
            Invoice.due_date < today(),
            Invoice.status.notin_(CLOSED_STATUSES + ("overdue",)),
        )
        .all()
    )
    for inv in rows:
        old_status = inv.status
        inv.status = "overdue"
        log_activity(
            db, current.tenant_id, current.id, "invoice", inv.id, "marked_overdue",
            old_values={"status": old_status}, new_values={"status": "overdue"},
        )
    db.commit()
    return MarkOverdueOut(updated=len(rows))


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice_detail(
    invoice_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    return serialize_invoice(get_invoice(db, invoice_id, current.tenant_id))


@router.post("/{invoice_id}/payments", response_model=InvoiceOut)
def record_payment(
    invoice_id: int,
    body: PaymentIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    invoice = get_invoice(db, invoice_id, current.tenant_id)
    if invoice.status == "cancelled":
        raise HTTPException(status_code=400, detail="Cannot record a payment on a cancelled invoice")

    old = {"status": invoice.status, "amount_paid": invoice.amount_paid, "amount_due": invoice.amount_due}
    new_paid, amount_due, is_paid = apply_payment(invoice.total_amount, invoice.amount_paid, body.amount)

    invoice.amount_paid = new_paid
    invoice.amount_due = amount_due
    invoice.status = "paid" if is_paid else "partial"
    if is_paid:
        invoice.paid_date = body.payment_date or today()
    if body.payment_method:
        invoice.payment_method = body.payment_method
    if body.payment_reference:
        invoice.payment_reference = body.payment_reference

    log_activity(
        db, current.tenant_id, current.id, "invoice", invoice.id, "payment_recorded",
        old_values=old,
        new_values={
            "amount": body.amount,
            "status": invoice.status,
            "amount_paid": new_paid,
            "amount_due": amount_due,
            "payment_method": body.payment_method,
        },
    )
    db.commit()
    db.refresh(invoice)
    return serialize_invoice(invoice)


@router.post("/{invoice_id}/send", response_model=InvoiceOut)
def send_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    invoice = get_invoice(db, invoice_id, current.tenant_id)
    if invoice.status in CLOSED_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invoice is already {invoice.status}")

    old_status = invoice.status
    invoice.status = "sent"
    log_activity(
        db, current.tenant_id, current.id, "invoice", invoice.id, "sent",
        old_values={"status": old_status}, new_values={"status": "sent"},
    )
    db.commit()
    db.refresh(invoice)
    return serialize_invoice(invoice)


@router.post("/{invoice_id}/cancel", response_model=InvoiceOut)
def cancel_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    invoice = get_invoice(db, invoice_id, current.tenant_id)
    if invoice.status == "paid":
        raise HTTPException(status_code=400, detail="Paid invoices cannot be cancelled")

    old_status = invoice.status
    invoice.status = "cancelled"
    log_activity(
        db, current.tenant_id, current.id, "invoice", invoice.id, "cancelled",
        old_values={"status": old_status}, new_values={"status": "cancelled"},
    )
    db.commit()
    db.refresh(invoice)
    return serialize_invoice(invoice)
