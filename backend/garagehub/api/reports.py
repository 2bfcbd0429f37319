# backend/garagehub/api/reports.py
from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import and_, func, or_, true
from sqlalchemy.orm import Session

from ..core.permissions import ADVANCED_REPORTING, BASIC_REPORTING, REPORTING
from ..core.timeutil import month_start, today, utcnow
from ..models import Invoice, Job, JobStatus, User
from ..services.pricing import ZERO, money
from .deps import CurrentUser, get_db, require_permissions

router = APIRouter(prefix="/reports", tags=["reports"])

REPORT_PERMS = [REPORTING, BASIC_REPORTING, ADVANCED_REPORTING]

# Statuses counted as "on the workshop floor"
ACTIVE_STATUS_NAMES = ("In Progress", "Awaiting Parts", "Ready for Collection")
CLOSED_INVOICE_STATUSES = ("paid", "cancelled")


# ---------- Schemas ----------

class DashboardOut(BaseModel):
    current_month_revenue: Decimal
    active_jobs_count: int
    completed_jobs_count: int
    overdue_jobs_count: int
    overdue_payments_count: int


class RevenueBucket(BaseModel):
    month: str  # YYYY-MM
    invoiced: Decimal
    paid: Decimal
    outstanding: Decimal
    invoice_count: int


class RevenueOut(BaseModel):
    start: date
    end: date
    total_invoiced: Decimal
    total_paid: Decimal
    total_outstanding: Decimal
    months: List[RevenueBucket]


class JobMetricsOut(BaseModel):
    start: date
    end: date
    total_jobs: int
    completed_jobs: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    average_completion_days: Optional[float] = None


class TechnicianRow(BaseModel):
    technician_id: int
    name: str
    assigned_jobs: int
    completed_jobs: int
    actual_hours: Decimal


class OverdueJobRow(BaseModel):
    id: int
    job_number: str
    title: str
    status: Optional[str] = None
    estimated_completion: Optional[datetime] = None
    client_name: Optional[str] = None


class OverduePaymentRow(BaseModel):
    id: int
    invoice_number: str
    total_amount: Decimal
    amount_due: Decimal
    due_date: date
    status: str
    client_name: Optional[str] = None


class OverdueOut(BaseModel):
    overdue_jobs: List[OverdueJobRow]
    overdue_payments: List[OverduePaymentRow]


# ---------- small utils ----------

def _range(start: Optional[date], end: Optional[date]) -> Tuple[date, date]:
    end = end or today()
    start = start or (end - timedelta(days=30))
    if end < start:
        raise HTTPException(400, "end < start")
    return start, end


def _bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    # inclusive date range -> [start 00:00, end+1 00:00)
    return datetime.combine(start, datetime.min.time()), datetime.combine(end + timedelta(days=1), datetime.min.time())


def _ym_key(d) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def _final_status_ids(db: Session, tenant_id: int) -> List[int]:
    return [
        sid for (sid,) in db.query(JobStatus.id)
        .filter(JobStatus.tenant_id == tenant_id, JobStatus.is_final.is_(True))
        .all()
    ]


def _open_jobs_filter(final_ids: List[int]):
    if not final_ids:
        return true()
    return or_(Job.status_id.is_(None), Job.status_id.notin_(final_ids))


def _overdue_jobs_query(db: Session, tenant_id: int):
    final_ids = _final_status_ids(db, tenant_id)
    return db.query(Job).filter(
        Job.tenant_id == tenant_id,
        Job.estimated_completion.isnot(None),
        Job.estimated_completion < utcnow(),
        _open_jobs_filter(final_ids),
    )


def _overdue_invoices_query(db: Session, tenant_id: int):
    return db.query(Invoice).filter(
        Invoice.tenant_id == tenant_id,
        Invoice.due_date < today(),
        Invoice.status.notin_(CLOSED_INVOICE_STATUSES),
    )


# ---------- Endpoints ----------

@router.get("/dashboard", response_model=DashboardOut)
def dashboard(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(REPORT_PERMS)),
):
    tid = current.tenant_id
    now = utcnow()
    first_of_month = month_start(now)

    revenue = (
        db.query(func.coalesce(func.sum(Invoice.total_amount), 0))
        .filter(Invoice.tenant_id == tid, Invoice.status == "paid", Invoice.created_at >= first_of_month)
        .scalar()
    )

    active_jobs = (
        db.query(func.count(Job.id))
        .join(JobStatus, JobStatus.id == Job.status_id)
        .filter(Job.tenant_id == tid, JobStatus.name.in_(ACTIVE_STATUS_NAMES))
        .scalar()
    )
    completed_jobs = (
        db.query(func.count(Job.id))
        .filter(Job.tenant_id == tid, Job.completed_at.isnot(None), Job.completed_at >= first_of_month)
        .scalar()
    )

    return DashboardOut(
        current_month_revenue=money(revenue),
        active_jobs_count=active_jobs or 0,
        completed_jobs_count=completed_jobs or 0,
        overdue_jobs_count=_overdue_jobs_query(db, tid).count(),
        overdue_payments_count=_overdue_invoices_query(db, tid).count(),
    )


@router.get("/revenue", response_model=RevenueOut)
def revenue_report(
    start: Optional[date] = Query(None, description="Defaults to 30 days before end"),
    end: Optional[date] = Query(None, description="Defaults to today"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(REPORT_PERMS)),
):
    """Invoices issued in [start, end], bucketed by issue month. Cancelled invoices are left out."""
    start, end = _range(start, end)
    rows = (
        db.query(Invoice)
        .filter(
            Invoice.tenant_id == current.tenant_id,
            and_(Invoice.issue_date >= start, Invoice.issue_date <= end),
            Invoice.status != "cancelled",
        )
        .order_by(Invoice.issue_date.asc())
        .all()
    )

    buckets: "OrderedDict[str, Dict[str, object]]" = OrderedDict()
    for inv in rows:
        b = buckets.setdefault(
            _ym_key(inv.issue_date),
            {"invoiced": ZERO, "paid": ZERO, "outstanding": ZERO, "invoice_count": 0},
        )
        b["invoiced"] += money(inv.total_amount)
        b["paid"] += money(inv.amount_paid)
        b["outstanding"] += money(inv.amount_due)
        b["invoice_count"] += 1

    months = [RevenueBucket(month=k, **v) for k, v in buckets.items()]
    return RevenueOut(
        start=start,
        end=end,
        total_invoiced=sum((m.invoiced for m in months), ZERO),
        total_paid=sum((m.paid for m in months), ZERO),
        total_outstanding=sum((m.outstanding for m in months), ZERO),
        months=months,
    )


@router.get("/jobs", response_model=JobMetricsOut)
def job_metrics(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(REPORT_PERMS)),
):
    start, end = _range(start, end)
    lo, hi = _bounds(start, end)
    jobs = (
        db.query(Job)
        .filter(Job.tenant_id == current.tenant_id, Job.created_at >= lo, Job.created_at < hi)
        .all()
    )

    by_status: Dict[str, int] = {}
    by_priority: Dict[str, int] = {}
    durations: List[float] = []
    for j in jobs:
        name = j.status.name if j.status else "Unassigned"
        by_status[name] = by_status.get(name, 0) + 1
        by_priority[j.priority] = by_priority.get(j.priority, 0) + 1
        if j.completed_at and j.created_at:
            durations.append((j.completed_at - j.created_at).total_seconds() / 86400.0)

    return JobMetricsOut(
        start=start,
        end=end,
        total_jobs=len(jobs),
        completed_jobs=len(durations),
        by_status=by_status,
        by_priority=by_priority,
        average_completion_days=round(sum(durations) / len(durations), 2) if durations else None,
    )


@router.get("/technicians", response_model=List[TechnicianRow])
def technician_productivity(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(REPORT_PERMS)),
):
    start, end = _range(start, end)
    lo, hi = _bounds(start, end)
    jobs = (
        db.query(Job)
        .filter(
            Job.tenant_id == current.tenant_id,
            Job.assigned_technician_id.isnot(None),
            Job.created_at >= lo,
            Job.created_at < hi,
        )
        .all()
    )

    per_tech: Dict[int, Dict[str, object]] = {}
    for j in jobs:
        row = per_tech.setdefault(
            j.assigned_technician_id,
            {"assigned_jobs": 0, "completed_jobs": 0, "actual_hours": ZERO},
        )
        row["assigned_jobs"] += 1
        if j.completed_at:
            row["completed_jobs"] += 1
        row["actual_hours"] += Decimal(str(j.actual_hours or 0))

    if not per_tech:
        return []
    users = {u.id: u for u in db.query(User).filter(User.id.in_(list(per_tech))).all()}
    out = [
        TechnicianRow(
            technician_id=uid,
            name=users[uid].full_name if uid in users else f"User {uid}",
            **stats,
        )
        for uid, stats in per_tech.items()
    ]
    out.sort(key=lambda r: (-r.completed_jobs, -r.assigned_jobs, r.name))
    return out


@router.get("/overdue", response_model=OverdueOut)
def overdue_report(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(REPORT_PERMS)),
):
    jobs = _overdue_jobs_query(db, current.tenant_id).order_by(Job.estimated_completion.asc()).all()
    invoices = _overdue_invoices_query(db, current.tenant_id).order_by(Invoice.due_date.asc()).all()
    return OverdueOut(
        overdue_jobs=[
            OverdueJobRow(
                id=j.id,
                job_number=j.job_number,
                title=j.title,
                status=j.status.name if j.status else None,
                estimated_completion=j.estimated_completion,
                client_name=j.client.full_name if j.client else None,
            )
            for j in jobs
        ],
        overdue_payments=[
            OverduePaymentRow(
                id=i.id,
                invoice_number=i.invoice_number,
                total_amount=i.total_amount,
                amount_due=i.amount_due,
                due_date=i.due_date,
                status=i.status,
                client_name=i.client.full_name if i.client else None,
            )
            for i in invoices
        ],
    )
