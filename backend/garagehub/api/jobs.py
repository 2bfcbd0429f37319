# backend/garagehub/api/jobs.py

from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from sqlalchemy import or_, func

from ..core.permissions import JOB_APPROVAL, JOB_MANAGEMENT, JOB_UPDATE, JOB_VIEW
from ..core.timeutil import utcnow
from ..models import Client, Job, JobStatus, User, Vehicle
from ..services.activity import log_activity
from ..services.numbering import JOB_PREFIX, generate_number
from ..services.tenants import default_status, ensure_default_statuses
from .common import PageMeta, get_tenant_row, paginate
from .deps import get_db, CurrentUser, require_permissions

router = APIRouter(prefix="/jobs", tags=["jobs"])

Priority = Literal["low", "medium", "high", "urgent"]

READ_PERMS = [JOB_MANAGEMENT, JOB_VIEW]


# ---------------------------
# Schemas
# ---------------------------

class JobCreate(BaseModel):
    client_id: int
    vehicle_id: int
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    priority: Priority = "medium"
    estimated_hours: Optional[Decimal] = Field(None, ge=0)
    scheduled_start_date: Optional[datetime] = None
    estimated_completion: Optional[datetime] = None
    assigned_technician_id: Optional[int] = None


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    priority: Optional[Priority] = None
    estimated_hours: Optional[Decimal] = Field(None, ge=0)
    scheduled_start_date: Optional[datetime] = None
    scheduled_end_date: Optional[datetime] = None
    estimated_completion: Optional[datetime] = None


class StatusChange(BaseModel):
    status_id: int


class AssignIn(BaseModel):
    technician_id: int


class ProgressIn(BaseModel):
    actual_hours: Optional[Decimal] = Field(None, ge=0)
    internal_notes: Optional[str] = None
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None


class StatusOut(BaseModel):
    id: int
    name: str
    color: str
    order_index: int
    is_final: bool

    class Config:
        from_attributes = True


class JobOut(BaseModel):
    id: int
    tenant_id: int
    job_number: str
    title: str
    description: str
    priority: str
    client_id: int
    client_name: Optional[str] = None
    vehicle_id: int
    vehicle_label: Optional[str] = None
    status: Optional[StatusOut] = None
    assigned_technician_id: Optional[int] = None
    assigned_technician_name: Optional[str] = None
    estimated_hours: Optional[Decimal] = None
    actual_hours: Optional[Decimal] = None
    scheduled_start_date: Optional[datetime] = None
    scheduled_end_date: Optional[datetime] = None
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None
    estimated_completion: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    internal_notes: Optional[str] = None
    work_authorized: bool = False
    work_authorized_at: Optional[datetime] = None
    quote_approved: bool = False
    quote_approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobsListOut(BaseModel):
    meta: PageMeta
    items: List[JobOut]


# ---------------------------
# Helpers
# ---------------------------

def _vehicle_label(v: Optional[Vehicle]) -> Optional[str]:
    if not v:
        return None
    label = " ".join(str(p) for p in (v.year, v.make, v.model) if p)
    return f"{label} ({v.license_plate})" if v.license_plate else label


def serialize_job(job: Job) -> JobOut:
    return JobOut.model_validate({
        "id": job.id,
        "tenant_id": job.tenant_id,
        "job_number": job.job_number,
        "title": job.title,
        "description": job.description,
        "priority": job.priority,
        "client_id": job.client_id,
        "client_name": job.client.full_name if job.client else None,
        "vehicle_id": job.vehicle_id,
        "vehicle_label": _vehicle_label(job.vehicle),
        "status": StatusOut.model_validate(job.status) if job.status else None,
        "assigned_technician_id": job.assigned_technician_id,
        "assigned_technician_name": job.assigned_technician.full_name if job.assigned_technician else None,
        "estimated_hours": job.estimated_hours,
        "actual_hours": job.actual_hours,
        "scheduled_start_date": job.scheduled_start_date,
        "scheduled_end_date": job.scheduled_end_date,
        "actual_start_date": job.actual_start_date,
        "actual_end_date": job.actual_end_date,
        "estimated_completion": job.estimated_completion,
        "completed_at": job.completed_at,
        "internal_notes": job.internal_notes,
        "work_authorized": bool(job.work_authorized),
        "work_authorized_at": job.work_authorized_at,
        "quote_approved": bool(job.quote_approved),
        "quote_approved_at": job.quote_approved_at,
        "created_at": job.created_at,
        "updated_at": job.updated_at,
    })


def get_job(db: Session, job_id: int, tenant_id: int) -> Job:
    return get_tenant_row(db, Job, job_id, tenant_id, "Job")


def _ensure_technician(db: Session, tenant_id: int, user_id: int) -> User:
    user = (
        db.query(User)
        .filter(User.id == user_id, User.tenant_id == tenant_id, User.is_active.is_(True))
        .first()
    )
    if not user:
        raise HTTPException(status_code=400, detail="Invalid technician")
    return user


# ---------------------------
# Endpoints
# ---------------------------

@router.get(
    "/statuses",
    response_model=List[StatusOut],
    summary="Job statuses (ordered)",
)
def list_statuses(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    rows = ensure_default_statuses(db, current.tenant_id)
    db.commit()
    return rows


@router.get("/", response_model=JobsListOut, summary="List Jobs")
def list_jobs(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Search title / job number"),
    status_name: Optional[str] = Query(None, alias="status"),
    priority: Optional[Priority] = None,
    technician_id: Optional[int] = Query(None, ge=1),
    client_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    qs = db.query(Job).filter(Job.tenant_id == current.tenant_id)

    if search and search.strip():
        like = f"%{search.strip().lower()}%"
        qs = qs.filter(or_(func.lower(Job.title).like(like), func.lower(Job.job_number).like(like)))
    if status_name:
        qs = qs.join(JobStatus, JobStatus.id == Job.status_id).filter(JobStatus.name == status_name)
    if priority:
        qs = qs.filter(Job.priority == priority)
    if technician_id:
        qs = qs.filter(Job.assigned_technician_id == technician_id)
    if client_id:
        qs = qs.filter(Job.client_id == client_id)

    page_data = paginate(qs.order_by(Job.created_at.desc(), Job.id.desc()), page, size)
    return JobsListOut(meta=page_data["meta"], items=[serialize_job(j) for j in page_data["rows"]])


@router.post("/", response_model=JobOut, status_code=status.HTTP_201_CREATED, summary="Create Job")
def create_job(
    body: JobCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([JOB_MANAGEMENT])),
):
    client = get_tenant_row(db, Client, body.client_id, current.tenant_id, "Client")
    vehicle = get_tenant_row(db, Vehicle, body.vehicle_id, current.tenant_id, "Vehicle")
    if vehicle.client_id != client.id:
        raise HTTPException(status_code=400, detail="Vehicle does not belong to client")
    if body.assigned_technician_id:
        _ensure_technician(db, current.tenant_id, body.assigned_technician_id)

    st = default_status(db, current.tenant_id)
    job = Job(
        tenant_id=current.tenant_id,
        client_id=client.id,
        vehicle_id=vehicle.id,
        job_number=generate_number(JOB_PREFIX),
        title=body.title,
        description=body.description,
        priority=body.priority,
        estimated_hours=body.estimated_hours,
        scheduled_start_date=body.scheduled_start_date,
        estimated_completion=body.estimated_completion,
        assigned_technician_id=body.assigned_technician_id,
        status_id=st.id if st else None,
        created_by=current.id,
    )
    db.add(job)
    db.flush()
    log_activity(
        db, current.tenant_id, current.id, "job", job.id, "created",
        new_values={"job_number": job.job_number, **body.model_dump()},
    )
    db.commit()
    db.refresh(job)
    return serialize_job(job)


@router.get("/{job_id}", response_model=JobOut, summary="Get Job")
def get_job_detail(
    job_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    return serialize_job(get_job(db, job_id, current.tenant_id))


@router.patch("/{job_id}", response_model=JobOut, summary="Update Job (partial)")
def update_job(
    job_id: int,
    body: JobUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([JOB_MANAGEMENT])),
):
    job = get_job(db, job_id, current.tenant_id)
    data = body.model_dump(exclude_unset=True)
    old = {k: getattr(job, k) for k in data}
    for k, v in data.items():
        setattr(job, k, v)

    log_activity(db, current.tenant_id, current.id, "job", job.id, "updated", old_values=old, new_values=data)
    db.commit()
    db.refresh(job)
    return serialize_job(job)


@router.post("/{job_id}/status", response_model=JobOut, summary="Change job status")
def update_job_status(
    job_id: int,
    body: StatusChange,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([JOB_MANAGEMENT, JOB_UPDATE])),
):
    job = get_job(db, job_id, current.tenant_id)
    new_status = (
        db.query(JobStatus)
        .filter(JobStatus.id == body.status_id, JobStatus.tenant_id == current.tenant_id)
        .first()
    )
    if not new_status:
        raise HTTPException(status_code=400, detail="Invalid status_id")

    old_status_id = job.status_id
    job.status_id = new_status.id
    if new_status.is_final and job.completed_at is None:
        job.completed_at = utcnow()
    elif not new_status.is_final:
        job.completed_at = None

    log_activity(
        db, current.tenant_id, current.id, "job", job.id, "status_updated",
        old_values={"status_id": old_status_id},
        new_values={"status_id": new_status.id, "status": new_status.name},
    )
    db.commit()
    db.refresh(job)
    return serialize_job(job)


@router.post("/{job_id}/assign", response_model=JobOut, summary="Assign technician")
def assign_technician(
    job_id: int,
    body: AssignIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([JOB_MANAGEMENT])),
):
    job = get_job(db, job_id, current.tenant_id)
    tech = _ensure_technician(db, current.tenant_id, body.technician_id)

    old = job.assigned_technician_id
    job.assigned_technician_id = tech.id
    log_activity(
        db, current.tenant_id, current.id, "job", job.id, "technician_assigned",
        old_values={"assigned_technician_id": old},
        new_values={"assigned_technician_id": tech.id},
    )
    db.commit()
    db.refresh(job)
    return serialize_job(job)


@router.post("/{job_id}/progress", response_model=JobOut, summary="Record job progress")
def update_job_progress(
    job_id: int,
    body: ProgressIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([JOB_MANAGEMENT, JOB_UPDATE])),
):
    job = get_job(db, job_id, current.tenant_id)
    data = {k: v for k, v in body.model_dump().items() if v is not None}
    if not data:
        raise HTTPException(status_code=400, detail="Nothing to update")

    for k, v in data.items():
        setattr(job, k, v)

    log_activity(db, current.tenant_id, current.id, "job", job.id, "progress_updated", new_values=data)
    db.commit()
    db.refresh(job)
    return serialize_job(job)


@router.post("/{job_id}/authorize-work", response_model=JobOut, summary="Authorize job work")
def authorize_job_work(
    job_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([JOB_APPROVAL, JOB_MANAGEMENT])),
):
    job = get_job(db, job_id, current.tenant_id)
    job.work_authorized = True
    job.work_authorized_at = utcnow()
    job.work_authorized_by = current.id

    log_activity(
        db, current.tenant_id, current.id, "job", job.id, "work_authorized",
        new_values={"work_authorized": True, "work_authorized_by": current.id},
    )
    db.commit()
    db.refresh(job)
    return serialize_job(job)
