# backend/garagehub/api/calendar.py
from typing import List, Literal, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..core.permissions import JOB_MANAGEMENT, JOB_VIEW, TIME_TRACKING
from ..core.timeutil import to_naive_utc
from ..models import CalendarEvent, Job, User
from ..services.activity import log_activity
from .common import get_tenant_row
from .deps import CurrentUser, get_db, require_permissions

router = APIRouter(prefix="/calendar", tags=["calendar"])

EventType = Literal["appointment", "job", "reminder", "other"]
EventStatus = Literal["scheduled", "completed", "cancelled"]

READ_PERMS = [JOB_MANAGEMENT, JOB_VIEW, TIME_TRACKING]
WRITE_PERMS = [JOB_MANAGEMENT]

# columns that PATCH may change but never clear
NOT_NULL_FIELDS = ("title", "start_time", "end_time", "all_day", "event_type", "status")


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    all_day: bool = False
    event_type: EventType = "appointment"
    job_id: Optional[int] = None
    assigned_user_id: Optional[int] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, v):
        return to_naive_utc(v)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    all_day: Optional[bool] = None
    event_type: Optional[EventType] = None
    status: Optional[EventStatus] = None
    job_id: Optional[int] = None
    assigned_user_id: Optional[int] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, v):
        return to_naive_utc(v)


class EventOut(BaseModel):
    id: int
    tenant_id: int
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    all_day: bool
    event_type: str
    status: str
    job_id: Optional[int] = None
    assigned_user_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def _check_refs(db: Session, tenant_id: int, job_id: Optional[int], user_id: Optional[int]) -> Optional[Job]:
    job = get_tenant_row(db, Job, job_id, tenant_id, "Job") if job_id else None
    if user_id:
        get_tenant_row(db, User, user_id, tenant_id, "User")
    return job


def _sync_job_schedule(event: CalendarEvent, job: Optional[Job]) -> None:
    # Job bookings drive the job's scheduled window
    if job is not None and event.event_type == "job":
        job.scheduled_start_date = event.start_time
        job.scheduled_end_date = event.end_time


@router.get("/events", response_model=List[EventOut])
def list_events(
    start: Optional[datetime] = Query(None, description="Events ending on/after this time"),
    end: Optional[datetime] = Query(None, description="Events starting on/before this time"),
    assigned_user_id: Optional[int] = Query(None, ge=1),
    job_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    qs = db.query(CalendarEvent).filter(CalendarEvent.tenant_id == current.tenant_id)
    if start:
        qs = qs.filter(CalendarEvent.end_time >= to_naive_utc(start))
    if end:
        qs = qs.filter(CalendarEvent.start_time <= to_naive_utc(end))
    if assigned_user_id:
        qs = qs.filter(CalendarEvent.assigned_user_id == assigned_user_id)
    if job_id:
        qs = qs.filter(CalendarEvent.job_id == job_id)
    return qs.order_by(CalendarEvent.start_time.asc()).all()


@router.post("/events", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    body: EventCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    if body.end_time < body.start_time:
        raise HTTPException(status_code=400, detail="end_time must not be before start_time")
    job = _check_refs(db, current.tenant_id, body.job_id, body.assigned_user_id)

    event = CalendarEvent(tenant_id=current.tenant_id, created_by=current.id, status="scheduled", **body.model_dump())
    db.add(event)
    _sync_job_schedule(event, job)
    db.flush()

    log_activity(db, current.tenant_id, current.id, "calendar_event", event.id, "created", new_values=body.model_dump())
    db.commit()
    db.refresh(event)
    return event


@router.get("/events/{event_id}", response_model=EventOut)
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    return get_tenant_row(db, CalendarEvent, event_id, current.tenant_id, "Event")


@router.patch("/events/{event_id}", response_model=EventOut)
def update_event(
    event_id: int,
    body: EventUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    event = get_tenant_row(db, CalendarEvent, event_id, current.tenant_id, "Event")
    data = body.model_dump(exclude_unset=True)
    for k in NOT_NULL_FIELDS:
        if k in data and data[k] is None:
            raise HTTPException(status_code=400, detail=f"{k} cannot be null")

    start = data.get("start_time", event.start_time)
    end = data.get("end_time", event.end_time)
    if end < start:
        raise HTTPException(status_code=400, detail="end_time must not be before start_time")
    job = _check_refs(db, current.tenant_id, data.get("job_id", event.job_id), data.get("assigned_user_id"))

    old = {k: getattr(event, k) for k in data}
    for k, v in data.items():
        setattr(event, k, v)
    _sync_job_schedule(event, job)

    log_activity(db, current.tenant_id, current.id, "calendar_event", event.id, "updated", old_values=old, new_values=data)
    db.commit()
    db.refresh(event)
    return event


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(WRITE_PERMS)),
):
    event = get_tenant_row(db, CalendarEvent, event_id, current.tenant_id, "Event")
    snapshot = {"title": event.title, "start_time": event.start_time, "end_time": event.end_time}
    db.delete(event)
    log_activity(db, current.tenant_id, current.id, "calendar_event", event_id, "deleted", old_values=snapshot)
    db.commit()
    return None
