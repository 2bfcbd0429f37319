# backend/garagehub/api/inventory.py

from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, constr
from sqlalchemy.orm import Session
from sqlalchemy import or_, func

from ..core.permissions import INVENTORY_MANAGEMENT, JOB_MANAGEMENT, JOB_UPDATE, PARTS_USAGE
from ..models import InventoryMovement, InventoryPart, JobPartsAllocation
from ..services.activity import log_activity
from ..services.stock import (
    MOVEMENT_IN,
    PartRequest,
    PartUsage,
    adjust_stock,
    allocate_parts,
    record_movement,
    record_parts_usage,
)
from .common import PageMeta, get_tenant_row, paginate
from .deps import get_db, CurrentUser, require_permissions
from .jobs import get_job

router = APIRouter(prefix="/inventory", tags=["inventory"])

Condition = Literal["new", "used", "refurbished"]

READ_PERMS = [INVENTORY_MANAGEMENT, PARTS_USAGE, JOB_MANAGEMENT]
USAGE_PERMS = [INVENTORY_MANAGEMENT, PARTS_USAGE, JOB_UPDATE, JOB_MANAGEMENT]


# ---------- Schemas ----------

class PartBase(BaseModel):
    part_number: constr(strip_whitespace=True, min_length=1)
    name: constr(strip_whitespace=True, min_length=1)
    description: Optional[str] = None
    category: constr(strip_whitespace=True, min_length=1)
    condition: Condition = "new"
    cost_price: Decimal = Field(Decimal("0"), ge=0)
    selling_price: Decimal = Field(Decimal("0"), ge=0)
    minimum_stock: int = Field(0, ge=0)
    location: Optional[str] = None


class PartCreate(PartBase):
    current_stock: int = Field(0, ge=0)


class PartUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    description: Optional[str] = None
    category: Optional[constr(strip_whitespace=True, min_length=1)] = None
    condition: Optional[Condition] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)
    location: Optional[str] = None


class PartOut(PartBase):
    id: int
    tenant_id: int
    current_stock: int
    reserved_stock: int
    available_stock: int
    is_low_stock: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PartsListOut(BaseModel):
    meta: PageMeta
    items: List[PartOut]


class StockAdjustIn(BaseModel):
    new_stock: int = Field(..., ge=0)
    reason: constr(strip_whitespace=True, min_length=1)


class MovementOut(BaseModel):
    id: int
    part_id: int
    part_name: Optional[str] = None
    movement_type: str
    quantity: int
    reason: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None


class MovementsListOut(BaseModel):
    meta: PageMeta
    items: List[MovementOut]


class AllocationLine(BaseModel):
    part_id: int
    quantity: int = Field(..., gt=0)


class AllocateIn(BaseModel):
    parts: List[AllocationLine] = []


class UsageLine(BaseModel):
    part_id: int
    quantity_used: int = Field(..., ge=0)
    notes: Optional[str] = None


class UsageIn(BaseModel):
    parts: List[UsageLine] = []


class AllocationOut(BaseModel):
    id: int
    job_id: int
    part_id: int
    part_number: Optional[str] = None
    part_name: Optional[str] = None
    quantity_allocated: int
    quantity_used: Optional[int] = None
    allocated_by: Optional[int] = None
    used_by: Optional[int] = None
    used_at: Optional[datetime] = None
    usage_notes: Optional[str] = None
    created_at: Optional[datetime] = None


# ---------- Helpers ----------

def serialize_movement(m: InventoryMovement) -> MovementOut:
    return MovementOut(
        id=m.id,
        part_id=m.part_id,
        part_name=m.part.name if m.part else None,
        movement_type=m.movement_type,
        quantity=m.quantity,
        reason=m.reason,
        reference_type=m.reference_type,
        reference_id=m.reference_id,
        user_id=m.user_id,
        created_at=m.created_at,
    )


def serialize_allocation(a: JobPartsAllocation) -> AllocationOut:
    return AllocationOut(
        id=a.id,
        job_id=a.job_id,
        part_id=a.part_id,
        part_number=a.part.part_number if a.part else None,
        part_name=a.part.name if a.part else None,
        quantity_allocated=a.quantity_allocated,
        quantity_used=a.quantity_used,
        allocated_by=a.allocated_by,
        used_by=a.used_by,
        used_at=a.used_at,
        usage_notes=a.usage_notes,
        created_at=a.created_at,
    )


def _part_number_taken(db: Session, tenant_id: int, part_number: str) -> bool:
    return (
        db.query(InventoryPart.id)
        .filter(InventoryPart.tenant_id == tenant_id, func.lower(InventoryPart.part_number) == part_number.lower())
        .first()
        is not None
    )


# ---------- Parts ----------

@router.get("/parts", response_model=PartsListOut, summary="List Parts")
def list_parts(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Search name/part number/description"),
    category: Optional[str] = None,
    low_stock: bool = Query(False, description="Only parts at or below minimum stock"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    qs = db.query(InventoryPart).filter(InventoryPart.tenant_id == current.tenant_id)
    if search and search.strip():
        like = search.strip().lower()
        qs = qs.filter(
            or_(
                func.lower(InventoryPart.name).contains(like),
                func.lower(InventoryPart.part_number).contains(like),
                func.lower(func.coalesce(InventoryPart.description, "")).contains(like),
            )
        )
    if category:
        qs = qs.filter(InventoryPart.category == category)
    if low_stock:
        qs = qs.filter(InventoryPart.current_stock <= InventoryPart.minimum_stock)

    page_data = paginate(qs.order_by(InventoryPart.name.asc()), page, size)
    return PartsListOut(meta=page_data["meta"], items=[PartOut.model_validate(p) for p in page_data["rows"]])


@router.post("/parts", response_model=PartOut, status_code=status.HTTP_201_CREATED, summary="Create Part")
def create_part(
    body: PartCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([INVENTORY_MANAGEMENT])),
):
    if _part_number_taken(db, current.tenant_id, body.part_number):
        raise HTTPException(status_code=409, detail="Part number already exists")

    part = InventoryPart(tenant_id=current.tenant_id, reserved_stock=0, **body.model_dump())
    db.add(part)
    db.flush()
    if part.current_stock:
        record_movement(
            db, current.tenant_id, part, MOVEMENT_IN, part.current_stock,
            reason="Initial stock", user_id=current.id, reference_type="adjustment",
        )
    log_activity(db, current.tenant_id, current.id, "inventory_part", part.id, "created", new_values=body.model_dump())
    db.commit()
    db.refresh(part)
    return PartOut.model_validate(part)


@router.get("/parts/{part_id}", response_model=PartOut, summary="Get Part")
def get_part(
    part_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(READ_PERMS)),
):
    return PartOut.model_validate(get_tenant_row(db, InventoryPart, part_id, current.tenant_id, "Part"))


@router.patch("/parts/{part_id}", response_model=PartOut, summary="Update Part (partial)")
def update_part(
    part_id: int,
    body: PartUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([INVENTORY_MANAGEMENT])),
):
    part = get_tenant_row(db, InventoryPart, part_id, current.tenant_id, "Part")
    data = body.model_dump(exclude_unset=True)
    old = {k: getattr(part, k) for k in data}
    for k, v in data.items():
        setattr(part, k, v)

    log_activity(db, current.tenant_id, current.id, "inventory_part", part.id, "updated", old_values=old, new_values=data)
    db.commit()
    db.refresh(part)
    return PartOut.model_validate(part)


@router.post("/parts/{part_id}/stock", response_model=PartOut, summary="Set absolute stock level")
def set_part_stock(
    part_id: int,
    body: StockAdjustIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([INVENTORY_MANAGEMENT])),
):
    part = get_tenant_row(db, InventoryPart, part_id, current.tenant_id, "Part")
    adjust_stock(db, current.tenant_id, current.id, part, body.new_stock, body.reason)
    db.commit()
    db.refresh(part)
    return PartOut.model_validate(part)


@router.get("/movements", response_model=MovementsListOut, summary="Stock movement ledger")
def list_movements(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    part_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([INVENTORY_MANAGEMENT])),
):
    qs = db.query(InventoryMovement).filter(InventoryMovement.tenant_id == current.tenant_id)
    if part_id:
        qs = qs.filter(InventoryMovement.part_id == part_id)
    page_data = paginate(qs.order_by(InventoryMovement.id.desc()), page, size)
    return MovementsListOut(meta=page_data["meta"], items=[serialize_movement(m) for m in page_data["rows"]])


# ---------- Job allocations ----------

@router.get("/jobs/{job_id}/allocations", response_model=List[AllocationOut], summary="Parts allocated to a job")
def list_job_allocations(
    job_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(USAGE_PERMS)),
):
    job = get_job(db, job_id, current.tenant_id)
    rows = (
        db.query(JobPartsAllocation)
        .filter(JobPartsAllocation.tenant_id == current.tenant_id, JobPartsAllocation.job_id == job.id)
        .order_by(JobPartsAllocation.id.asc())
        .all()
    )
    return [serialize_allocation(a) for a in rows]


@router.post(
    "/jobs/{job_id}/allocations",
    response_model=List[AllocationOut],
    status_code=status.HTTP_201_CREATED,
    summary="Reserve parts for a job",
)
def allocate_job_parts(
    job_id: int,
    body: AllocateIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([INVENTORY_MANAGEMENT, JOB_MANAGEMENT])),
):
    job = get_job(db, job_id, current.tenant_id)
    allocations = allocate_parts(
        db, current.tenant_id, current.id, job,
        [PartRequest(part_id=p.part_id, quantity=p.quantity) for p in body.parts],
    )
    db.commit()
    for a in allocations:
        db.refresh(a)
    return [serialize_allocation(a) for a in allocations]


@router.post("/jobs/{job_id}/usage", response_model=List[AllocationOut], summary="Record parts used on a job")
def record_job_usage(
    job_id: int,
    body: UsageIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions(USAGE_PERMS)),
):
    job = get_job(db, job_id, current.tenant_id)
    touched = record_parts_usage(
        db, current.tenant_id, current.id, job,
        [PartUsage(part_id=u.part_id, quantity_used=u.quantity_used, notes=u.notes) for u in body.parts],
    )
    db.commit()
    for a in touched:
        db.refresh(a)
    return [serialize_allocation(a) for a in touched]
