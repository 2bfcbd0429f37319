# backend/garagehub/services/stock.py
"""
Stock reservation and consumption against jobs.

Allocating reserves stock (reserved_stock grows, available stock shrinks).
Recording usage sets the total used on the job's allocation; the change from
the previously recorded total decrements current_stock (never below zero),
releases the matching part of the reservation and appends an "out" (or, for
a lowered count, "in") movement referencing the job. Nothing here commits;
the request handler owns the transaction.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ..core.timeutil import utcnow
from ..models import InventoryMovement, InventoryPart, Job, JobPartsAllocation
from .activity import log_activity

logger = logging.getLogger(__name__)

MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"


@dataclass
class PartRequest:
    part_id: int
    quantity: int


@dataclass
class PartUsage:
    part_id: int
    quantity_used: int
    notes: Optional[str] = None


def _get_part(db: Session, tenant_id: int, part_id: int) -> Optional[InventoryPart]:
    return (
        db.query(InventoryPart)
        .filter(InventoryPart.id == part_id, InventoryPart.tenant_id == tenant_id)
        .first()
    )


def record_movement(
    db: Session,
    tenant_id: int,
    part: InventoryPart,
    movement_type: str,
    quantity: int,
    reason: Optional[str],
    user_id: Optional[int],
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
) -> InventoryMovement:
    mv = InventoryMovement(
        tenant_id=tenant_id,
        part_id=part.id,
        movement_type=movement_type,
        quantity=quantity,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        user_id=user_id,
    )
    db.add(mv)
    return mv


def allocate_parts(
    db: Session,
    tenant_id: int,
    user_id: int,
    job: Job,
    parts: List[PartRequest],
) -> List[JobPartsAllocation]:
    if not parts:
        raise HTTPException(status_code=400, detail="At least one part is required")

    # Sum duplicates so two lines for the same part are checked together
    wanted: Dict[int, int] = {}
    for p in parts:
        wanted[p.part_id] = wanted.get(p.part_id, 0) + int(p.quantity)

    # Check everything before touching anything
    resolved: Dict[int, InventoryPart] = {}
    for part_id, qty in wanted.items():
        part = _get_part(db, tenant_id, part_id)
        if not part or part.available_stock < qty:
            name = part.name if part else "part"
            raise HTTPException(status_code=400, detail=f"Insufficient stock for {name}")
        resolved[part_id] = part

    allocations: List[JobPartsAllocation] = []
    for p in parts:
        part = resolved[p.part_id]
        alloc = JobPartsAllocation(
            tenant_id=tenant_id,
            job_id=job.id,
            part_id=part.id,
            quantity_allocated=int(p.quantity),
            allocated_by=user_id,
        )
        db.add(alloc)
        part.reserved_stock = (part.reserved_stock or 0) + int(p.quantity)
        allocations.append(alloc)

    db.flush()
    log_activity(
        db, tenant_id, user_id, "job", job.id, "parts_allocated",
        new_values={"parts": [{"part_id": p.part_id, "quantity": p.quantity} for p in parts]},
    )
    logger.info("Allocated %d part line(s) to job %s", len(allocations), job.id)
    return allocations


def record_parts_usage(
    db: Session,
    tenant_id: int,
    user_id: int,
    job: Job,
    used: List[PartUsage],
) -> List[JobPartsAllocation]:
    if not used:
        raise HTTPException(status_code=400, detail="Please specify usage quantities")

    now = utcnow()
    touched: List[JobPartsAllocation] = []
    for u in used:
        part = _get_part(db, tenant_id, u.part_id)
        if not part:
            raise HTTPException(status_code=404, detail="Part not found")

        alloc = (
            db.query(JobPartsAllocation)
            .filter(
                JobPartsAllocation.tenant_id == tenant_id,
                JobPartsAllocation.job_id == job.id,
                JobPartsAllocation.part_id == part.id,
            )
            .order_by(JobPartsAllocation.id.asc())
            .first()
        )
        if not alloc:
            # Unplanned usage: record it against a zero allocation
            alloc = JobPartsAllocation(
                tenant_id=tenant_id,
                job_id=job.id,
                part_id=part.id,
                quantity_allocated=0,
                allocated_by=user_id,
            )
            db.add(alloc)

        qty = int(u.quantity_used)
        prev_used = alloc.quantity_used or 0
        allocated = alloc.quantity_allocated or 0
        # quantity_used is the running total for this allocation; only the change moves stock
        delta = qty - prev_used
        released = min(qty, allocated) - min(prev_used, allocated)

        alloc.quantity_used = qty
        alloc.usage_notes = u.notes
        alloc.used_at = now
        alloc.used_by = user_id

        part.current_stock = max(0, (part.current_stock or 0) - delta)
        part.reserved_stock = max(0, (part.reserved_stock or 0) - released)

        if delta:
            record_movement(
                db, tenant_id, part,
                MOVEMENT_OUT if delta > 0 else MOVEMENT_IN,
                abs(delta),
                reason=f"Used on job {job.job_number}" if delta > 0 else f"Returned from job {job.job_number}",
                user_id=user_id,
                reference_type="job",
                reference_id=job.id,
            )
        touched.append(alloc)

    db.flush()
    log_activity(
        db, tenant_id, user_id, "job", job.id, "parts_used",
        new_values={"parts": [{"part_id": u.part_id, "quantity_used": u.quantity_used} for u in used]},
    )
    return touched


def adjust_stock(
    db: Session,
    tenant_id: int,
    user_id: int,
    part: InventoryPart,
    new_stock: int,
    reason: str,
) -> Optional[InventoryMovement]:
    """Set absolute stock; the delta goes to the movement ledger."""
    old_stock = part.current_stock or 0
    change = int(new_stock) - old_stock
    part.current_stock = int(new_stock)
    if change == 0:
        return None

    mv = record_movement(
        db, tenant_id, part,
        MOVEMENT_IN if change > 0 else MOVEMENT_OUT,
        abs(change),
        reason=reason,
        user_id=user_id,
        reference_type="adjustment",
    )
    log_activity(
        db, tenant_id, user_id, "inventory_part", part.id, "stock_adjusted",
        old_values={"current_stock": old_stock},
        new_values={"current_stock": part.current_stock, "reason": reason},
    )
    return mv
