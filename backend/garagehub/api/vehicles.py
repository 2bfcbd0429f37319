# backend/garagehub/api/vehicles.py

from typing import Optional, List
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, constr
from sqlalchemy.orm import Session
from sqlalchemy import or_, func

from ..core.permissions import CLIENT_MANAGEMENT, JOB_MANAGEMENT, JOB_VIEW
from ..models import Client, Job, Vehicle
from ..services.activity import log_activity
from .common import PageMeta, get_tenant_row, paginate
from .deps import get_db, CurrentUser, require_permissions

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


class VehicleBase(BaseModel):
    make: constr(strip_whitespace=True, min_length=1)
    model: constr(strip_whitespace=True, min_length=1)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    color: Optional[str] = None
    mileage: Optional[int] = Field(None, ge=0)
    fleet_number: Optional[str] = None


class VehicleCreate(VehicleBase):
    client_id: int


class VehicleUpdate(BaseModel):
    make: Optional[constr(strip_whitespace=True, min_length=1)] = None
    model: Optional[constr(strip_whitespace=True, min_length=1)] = None
    year: Optional[int] = Field(None, ge=1900, le=2100)
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    color: Optional[str] = None
    mileage: Optional[int] = Field(None, ge=0)
    fleet_number: Optional[str] = None


class VehicleOut(VehicleBase):
    id: int
    tenant_id: int
    client_id: int
    client_name: Optional[str] = None
    created_at: Optional[datetime] = None


class VehiclesListOut(BaseModel):
    meta: PageMeta
    items: List[VehicleOut]


def serialize_vehicle(v: Vehicle) -> VehicleOut:
    return VehicleOut.model_validate({
        "id": v.id,
        "tenant_id": v.tenant_id,
        "client_id": v.client_id,
        "client_name": v.client.full_name if v.client else None,
        "make": v.make,
        "model": v.model,
        "year": v.year,
        "license_plate": v.license_plate,
        "vin": v.vin,
        "color": v.color,
        "mileage": v.mileage,
        "fleet_number": v.fleet_number,
        "created_at": v.created_at,
    })


@router.get("/", response_model=VehiclesListOut, summary="List Vehicles")
def list_vehicles(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, description="Search make/model/plate/VIN/fleet number"),
    client_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT, JOB_MANAGEMENT, JOB_VIEW])),
):
    qs = db.query(Vehicle).filter(Vehicle.tenant_id == current.tenant_id)
    if client_id:
        qs = qs.filter(Vehicle.client_id == client_id)
    if q and q.strip():
        like = q.strip().lower()
        qs = qs.filter(
            or_(
                func.lower(Vehicle.make).contains(like),
                func.lower(Vehicle.model).contains(like),
                func.lower(func.coalesce(Vehicle.license_plate, "")).contains(like),
                func.lower(func.coalesce(Vehicle.vin, "")).contains(like),
                func.lower(func.coalesce(Vehicle.fleet_number, "")).contains(like),
            )
        )

    page_data = paginate(qs.order_by(Vehicle.id.desc()), page, size)
    return VehiclesListOut(meta=page_data["meta"], items=[serialize_vehicle(v) for v in page_data["rows"]])


@router.post("/", response_model=VehicleOut, status_code=status.HTTP_201_CREATED, summary="Create Vehicle")
def create_vehicle(
    body: VehicleCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT])),
):
    get_tenant_row(db, Client, body.client_id, current.tenant_id, "Client")

    vehicle = Vehicle(tenant_id=current.tenant_id, **body.model_dump())
    db.add(vehicle)
    db.flush()
    log_activity(db, current.tenant_id, current.id, "vehicle", vehicle.id, "created", new_values=body.model_dump())
    db.commit()
    db.refresh(vehicle)
    return serialize_vehicle(vehicle)


@router.get("/{vehicle_id}", response_model=VehicleOut, summary="Get Vehicle")
def get_vehicle(
    vehicle_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT, JOB_MANAGEMENT, JOB_VIEW])),
):
    return serialize_vehicle(get_tenant_row(db, Vehicle, vehicle_id, current.tenant_id, "Vehicle"))


@router.patch("/{vehicle_id}", response_model=VehicleOut, summary="Update Vehicle (partial)")
def update_vehicle(
    vehicle_id: int,
    body: VehicleUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT])),
):
    vehicle = get_tenant_row(db, Vehicle, vehicle_id, current.tenant_id, "Vehicle")
    data = body.model_dump(exclude_unset=True)
    old = {k: getattr(vehicle, k) for k in data}
    for k, v in data.items():
        setattr(vehicle, k, v)

    log_activity(db, current.tenant_id, current.id, "vehicle", vehicle.id, "updated", old_values=old, new_values=data)
    db.commit()
    db.refresh(vehicle)
    return serialize_vehicle(vehicle)


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Vehicle")
def delete_vehicle(
    vehicle_id: int,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([CLIENT_MANAGEMENT])),
):
    vehicle = get_tenant_row(db, Vehicle, vehicle_id, current.tenant_id, "Vehicle")
    if db.query(Job.id).filter(Job.tenant_id == current.tenant_id, Job.vehicle_id == vehicle.id).first():
        raise HTTPException(status_code=409, detail="Vehicle has jobs and cannot be deleted")

    db.delete(vehicle)
    log_activity(db, current.tenant_id, current.id, "vehicle", vehicle_id, "deleted")
    db.commit()
    return None
