from typing import Any, List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.permissions import REPORTING, TENANT_MANAGEMENT
from ..models import ActivityLog
from .common import PageMeta, paginate
from .deps import CurrentUser, get_db, require_permissions

router = APIRouter(prefix="/activity", tags=["activity"])


class ActivityOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    entity_type: str
    entity_id: int
    action: str
    old_values: Optional[Any] = None
    new_values: Optional[Any] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivityListOut(BaseModel):
    meta: PageMeta
    items: List[ActivityOut]


@router.get("/", response_model=ActivityListOut)
def list_activity(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([REPORTING, TENANT_MANAGEMENT])),
):
    qs = db.query(ActivityLog).filter(ActivityLog.tenant_id == current.tenant_id)
    if entity_type:
        qs = qs.filter(ActivityLog.entity_type == entity_type)
    if entity_id:
        qs = qs.filter(ActivityLog.entity_id == entity_id)

    page_data = paginate(qs.order_by(ActivityLog.id.desc()), page, size)
    return ActivityListOut(
        meta=page_data["meta"],
        items=[ActivityOut.model_validate(a) for a in page_data["rows"]],
    )
