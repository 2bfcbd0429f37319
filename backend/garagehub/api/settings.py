from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.permissions import SETTINGS
from ..services.activity import log_activity
from ..services.system_config import (
    DEFAULT_INVOICE_DUE_DAYS_KEY,
    DEFAULT_TAX_RATE_KEY,
    get_default_tax_rate,
    get_invoice_due_days,
    set_config_value,
)
from .deps import CurrentUser, get_db, require_permissions

router = APIRouter(prefix="/settings", tags=["settings"])


class TenantSettingsOut(BaseModel):
    default_tax_rate: float
    default_invoice_due_days: int


class TenantSettingsIn(BaseModel):
    default_tax_rate: Optional[float] = Field(None, ge=0, le=100)
    default_invoice_due_days: Optional[int] = Field(None, ge=0, le=365)


def _current(db: Session, tenant_id: int) -> TenantSettingsOut:
    return TenantSettingsOut(
        default_tax_rate=get_default_tax_rate(db, tenant_id),
        default_invoice_due_days=get_invoice_due_days(db, tenant_id),
    )


@router.get("/", response_model=TenantSettingsOut)
def get_settings(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([SETTINGS])),
):
    return _current(db, current.tenant_id)


@router.put("/", response_model=TenantSettingsOut)
def update_settings(
    body: TenantSettingsIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_permissions([SETTINGS])),
):
    before = _current(db, current.tenant_id)
    if body.default_tax_rate is not None:
        set_config_value(db, current.tenant_id, DEFAULT_TAX_RATE_KEY, str(body.default_tax_rate))
    if body.default_invoice_due_days is not None:
        set_config_value(db, current.tenant_id, DEFAULT_INVOICE_DUE_DAYS_KEY, str(body.default_invoice_due_days))
    db.flush()

    after = _current(db, current.tenant_id)
    log_activity(
        db, current.tenant_id, current.id, "tenant", current.tenant_id, "settings_updated",
        old_values=before.model_dump(), new_values=after.model_dump(),
    )
    db.commit()
    return after
