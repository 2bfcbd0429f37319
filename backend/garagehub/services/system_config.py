from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models import SystemConfig

DEFAULT_TAX_RATE_KEY = "default_tax_rate"
DEFAULT_INVOICE_DUE_DAYS_KEY = "default_invoice_due_days"

KNOWN_KEYS = (DEFAULT_TAX_RATE_KEY, DEFAULT_INVOICE_DUE_DAYS_KEY)


def get_config_value(db: Session, tenant_id: Optional[int], key: str, default: Optional[str] = None) -> Optional[str]:
    """Tenant row wins over the platform row (tenant_id NULL), which wins over `default`."""
    rows = (
        db.query(SystemConfig)
        .filter(
            SystemConfig.key == key,
            or_(SystemConfig.tenant_id == tenant_id, SystemConfig.tenant_id.is_(None)),
        )
        .all()
    )
    by_scope = {r.tenant_id: r.value for r in rows}
    if tenant_id in by_scope and by_scope[tenant_id] not in (None, ""):
        return by_scope[tenant_id]
    if by_scope.get(None) not in (None, ""):
        return by_scope[None]
    return default


def set_config_value(db: Session, tenant_id: Optional[int], key: str, value: Optional[str]) -> SystemConfig:
    row = (
        db.query(SystemConfig)
        .filter(SystemConfig.tenant_id == tenant_id, SystemConfig.key == key)
        .first()
    )
    if not row:
        row = SystemConfig(tenant_id=tenant_id, key=key)
        db.add(row)
    row.value = value
    return row


def get_default_tax_rate(db: Session, tenant_id: int) -> float:
    raw = get_config_value(db, tenant_id, DEFAULT_TAX_RATE_KEY)
    try:
        return float(raw) if raw is not None else settings.DEFAULT_TAX_RATE
    except ValueError:
        return settings.DEFAULT_TAX_RATE


def get_invoice_due_days(db: Session, tenant_id: int) -> int:
    raw = get_config_value(db, tenant_id, DEFAULT_INVOICE_DUE_DAYS_KEY)
    try:
        return int(raw) if raw is not None else settings.DEFAULT_INVOICE_DUE_DAYS
    except ValueError:
        return settings.DEFAULT_INVOICE_DUE_DAYS
