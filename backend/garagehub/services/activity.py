import logging
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ..models import ActivityLog

logger = logging.getLogger(__name__)


def _json_safe(values: Any) -> Any:
    if values is None:
        return None
    # Decimal / date values are not JSON-native
    return jsonable_encoder(values)


def log_activity(
    db: Session,
    tenant_id: int,
    user_id: Optional[int],
    entity_type: str,
    entity_id: int,
    action: str,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
) -> ActivityLog:
    """Append an audit row. Caller commits."""
    row = ActivityLog(
        tenant_id=tenant_id,
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_values=_json_safe(old_values),
        new_values=_json_safe(new_values),
    )
    db.add(row)
    logger.debug("activity %s:%s %s (tenant=%s user=%s)", entity_type, entity_id, action, tenant_id, user_id)
    return row
