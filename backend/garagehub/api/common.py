# backend/garagehub/api/common.py
from typing import Any, Dict, List, Type, TypeVar

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class PageMeta(BaseModel):
    total: int
    page: int
    size: int
    pages: int


def paginate(qs: Query, page: int, size: int) -> Dict[str, Any]:
    total = qs.count()
    rows: List[Any] = qs.offset((page - 1) * size).limit(size).all()
    meta = PageMeta(total=total, page=page, size=size, pages=max(1, (total + size - 1) // size))
    return {"meta": meta, "rows": rows}


def get_tenant_row(db: Session, model: Type[T], row_id: int, tenant_id: int, label: str) -> T:
    """Fetch a row by id inside the caller's tenant or 404."""
    row = (
        db.query(model)
        .filter(model.id == row_id, model.tenant_id == tenant_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return row
