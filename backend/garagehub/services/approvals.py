from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..core.timeutil import utcnow
from ..models import Job, Quote
from .activity import log_activity


def approve_quote(
    db: Session,
    quote: Quote,
    signature: Optional[str],
    client_ip: Optional[str] = None,
    user_id: Optional[int] = None,
) -> Quote:
    """
    Client sign-off: flags the quote approved with signature + timestamp and
    marks the related job's quote as approved. Caller commits.
    """
    signature = (signature or "").strip()
    if not signature:
        raise HTTPException(status_code=400, detail="Quote ID and signature are required")

    now = utcnow()
    quote.status = "approved"
    quote.client_approved = True
    quote.client_approved_at = now
    quote.client_signature = signature
    quote.client_ip_address = client_ip
    quote.rejection_reason = None

    job = db.get(Job, quote.job_id) if quote.job_id else None
    if job is not None:
        job.quote_approved = True
        job.quote_approved_at = now

    log_activity(
        db, quote.tenant_id, user_id, "quote", quote.id, "approved",
        new_values={"client_approved": True, "client_ip_address": client_ip},
    )
    return quote
