from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def month_start(ref: datetime) -> datetime:
    return ref.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Zoned datetimes are converted to UTC and stripped; naive ones are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
