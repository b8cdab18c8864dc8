# helpdesk_mini/backend/app/utils.py
from datetime import datetime, timedelta, timezone

from .config import SLA_HOURS
from .constants import MAX_INTEGER


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_due_at(created_at: datetime) -> datetime:
    """SLA deadline, fixed at creation time."""
    return created_at + timedelta(hours=SLA_HOURS)


def like_pattern(query: str) -> str:
    """
    Substring pattern for ILIKE with the wildcards in `query` escaped.
    Use together with escape="\\".
    """
    escaped = (
        query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    return f"%{escaped}%"


def fits_integer(value: int) -> bool:
    """False for ints no INTEGER column can hold; such ids match no row."""
    return -MAX_INTEGER - 1 <= value <= MAX_INTEGER
