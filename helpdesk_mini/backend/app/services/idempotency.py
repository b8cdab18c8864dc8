# helpdesk_mini/backend/app/services/idempotency.py
"""
Idempotency ledger for ticket creation.

A record maps (client key, user id) to the exact response body and status
code the first successful request produced. Records count as absent once they
are older than IDEMPOTENCY_TTL_SECONDS; a retry after that creates a new
ticket. The record is written in the same transaction as the ticket, so when
two requests race on one key the unique constraint lets exactly one of them
commit and the other replays the winner.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .. import utils
from ..config import IDEMPOTENCY_TTL_SECONDS
from ..constants import IDEMPOTENCY_KEY_MAX_LENGTH
from ..errors import ValidationFailed
from ..models.idempotency_key import IdempotencyKey

logger = logging.getLogger(__name__)

HEADER_NAME = "Idempotency-Key"


def normalize_key(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    key = raw.strip()
    if not key:
        return None
    if len(key) > IDEMPOTENCY_KEY_MAX_LENGTH:
        raise ValidationFailed(
            f"{HEADER_NAME} cannot exceed {IDEMPOTENCY_KEY_MAX_LENGTH} characters",
            field=HEADER_NAME,
        )
    return key


def _cutoff() -> datetime:
    return utils.utcnow() - timedelta(seconds=IDEMPOTENCY_TTL_SECONDS)


def lookup(db: Session, key: str, user_id: int) -> Optional[IdempotencyKey]:
    """Live record for (key, user), or None."""
    record = (
        db.query(IdempotencyKey)
        .filter(IdempotencyKey.key == key, IdempotencyKey.user_id == user_id)
        .first()
    )
    if record is None or record.created_at <= _cutoff():
        return None
    return record


def purge_expired(db: Session) -> int:
    return (
        db.query(IdempotencyKey)
        .filter(IdempotencyKey.created_at <= _cutoff())
        .delete(synchronize_session=False)
    )


def record(
    db: Session,
    key: str,
    user_id: int,
    response: Dict[str, Any],
    status_code: int = 201,
) -> IdempotencyKey:
    """
    Stage the response for (key, user) in the current transaction.

    Flushes immediately so a duplicate key surfaces as IntegrityError here,
    before the caller commits.
    """
    purged = purge_expired(db)
    if purged:
        logger.debug("Purged %d expired idempotency records", purged)

    entry = IdempotencyKey(
        key=key,
        user_id=user_id,
        response=response,
        status_code=status_code,
        created_at=utils.utcnow(),
    )
    db.add(entry)
    db.flush()
    return entry
