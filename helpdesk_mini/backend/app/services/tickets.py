# helpdesk_mini/backend/app/services/tickets.py
"""
Ticket store.

Every mutation goes through `update_ticket`, which applies the patch with a
single conditional UPDATE (... WHERE id = :id AND version = :expected).
Either the row matched and the version moved forward by exactly one, or
nothing was written and the caller gets VersionConflict with the version
that is actually stored. The store never merges concurrent patches and never
retries on the caller's behalf.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from .. import utils
from ..constants import (
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    DESCRIPTION_MAX_LENGTH,
    STAFF_ROLES,
    TICKET_PRIORITIES,
    TICKET_STATUSES,
    TITLE_MAX_LENGTH,
)
from ..errors import (
    FieldRequired,
    PermissionDenied,
    TicketNotFound,
    ValidationFailed,
    VersionConflict,
)
from ..models.comment import Comment
from ..models.ticket import Ticket
from ..models.user import User

logger = logging.getLogger(__name__)

# Fields a PATCH may touch; everything else on a ticket is immutable or derived
UPDATABLE_FIELDS = ("status", "priority", "assigned_to")


def is_staff(user: User) -> bool:
    return user.role in STAFF_ROLES


def validate_priority(value: Optional[str]) -> str:
    if value is None:
        return DEFAULT_PRIORITY
    key = value.strip().lower()
    if key not in TICKET_PRIORITIES:
        raise ValidationFailed(
            f"Invalid priority '{value}'. Allowed: {', '.join(TICKET_PRIORITIES)}",
            field="priority",
        )
    return key


def validate_status(value: str) -> str:
    key = value.strip().lower()
    if key not in TICKET_STATUSES:
        raise ValidationFailed(
            f"Invalid status '{value}'. Allowed: {', '.join(TICKET_STATUSES)}",
            field="status",
        )
    return key


def _required_text(field: str, value: Optional[str], max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise FieldRequired(field)
    if len(text) > max_length:
        raise ValidationFailed(
            f"{field.capitalize()} cannot exceed {max_length} characters",
            field=field,
        )
    return text


def create_ticket(
    db: Session,
    creator: User,
    title: Optional[str],
    description: Optional[str],
    priority: Optional[str] = None,
    commit: bool = True,
) -> Ticket:
    """
    Validate and persist a new ticket.

    With commit=False the ticket is only flushed, so the caller can write
    more rows (the idempotency record) in the same transaction.
    """
    title = _required_text("title", title, TITLE_MAX_LENGTH)
    description = _required_text("description", description, DESCRIPTION_MAX_LENGTH)
    priority = validate_priority(priority)

    now = utils.utcnow()
    ticket = Ticket(
        title=title,
        description=description,
        status=DEFAULT_STATUS,
        priority=priority,
        created_by=creator.id,
        assigned_to=None,
        version=1,
        created_at=now,
        updated_at=now,
        due_at=utils.compute_due_at(now),
    )
    db.add(ticket)
    if commit:
        db.commit()
        db.refresh(ticket)
    else:
        db.flush()

    logger.info(
        "Ticket id=%s created by user id=%s priority=%s",
        ticket.id,
        creator.id,
        ticket.priority,
    )
    return ticket


def get_ticket(db: Session, ticket_id: int) -> Ticket:
    ticket = db.get(Ticket, ticket_id) if utils.fits_integer(ticket_id) else None
    if ticket is None:
        raise TicketNotFound()
    return ticket


def can_view(viewer: User, ticket: Ticket) -> bool:
    return is_staff(viewer) or ticket.created_by == viewer.id


def get_visible_ticket(db: Session, viewer: User, ticket_id: int) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    if not can_view(viewer, ticket):
        raise PermissionDenied("You can only view your own tickets")
    return ticket


def list_tickets(
    db: Session,
    viewer: User,
    q: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
) -> Tuple[List[Ticket], Optional[int]]:
    """
    One page of tickets, newest first.

    Returns (items, next_offset); next_offset is None on the last page.
    """
    query = db.query(Ticket)

    if not is_staff(viewer):
        query = query.filter(Ticket.created_by == viewer.id)

    if status:
        query = query.filter(Ticket.status == validate_status(status))

    if priority:
        query = query.filter(Ticket.priority == validate_priority(priority))

    if q and q.strip():
        pattern = utils.like_pattern(q.strip())
        commented = select(Comment.ticket_id).where(
            Comment.text.ilike(pattern, escape="\\")
        )
        query = query.filter(
            or_(
                Ticket.title.ilike(pattern, escape="\\"),
                Ticket.description.ilike(pattern, escape="\\"),
                Ticket.id.in_(commented),
            )
        )

    # One extra row tells us whether another page exists
    rows = (
        query.order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .offset(offset)
        .limit(limit + 1)
        .all()
    )
    has_more = len(rows) > limit
    items = rows[:limit]
    next_offset = offset + limit if has_more else None
    return items, next_offset


def _validate_patch(db: Session, patch: Dict[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}

    if patch.get("status") is not None:
        values["status"] = validate_status(patch["status"])

    if patch.get("priority") is not None:
        values["priority"] = validate_priority(patch["priority"])

    if "assigned_to" in patch:
        assignee_id = patch["assigned_to"]
        if assignee_id is not None and (
            not utils.fits_integer(assignee_id) or db.get(User, assignee_id) is None
        ):
            raise ValidationFailed(
                f"User {assignee_id} does not exist", field="assigned_to"
            )
        values["assigned_to"] = assignee_id

    return values


def update_ticket(
    db: Session,
    actor: User,
    ticket_id: int,
    expected_version: Optional[int],
    patch: Dict[str, Any],
) -> Ticket:
    """
    Compare-and-swap update of status / priority / assignee.

    `patch` holds only the fields the caller sent; absent keys are left alone,
    an explicit assigned_to=None unassigns.
    """
    if not is_staff(actor):
        raise PermissionDenied()
    if expected_version is None:
        raise FieldRequired("version")

    current = get_ticket(db, ticket_id)
    if not utils.fits_integer(expected_version):
        raise VersionConflict(current_version=current.version)

    unknown = set(patch) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationFailed(
            f"Field '{sorted(unknown)[0]}' cannot be updated", field=sorted(unknown)[0]
        )

    values = _validate_patch(db, patch)
    values["version"] = Ticket.version + 1
    values["updated_at"] = utils.utcnow()

    matched = (
        db.query(Ticket)
        .filter(Ticket.id == ticket_id, Ticket.version == expected_version)
        .update(values, synchronize_session=False)
    )

    if matched != 1:
        db.rollback()
        current = db.execute(
            select(Ticket.version).where(Ticket.id == ticket_id)
        ).scalar_one_or_none()
        if current is None:
            raise TicketNotFound()
        logger.info(
            "Version conflict on ticket id=%s: expected %s, stored %s",
            ticket_id,
            expected_version,
            current,
        )
        raise VersionConflict(current_version=current)

    db.commit()

    ticket = db.get(Ticket, ticket_id, populate_existing=True)
    logger.info(
        "Ticket id=%s updated by user id=%s to version %s (%s)",
        ticket_id,
        actor.id,
        ticket.version,
        ", ".join(sorted(k for k in patch)) or "no fields",
    )
    return ticket
