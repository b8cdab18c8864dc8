# helpdesk_mini/backend/app/api/tickets.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..constants import MAX_INTEGER
from ..db import get_db
from ..models.user import User
from ..schemas.comment import CommentRead
from ..schemas.ticket import (
    TicketCreate,
    TicketDetail,
    TicketEnvelope,
    TicketPage,
    TicketRead,
    TicketUpdate,
)
from ..services import comments, idempotency, tickets
from ..services.ratelimit import rate_limited_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])


def _raw_json(content, status_code: int, response: Response) -> JSONResponse:
    # Raw responses skip FastAPI's header merge; carry the rate limit headers over
    headers = {
        name: value
        for name, value in response.headers.items()
        if name.lower().startswith("x-ratelimit-")
    }
    return JSONResponse(content=content, status_code=status_code, headers=headers)


@router.post(
    "",
    response_model=TicketEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def create_ticket(
    payload: TicketCreate,
    response: Response,
    idempotency_key: Optional[str] = Header(None, alias=idempotency.HEADER_NAME),
    current_user: User = Depends(rate_limited_user),
    db: Session = Depends(get_db),
):
    """
    Create a ticket. With an Idempotency-Key header, a retry from the same
    user within the retention window gets the original 201 body back
    verbatim instead of a second ticket.
    """
    key = idempotency.normalize_key(idempotency_key)

    if key:
        cached = idempotency.lookup(db, key, current_user.id)
        if cached is not None:
            logger.info("Replaying idempotent create for user id=%s", current_user.id)
            return _raw_json(cached.response, cached.status_code, response)

    ticket = tickets.create_ticket(
        db,
        creator=current_user,
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
        commit=False,
    )
    body = jsonable_encoder(
        TicketEnvelope(
            message="Ticket created successfully",
            ticket=TicketRead.model_validate(ticket),
        )
    )

    if key:
        try:
            idempotency.record(db, key, current_user.id, body, status.HTTP_201_CREATED)
        except IntegrityError:
            # A concurrent request with the same key committed first
            db.rollback()
            cached = idempotency.lookup(db, key, current_user.id)
            if cached is None:
                raise
            logger.info("Idempotency race lost for user id=%s, replaying", current_user.id)
            return _raw_json(cached.response, cached.status_code, response)

    db.commit()
    return _raw_json(body, status.HTTP_201_CREATED, response)


@router.get("", response_model=TicketPage)
def list_tickets(
    q: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0, le=MAX_INTEGER),
    current_user: User = Depends(rate_limited_user),
    db: Session = Depends(get_db),
):
    items, next_offset = tickets.list_tickets(
        db,
        viewer=current_user,
        q=q,
        status=status_filter,
        priority=priority,
        limit=limit,
        offset=offset,
    )
    return TicketPage(
        items=[TicketRead.model_validate(t) for t in items],
        next_offset=next_offset,
        total_returned=len(items),
    )


@router.get("/{ticket_id}", response_model=TicketDetail)
def get_ticket(
    ticket_id: int,
    current_user: User = Depends(rate_limited_user),
    db: Session = Depends(get_db),
):
    ticket = tickets.get_visible_ticket(db, current_user, ticket_id)
    thread = comments.list_comments(db, ticket.id)
    return TicketDetail(
        ticket=TicketRead.model_validate(ticket),
        comments=[CommentRead.model_validate(c) for c in thread],
    )


@router.patch("/{ticket_id}", response_model=TicketEnvelope)
def update_ticket(
    ticket_id: int,
    payload: TicketUpdate,
    current_user: User = Depends(rate_limited_user),
    db: Session = Depends(get_db),
):
    """
    Optimistic-locked update. `version` must equal the stored version;
    otherwise 409 VERSION_CONFLICT with current_version and nothing changes.
    """
    patch = payload.model_dump(exclude_unset=True)
    expected_version = patch.pop("version", None)

    ticket = tickets.update_ticket(
        db,
        actor=current_user,
        ticket_id=ticket_id,
        expected_version=expected_version,
        patch=patch,
    )
    return TicketEnvelope(
        message="Ticket updated successfully",
        ticket=TicketRead.model_validate(ticket),
    )
