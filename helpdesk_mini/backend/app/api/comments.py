# helpdesk_mini/backend/app/api/comments.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.user import User
from ..schemas.comment import CommentCreate, CommentEnvelope, CommentList, CommentRead
from ..services import comments, tickets
from ..services.ratelimit import rate_limited_user

router = APIRouter(prefix="/tickets", tags=["comments"])


@router.post(
    "/{ticket_id}/comments",
    response_model=CommentEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    ticket_id: int,
    payload: CommentCreate,
    current_user: User = Depends(rate_limited_user),
    db: Session = Depends(get_db),
):
    comment = comments.add_comment(
        db,
        ticket_id=ticket_id,
        author=current_user,
        text=payload.text,
        parent_id=payload.parent_id,
    )
    return CommentEnvelope(
        message="Comment added successfully",
        comment=CommentRead.model_validate(comment),
    )


@router.get("/{ticket_id}/comments", response_model=CommentList)
def list_comments(
    ticket_id: int,
    current_user: User = Depends(rate_limited_user),
    db: Session = Depends(get_db),
):
    ticket = tickets.get_visible_ticket(db, current_user, ticket_id)
    return CommentList(
        comments=[CommentRead.model_validate(c) for c in comments.list_comments(db, ticket.id)]
    )
