# helpdesk_mini/backend/app/services/comments.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import utils
from ..constants import COMMENT_MAX_LENGTH
from ..errors import (
    FieldRequired,
    InvalidParent,
    ParentCommentNotFound,
    PermissionDenied,
    ValidationFailed,
)
from ..models.comment import Comment
from ..models.user import User
from .tickets import get_ticket, is_staff

logger = logging.getLogger(__name__)


def add_comment(
    db: Session,
    ticket_id: int,
    author: User,
    text: Optional[str],
    parent_id: Optional[int] = None,
) -> Comment:
    """
    Append a comment to a ticket's thread. The ticket itself is not touched.
    """
    ticket = get_ticket(db, ticket_id)

    if not is_staff(author) and ticket.created_by != author.id:
        raise PermissionDenied("You can only comment on your own tickets")

    text = (text or "").strip()
    if not text:
        raise FieldRequired("text", "Comment text is required")
    if len(text) > COMMENT_MAX_LENGTH:
        raise ValidationFailed(
            f"Comment cannot exceed {COMMENT_MAX_LENGTH} characters", field="text"
        )

    if parent_id is not None:
        parent = db.get(Comment, parent_id) if utils.fits_integer(parent_id) else None
        if parent is None:
            raise ParentCommentNotFound()
        if parent.ticket_id != ticket.id:
            raise InvalidParent()

    comment = Comment(
        ticket_id=ticket.id,
        author_id=author.id,
        text=text,
        parent_id=parent_id,
        created_at=utils.utcnow(),
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)

    logger.info(
        "Comment id=%s added to ticket id=%s by user id=%s",
        comment.id,
        ticket.id,
        author.id,
    )
    return comment


def list_comments(db: Session, ticket_id: int) -> List[Comment]:
    """Thread of a ticket in insertion order."""
    return (
        db.query(Comment)
        .filter(Comment.ticket_id == ticket_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
