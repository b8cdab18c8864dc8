# helpdesk_mini/backend/app/models/__init__.py

from .user import User
from .ticket import Ticket
from .comment import Comment
from .idempotency_key import IdempotencyKey

__all__ = ["User", "Ticket", "Comment", "IdempotencyKey"]
