# helpdesk_mini/backend/app/models/comment.py

from sqlalchemy import Column, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from .. import utils
from ..db import Base, UTCDateTime


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    text = Column(Text, nullable=False)
    # Threading: parent must live on the same ticket
    parent_id = Column(Integer, ForeignKey("comments.id"), nullable=True, index=True)

    created_at = Column(UTCDateTime, nullable=False, default=utils.utcnow)

    author = relationship("User")

    __table_args__ = (Index("ix_comments_ticket_created", "ticket_id", "created_at"),)
