# helpdesk_mini/backend/app/models/ticket.py

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .. import utils
from ..db import Base, UTCDateTime


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)

    status = Column(String(20), nullable=False, default="open")
    priority = Column(String(20), nullable=False, default="medium")

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Optimistic lock: bumped by exactly one on every successful update
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)
    due_at = Column(UTCDateTime, nullable=False)

    creator = relationship("User", foreign_keys=[created_by])
    assignee = relationship("User", foreign_keys=[assigned_to])

    __table_args__ = (Index("ix_tickets_created_at", "created_at"),)

    @property
    def is_sla_breached(self) -> bool:
        # Computed on read, never stored
        return self.status != "resolved" and utils.utcnow() > self.due_at
