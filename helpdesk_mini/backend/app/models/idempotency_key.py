# helpdesk_mini/backend/app/models/idempotency_key.py
from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, String, UniqueConstraint

from ..db import Base, UTCDateTime


class IdempotencyKey(Base):
    """
    Response recorded for a (client key, user) pair on ticket creation.
    Rows older than IDEMPOTENCY_TTL_SECONDS are treated as absent and purged
    lazily by services.idempotency.
    """
    __tablename__ = "idempotency_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    response = Column(JSON, nullable=False)
    status_code = Column(Integer, nullable=False, default=201)

    created_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("key", "user_id", name="uq_idempotency_key_user"),
        Index("ix_idempotency_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<IdempotencyKey(id={self.id}, key='{self.key}', user_id={self.user_id})>"
