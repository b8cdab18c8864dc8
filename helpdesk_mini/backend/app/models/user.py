# helpdesk_mini/backend/app/models/user.py
from sqlalchemy import Column, Integer, String

from .. import utils
from ..db import Base, UTCDateTime


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    # Never serialized; see schemas.user.UserRead
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")

    created_at = Column(UTCDateTime, nullable=False, default=utils.utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
