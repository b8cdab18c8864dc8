# helpdesk_mini/backend/app/schemas/comment.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .common import blank_to_none
from .user import UserSummary


class CommentCreate(BaseModel):
    text: Optional[str] = None
    parent_id: Optional[int] = None

    @field_validator("text", mode="before")
    @classmethod
    def blank_strings_to_none(cls, value):
        return blank_to_none(value)


class CommentRead(BaseModel):
    id: int
    ticket_id: int
    author: UserSummary
    text: str
    parent_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentEnvelope(BaseModel):
    message: str
    comment: CommentRead


class CommentList(BaseModel):
    comments: List[CommentRead]
