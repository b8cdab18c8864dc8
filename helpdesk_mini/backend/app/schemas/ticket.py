# helpdesk_mini/backend/app/schemas/ticket.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .comment import CommentRead
from .common import blank_to_none
from .user import UserSummary


class TicketCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None

    @field_validator("title", "description", "priority", mode="before")
    @classmethod
    def blank_strings_to_none(cls, value):
        return blank_to_none(value)


class TicketUpdate(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[int] = None
    # Optimistic lock: the version the caller last read
    version: Optional[int] = None


class TicketRead(BaseModel):
    id: int
    title: str
    description: str
    status: str
    priority: str

    # Resolved by lookup when the record is serialized
    created_by: UserSummary = Field(validation_alias="creator")
    assigned_to: Optional[UserSummary] = Field(default=None, validation_alias="assignee")

    version: int
    created_at: datetime
    updated_at: datetime
    due_at: datetime
    is_sla_breached: bool

    model_config = ConfigDict(from_attributes=True)


class TicketEnvelope(BaseModel):
    message: str
    ticket: TicketRead


class TicketDetail(BaseModel):
    ticket: TicketRead
    comments: List[CommentRead]


class TicketPage(BaseModel):
    items: List[TicketRead]
    next_offset: Optional[int] = None
    total_returned: int
