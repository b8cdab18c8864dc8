# helpdesk_mini/backend/app/schemas/user.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from .common import blank_to_none


class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[str] = None

    @field_validator("username", "email", "password", "role", mode="before")
    @classmethod
    def blank_strings_to_none(cls, value):
        return blank_to_none(value)


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email", "password", mode="before")
    @classmethod
    def blank_strings_to_none(cls, value):
        return blank_to_none(value)


class UserSummary(BaseModel):
    id: int
    username: str
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class UserRead(UserSummary):
    created_at: datetime


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserRead
