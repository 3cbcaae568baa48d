"""
schemas/user.py
---------------
Pydantic models for User management and responses.

Security note:
  - hashed_password is NEVER included in any response schema.
  - Passwords require min 8 chars and a matching confirmation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.models.client_user import AccessLevel
from app.models.user import UserRole


class ClientAssignment(BaseModel):
    client_id: str
    access_level: AccessLevel = AccessLevel.read


class UserCreate(BaseModel):
    """Used by admins and managers to create a new user."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    password_confirmation: str
    role: UserRole = UserRole.user
    clients: list[ClientAssignment] = []

    @model_validator(mode="after")
    def passwords_match(self) -> "UserCreate":
        if self.password != self.password_confirmation:
            raise ValueError("password confirmation does not match")
        return self


class UserUpdate(BaseModel):
    """Admin edit. Omitted fields stay unchanged; `clients`, when sent, replaces all grants."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    role: Optional[UserRole] = None
    clients: Optional[list[ClientAssignment]] = None


class GrantRead(BaseModel):
    client_id: str
    access_level: AccessLevel


class UserRead(BaseModel):
    id: str
    name: str
    email: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class UserDetail(UserRead):
    grants: list[GrantRead] = []


class UserForm(BaseModel):
    """Options for the create / edit user screens."""
    roles: list[UserRole]
    access_levels: list[AccessLevel]
    clients: list[dict[str, str]]
    user: Optional[UserDetail] = None
