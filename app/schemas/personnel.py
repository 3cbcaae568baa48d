"""
schemas/personnel.py
--------------------
Pydantic models for Personnel records.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class PersonnelCreate(BaseModel):
    client_id: str
    user_id: Optional[str] = None
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=20)
    position: Optional[str] = Field(None, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    hire_date: Optional[date] = None


class PersonnelRead(BaseModel):
    id: str
    client_id: str
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    hire_date: Optional[date] = None
    active: bool
    created_at: datetime
    full_name: str  # Personnel.full_name

    model_config = {"from_attributes": True}


class PersonnelListResponse(BaseModel):
    total: int
    client_id: Optional[str] = None
    items: list[PersonnelRead]
    flashes: list[dict[str, str]] = []


class PersonnelForm(BaseModel):
    clients: list[dict[str, str]]
    default_client_id: Optional[str] = None
