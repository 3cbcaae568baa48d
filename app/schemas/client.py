"""
schemas/client.py
-----------------
Pydantic request/response models for Client.

Naming convention:
  ClientCreate  → inbound request body
  ClientUpdate  → inbound partial update (only sent fields are applied)
  ClientRead    → outbound response body
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator


class ClientBase(BaseModel):
    services_provided: Optional[str] = Field(None, max_length=255)
    ccn: Optional[str] = Field(None, max_length=12)
    npi: Optional[str] = Field(None, max_length=12)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    state_code: Optional[str] = Field(None, max_length=3)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=20)
    website_url: Optional[str] = Field(None, max_length=255)


class ClientCreate(ClientBase):
    name: str = Field(..., min_length=1, max_length=255, examples=["Riverside Clinic"])
    industry: str = Field(..., min_length=1, max_length=100, examples=["Healthcare"])
    active: bool = True

    @field_validator("name", "industry", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class ClientUpdate(ClientBase):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    industry: Optional[str] = Field(None, min_length=1, max_length=100)
    active: Optional[bool] = None

    # Omitted fields stay unset; these columns are NOT NULL.
    @field_validator("name", "industry", "active", mode="before")
    @classmethod
    def reject_null(cls, v, info: ValidationInfo):
        if v is None:
            raise ValueError(f"The {info.field_name} field cannot be null.")
        return v.strip() if isinstance(v, str) else v


class ClientRead(ClientBase):
    id: str
    name: str
    industry: str
    contact_email: Optional[str] = None
    active: bool
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientListResponse(BaseModel):
    total: int
    selected_client_id: Optional[str] = None
    items: list[ClientRead]
    flashes: list[dict[str, str]] = []
