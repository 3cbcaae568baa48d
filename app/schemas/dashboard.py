"""
schemas/dashboard.py
--------------------
Response models for the login screen and the dashboard.
"""

from typing import Optional

from pydantic import BaseModel

from app.schemas.user import UserRead


class SelectedClientRead(BaseModel):
    id: str
    name: str
    industry: str
    active: bool


class LoginPage(BaseModel):
    fields: list[str] = ["email", "password"]
    flashes: list[dict[str, str]] = []


class LoginError(BaseModel):
    errors: dict[str, str]
    email: str


class DashboardRead(BaseModel):
    user: UserRead
    selected_client: Optional[SelectedClientRead] = None
    visible_client_count: int
    personnel_count: int
    flashes: list[dict[str, str]] = []
