"""
api/routes/dashboard.py
-----------------------
GET /           — Redirect to the dashboard or the login form.
GET /dashboard  — Summary for the signed-in user, including the selection.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.web import pop_flashes, redirect_to
from app.db.session import get_db
from app.dependencies import (
    get_client_policy,
    get_client_selection,
    get_current_user,
    get_optional_user,
)
from app.models.user import User
from app.schemas.dashboard import DashboardRead, SelectedClientRead
from app.schemas.user import UserRead
from app.services.authorization import ClientPolicy
from app.services.client_service import ClientService
from app.services.personnel_service import PersonnelService
from app.services.selection import ClientSelection

router = APIRouter(tags=["Dashboard"])


@router.get("/", include_in_schema=False)
async def home(user: Annotated[User | None, Depends(get_optional_user)]):
    return redirect_to("/dashboard" if user is not None else "/login")


@router.get("/dashboard", response_model=DashboardRead, summary="Dashboard summary")
async def dashboard(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
    selection: Annotated[ClientSelection, Depends(get_client_selection)],
) -> DashboardRead:
    client = await selection.current_client()
    selected = None
    if client is not None:
        selected = SelectedClientRead(
            id=client.id,
            name=client.name,
            industry=client.industry,
            active=client.active,
        )

    return DashboardRead(
        user=UserRead.model_validate(current_user),
        selected_client=selected,
        visible_client_count=await ClientService.count_visible(db, policy, current_user),
        personnel_count=await PersonnelService.count_personnel(
            db, policy, current_user, client.id if client is not None else None
        ),
        flashes=pop_flashes(request.session),
    )
