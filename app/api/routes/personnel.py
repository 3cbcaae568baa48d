"""
api/routes/personnel.py
-----------------------
Personnel endpoints, scoped by the session's selected client.

GET  /personnel          — Personnel of visible clients (selected client only, if any).
GET  /personnel/create   — Form options; defaults to the selected client.
POST /personnel          — Create (needs update rights on the target client).
GET  /personnel/{id}     — Detail (needs view rights on its client).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.web import flash, pop_flashes, redirect_to
from app.core.exceptions import NotFoundError, ValidationError
from app.db.session import get_db
from app.dependencies import get_client_policy, get_client_selection, get_current_user
from app.models.user import User
from app.schemas.personnel import (
    PersonnelCreate,
    PersonnelForm,
    PersonnelListResponse,
    PersonnelRead,
)
from app.services.authorization import ClientPolicy, authorize
from app.services.client_service import ClientService
from app.services.personnel_service import PersonnelService
from app.services.selection import ClientSelection, Selected

router = APIRouter(prefix="/personnel", tags=["Personnel"])


@router.get("", response_model=PersonnelListResponse, summary="List personnel")
async def list_personnel(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
    selection: Annotated[ClientSelection, Depends(get_client_selection)],
) -> PersonnelListResponse:
    state = selection.get()
    client_id = state.client_id if isinstance(state, Selected) else None
    personnel = await PersonnelService.list_personnel(db, policy, current_user, client_id)
    return PersonnelListResponse(
        total=len(personnel),
        client_id=client_id,
        items=[PersonnelRead.model_validate(p) for p in personnel],
        flashes=pop_flashes(request.session),
    )


@router.get("/create", response_model=PersonnelForm, summary="Create-personnel form options")
async def create_personnel_form(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
    selection: Annotated[ClientSelection, Depends(get_client_selection)],
) -> PersonnelForm:
    clients = []
    for client in await ClientService.list_visible(db, policy, current_user, active_only=True):
        if await policy.can_update(current_user, client):
            clients.append({"id": client.id, "name": client.name})

    state = selection.get()
    return PersonnelForm(
        clients=clients,
        default_client_id=state.client_id if isinstance(state, Selected) else None,
    )


@router.post("", summary="Create a personnel record")
async def store_personnel(
    request: Request,
    body: PersonnelCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
):
    try:
        client = await ClientService.get_client(db, body.client_id)
    except NotFoundError:
        raise ValidationError("The selected client id is invalid.", field="client_id")
    authorize(await policy.can_update(current_user, client))
    if not client.active:
        raise ValidationError("The selected client is inactive.", field="client_id")

    await PersonnelService.create_personnel(db, body, current_user)
    flash(request.session, "success", "Personnel created successfully")
    return redirect_to("/personnel")


@router.get("/{personnel_id}", response_model=PersonnelRead, summary="Personnel detail")
async def show_personnel(
    personnel_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> PersonnelRead:
    personnel = await PersonnelService.get_personnel(db, personnel_id)
    client = await ClientService.get_client(db, personnel.client_id)
    authorize(await policy.can_view(current_user, client))
    return PersonnelRead.model_validate(personnel)
