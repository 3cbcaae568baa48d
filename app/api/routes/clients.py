"""
api/routes/clients.py
---------------------
Client endpoints and the session's selected-client switch.

GET    /clients               — Clients visible to the user.
POST   /clients               — Create (admin / manager).
POST   /clients/clear         — Clear the selected client.
GET    /clients/{id}          — Detail (needs view access).
PUT    /clients/{id}          — Update (admin, or manager with write access).
DELETE /clients/{id}          — Soft-disable; ?force=true deletes (admin).
POST   /clients/{id}/restore  — Re-activate (admin).
POST   /clients/{id}/select   — Make it the session's selected client.

Denials on the select/clear switch answer with a redirect back and an
error flash; the other endpoints raise AuthorizationDenied, which main.py
turns into the same redirect.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.web import flash, pop_flashes, redirect_back
from app.core.exceptions import AuthorizationDenied
from app.core.logging import get_logger
from app.db.session import get_db
from app.dependencies import get_client_policy, get_client_selection, get_current_user
from app.models.user import User
from app.schemas.client import ClientCreate, ClientListResponse, ClientRead, ClientUpdate
from app.services.authorization import ClientPolicy, authorize
from app.services.client_service import ClientService
from app.services.selection import ClientSelection, Selected

logger = get_logger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


@router.get("", response_model=ClientListResponse, summary="List visible clients")
async def list_clients(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
    selection: Annotated[ClientSelection, Depends(get_client_selection)],
    active_only: bool = Query(default=False, description="Hide deactivated clients"),
) -> ClientListResponse:
    authorize(policy.can_view_any(current_user))
    clients = await ClientService.list_visible(db, policy, current_user, active_only)
    state = selection.get()
    return ClientListResponse(
        total=len(clients),
        selected_client_id=state.client_id if isinstance(state, Selected) else None,
        items=[ClientRead.model_validate(c) for c in clients],
        flashes=pop_flashes(request.session),
    )


@router.post(
    "",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a client",
)
async def create_client(
    body: ClientCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> ClientRead:
    authorize(policy.can_create(current_user))
    client = await ClientService.create_client(db, body, current_user, policy)
    return ClientRead.model_validate(client)


@router.post("/clear", summary="Clear the selected client")
async def clear_selected_client(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    selection: Annotated[ClientSelection, Depends(get_client_selection)],
):
    await selection.clear()
    logger.info("Client selection cleared", user_id=current_user.id)
    flash(request.session, "success", "Client selection cleared.")
    return redirect_back(request)


@router.get("/{client_id}", response_model=ClientRead, summary="Client detail")
async def get_client(
    client_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> ClientRead:
    client = await ClientService.get_client(db, client_id)
    authorize(await policy.can_view(current_user, client))
    return ClientRead.model_validate(client)


@router.put("/{client_id}", response_model=ClientRead, summary="Update a client")
async def update_client(
    client_id: str,
    body: ClientUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> ClientRead:
    client = await ClientService.get_client(db, client_id)
    authorize(await policy.can_update(current_user, client))
    client = await ClientService.update_client(db, client, body, current_user)
    return ClientRead.model_validate(client)


@router.delete("/{client_id}", summary="Deactivate or permanently delete a client")
async def delete_client(
    request: Request,
    client_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
    force: bool = Query(default=False, description="Delete instead of deactivating"),
):
    client = await ClientService.get_client(db, client_id)
    if force:
        authorize(policy.can_force_delete(current_user, client))
        await ClientService.force_delete(db, client, current_user)
        flash(request.session, "success", "Client deleted.")
    else:
        authorize(policy.can_delete(current_user, client))
        await ClientService.set_active(db, client, False, current_user)
        flash(request.session, "success", "Client deactivated.")
    return redirect_back(request)


@router.post("/{client_id}/restore", response_model=ClientRead, summary="Restore a client")
async def restore_client(
    client_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> ClientRead:
    client = await ClientService.get_client(db, client_id)
    authorize(policy.can_restore(current_user, client))
    client = await ClientService.set_active(db, client, True, current_user)
    return ClientRead.model_validate(client)


@router.post("/{client_id}/select", summary="Select a client for this session")
async def select_client(
    request: Request,
    client_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    selection: Annotated[ClientSelection, Depends(get_client_selection)],
):
    client = await ClientService.get_client(db, client_id)
    try:
        await selection.select(current_user, client)
    except AuthorizationDenied as exc:
        flash(request.session, "error", exc.message)
        return redirect_back(request)

    flash(request.session, "success", f"Client '{client.name}' selected.")
    return redirect_back(request)
