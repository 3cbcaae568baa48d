"""
api/routes/users.py
-------------------
User management.

GET    /users             — All users with their client grants.
GET    /users/create      — Options for the create form (admin / manager).
POST   /users             — Create a user with client assignments (admin / manager).
GET    /users/{id}/edit   — Options plus current values (admin).
PUT    /users/{id}        — Update, re-syncing assignments when sent (admin).
DELETE /users/{id}        — Delete; grants cascade (admin, not yourself).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.web import flash, redirect_to
from app.db.session import get_db
from app.dependencies import (
    get_client_policy,
    get_current_user,
    get_grant_store,
    require_roles,
)
from app.models.client_user import AccessLevel
from app.models.user import User, UserRole
from app.schemas.user import GrantRead, UserCreate, UserDetail, UserForm, UserRead, UserUpdate
from app.services.access_grants import AccessGrantStore
from app.services.authorization import ClientPolicy
from app.services.client_service import ClientService
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


def _as_detail(user: User, user_grants: list[tuple[str, AccessLevel]]) -> UserDetail:
    return UserDetail(
        **UserRead.model_validate(user).model_dump(),
        grants=[GrantRead(client_id=c, access_level=level) for c, level in user_grants],
    )


async def _detail(user: User, grants: AccessGrantStore) -> UserDetail:
    return _as_detail(user, sorted(await grants.grants_for(user.id)))


async def _form(
    db: AsyncSession,
    policy: ClientPolicy,
    acting: User,
    user: UserDetail | None = None,
) -> UserForm:
    """Roles and clients the acting user is allowed to hand out."""
    roles = list(UserRole) if acting.role_enum is UserRole.admin else [UserRole.user]
    assignable = []
    for client in await ClientService.list_visible(db, policy, acting):
        if await policy.can_update(acting, client):
            assignable.append({"id": client.id, "name": client.name})
    return UserForm(
        roles=roles,
        access_levels=list(AccessLevel),
        clients=assignable,
        user=user,
    )


@router.get("", response_model=list[UserDetail], summary="List users")
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    grants: Annotated[AccessGrantStore, Depends(get_grant_store)],
) -> list[UserDetail]:
    users = await UserService.list_users(db)
    by_user = await grants.grants_by_user([u.id for u in users])
    return [_as_detail(u, by_user.get(u.id, [])) for u in users]


@router.get("/create", response_model=UserForm, summary="Create-user form options")
async def create_user_form(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_roles(UserRole.admin, UserRole.manager))],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> UserForm:
    return await _form(db, policy, current_user)


@router.post(
    "",
    response_model=UserDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
async def create_user(
    request: Request,
    body: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_roles(UserRole.admin, UserRole.manager))],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> UserDetail:
    user = await UserService.create_user(db, body, current_user, policy)
    flash(request.session, "success", "User created successfully.")
    return await _detail(user, policy.grants)


@router.get("/{user_id}/edit", response_model=UserForm, summary="Edit-user form")
async def edit_user_form(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_roles(UserRole.admin))],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> UserForm:
    user = await UserService.get_user(db, user_id)
    return await _form(db, policy, current_user, await _detail(user, policy.grants))


@router.put("/{user_id}", response_model=UserDetail, summary="Update a user")
async def update_user(
    user_id: str,
    body: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_roles(UserRole.admin))],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> UserDetail:
    user = await UserService.get_user(db, user_id)
    user = await UserService.update_user(db, user, body, current_user, policy)
    return await _detail(user, policy.grants)


@router.delete("/{user_id}", summary="Delete a user")
async def delete_user(
    request: Request,
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_roles(UserRole.admin))],
):
    user = await UserService.get_user(db, user_id)
    await UserService.delete_user(db, user, current_user)
    flash(request.session, "success", "User deleted.")
    return redirect_to("/users")
