"""
dependencies.py
---------------
FastAPI dependency injection functions for authentication and authorisation.

Flow:
  1. SessionMiddleware decodes the signed session cookie into request.session.
  2. get_current_user loads the User named by the session's user id from the
     DB on every request, so role changes and deletions apply immediately.
  3. get_grant_store / get_client_policy / get_client_selection hand the
     request's DB session to the access-control services; handlers receive
     them as parameters instead of reaching for global helpers.
  4. require_roles layers a role check on top of get_current_user.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationRequired, AuthorizationDenied
from app.core.logging import get_logger
from app.db.session import get_db
from app.models.user import User, UserRole
from app.services.access_grants import AccessGrantStore
from app.services.authorization import ClientPolicy
from app.services.selection import SESSION_ID_KEY, ClientSelection

logger = get_logger(__name__)

SESSION_USER_KEY = "user_id"


async def get_optional_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """The signed-in user, or None for guests."""
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None

    user = await db.get(User, user_id)
    if user is None:
        # Account deleted while the session was alive
        logger.warning("Session user not found in DB", user_id=user_id)
        request.app.state.selection_store.discard(request.session.get(SESSION_ID_KEY))
        request.session.clear()
    return user


async def get_current_user(
    request: Request,
    user: Annotated[User | None, Depends(get_optional_user)],
) -> User:
    """Return the signed-in user or send the browser to /login."""
    if user is None:
        raise AuthenticationRequired(intended_path=request.url.path)
    return user


def require_roles(*roles: UserRole):
    """Create a dependency that only lets the given roles through."""

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role_enum not in roles:
            raise AuthorizationDenied(
                f"Required role: {', '.join(r.value for r in roles)}"
            )
        return current_user

    return role_checker


def get_grant_store(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccessGrantStore:
    return AccessGrantStore(db)


def get_client_policy(
    grants: Annotated[AccessGrantStore, Depends(get_grant_store)],
) -> ClientPolicy:
    return ClientPolicy(grants)


def get_client_selection(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    policy: Annotated[ClientPolicy, Depends(get_client_policy)],
) -> ClientSelection:
    return ClientSelection(request.session, db, policy, request.app.state.selection_store)

