"""
services/authorization.py
-------------------------
Client access policy: who may view, select, create, update and delete
clients.

Every check returns a Decision rather than raising. Callers choose between
filtering (drop denied items) and surfacing the denial (`authorize`, which
raises AuthorizationDenied for the redirect-with-flash handler).

Every rule matches on the closed UserRole enum. An unknown role raises
instead of falling through to a default.
"""

from dataclasses import dataclass

from sqlalchemy import Select, select

from app.core.exceptions import AuthorizationDenied
from app.core.logging import get_logger
from app.models.client import Client
from app.models.client_user import AccessLevel, ClientUser
from app.models.user import User, UserRole
from app.services.access_grants import AccessGrantStore

logger = get_logger(__name__)

SELECT_DENIED_MESSAGE = "You do not have permission to access this client."

_UPDATE_LEVELS = frozenset({AccessLevel.write, AccessLevel.admin})


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str | None = None) -> "Decision":
        return cls(False, reason)


def _unhandled(role: UserRole):
    return ValueError(f"No client policy rule for role {role!r}")


def authorize(decision: Decision) -> None:
    """Raise AuthorizationDenied unless the decision allows the action."""
    if not decision:
        raise AuthorizationDenied(decision.reason or "This action is unauthorized.")


class ClientPolicy:

    def __init__(self, grants: AccessGrantStore) -> None:
        self.grants = grants

    def can_view_any(self, user: User) -> Decision:
        # The listing is filtered by visible_clients_query, not gated.
        return Decision.allow()

    async def can_view(self, user: User, client: Client) -> Decision:
        match user.role_enum:
            case UserRole.admin:
                return Decision.allow()
            case UserRole.manager | UserRole.user:
                if await self.grants.has_access(user.id, client.id):
                    return Decision.allow()
                return Decision.deny()
        raise _unhandled(user.role_enum)

    async def can_select(self, user: User, client: Client) -> Decision:
        decision = await self.can_view(user, client)
        if decision:
            return decision
        return Decision.deny(SELECT_DENIED_MESSAGE)

    def can_create(self, user: User) -> Decision:
        match user.role_enum:
            case UserRole.admin | UserRole.manager:
                return Decision.allow()
            case UserRole.user:
                return Decision.deny("Only admins and managers can create clients.")
        raise _unhandled(user.role_enum)

    async def can_update(self, user: User, client: Client) -> Decision:
        match user.role_enum:
            case UserRole.admin:
                return Decision.allow()
            case UserRole.manager:
                level = await self.grants.access_level(user.id, client.id)
                if level in _UPDATE_LEVELS:
                    return Decision.allow()
                return Decision.deny("You do not have write access to this client.")
            case UserRole.user:
                return Decision.deny("You do not have write access to this client.")
        raise _unhandled(user.role_enum)

    def _admin_only(self, user: User, action: str) -> Decision:
        match user.role_enum:
            case UserRole.admin:
                return Decision.allow()
            case UserRole.manager | UserRole.user:
                return Decision.deny(f"Only admins can {action} clients.")
        raise _unhandled(user.role_enum)

    def can_delete(self, user: User, client: Client) -> Decision:
        return self._admin_only(user, "delete")

    def can_restore(self, user: User, client: Client) -> Decision:
        return self._admin_only(user, "restore")

    def can_force_delete(self, user: User, client: Client) -> Decision:
        return self._admin_only(user, "permanently delete")

    def visible_clients_query(self, user: User) -> Select:
        """
        Clients the user may see in listings. Admins see every client;
        everyone else sees exactly the clients they hold a grant for, so a
        user with no grants gets an empty list.
        """
        query = select(Client)
        match user.role_enum:
            case UserRole.admin:
                return query
            case UserRole.manager | UserRole.user:
                return query.join(ClientUser, ClientUser.client_id == Client.id).where(
                    ClientUser.user_id == user.id
                )
        raise _unhandled(user.role_enum)
