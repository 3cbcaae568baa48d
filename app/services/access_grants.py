"""
services/access_grants.py
-------------------------
Persistence of (user, client) → access level grants (the client_user table).

Invariant: at most one grant per (user, client) pair. `grant` is an upsert
and the table carries a unique constraint as a backstop.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.client_user import AccessLevel, ClientUser

logger = get_logger(__name__)


class AccessGrantStore:
    """Grant lookups and mutations bound to one database session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get(self, user_id: str, client_id: str) -> ClientUser | None:
        result = await self.db.execute(
            select(ClientUser).where(
                ClientUser.user_id == user_id,
                ClientUser.client_id == client_id,
            )
        )
        return result.scalar_one_or_none()

    async def grants_for(self, user_id: str) -> set[tuple[str, AccessLevel]]:
        """Return every (client_id, access_level) granted to the user."""
        result = await self.db.execute(
            select(ClientUser.client_id, ClientUser.access_level).where(
                ClientUser.user_id == user_id
            )
        )
        return {(client_id, AccessLevel(level)) for client_id, level in result.all()}

    async def grants_by_user(
        self, user_ids: list[str]
    ) -> dict[str, list[tuple[str, AccessLevel]]]:
        """Grants of several users in one query, sorted by client id per user."""
        if not user_ids:
            return {}
        result = await self.db.execute(
            select(ClientUser.user_id, ClientUser.client_id, ClientUser.access_level)
            .where(ClientUser.user_id.in_(user_ids))
            .order_by(ClientUser.user_id, ClientUser.client_id)
        )
        grouped: dict[str, list[tuple[str, AccessLevel]]] = {}
        for user_id, client_id, level in result.all():
            grouped.setdefault(user_id, []).append((client_id, AccessLevel(level)))
        return grouped

    async def client_ids_for(self, user_id: str) -> list[str]:
        result = await self.db.execute(
            select(ClientUser.client_id).where(ClientUser.user_id == user_id)
        )
        return list(result.scalars().all())

    async def access_level(self, user_id: str, client_id: str) -> AccessLevel | None:
        result = await self.db.execute(
            select(ClientUser.access_level).where(
                ClientUser.user_id == user_id,
                ClientUser.client_id == client_id,
            )
        )
        level = result.scalar_one_or_none()
        return AccessLevel(level) if level is not None else None

    async def has_access(self, user_id: str, client_id: str) -> bool:
        return await self.access_level(user_id, client_id) is not None

    async def grant(
        self,
        user_id: str,
        client_id: str,
        access_level: AccessLevel = AccessLevel.read,
    ) -> ClientUser:
        """
        Create the grant, or change its level if the pair already exists.
        Calling it twice with the same arguments leaves a single row.
        """
        level = AccessLevel(access_level)
        existing = await self._get(user_id, client_id)
        if existing is not None:
            if existing.access_level != level.value:
                logger.info(
                    "Access level changed",
                    user_id=user_id,
                    client_id=client_id,
                    old=existing.access_level,
                    new=level.value,
                )
                existing.access_level = level.value
                await self.db.flush()
            return existing

        grant = ClientUser(user_id=user_id, client_id=client_id, access_level=level.value)
        self.db.add(grant)
        await self.db.flush()
        logger.info(
            "Access granted",
            user_id=user_id,
            client_id=client_id,
            access_level=level.value,
        )
        return grant

    async def revoke(self, user_id: str, client_id: str) -> bool:
        """Remove the grant. Returns False if there was nothing to remove."""
        result = await self.db.execute(
            delete(ClientUser).where(
                ClientUser.user_id == user_id,
                ClientUser.client_id == client_id,
            )
        )
        await self.db.flush()
        revoked = result.rowcount > 0
        if revoked:
            logger.info("Access revoked", user_id=user_id, client_id=client_id)
        return revoked

    async def sync(self, user_id: str, grants: dict[str, AccessLevel]) -> None:
        """
        Make the user's grants exactly `grants`: upsert every entry and drop
        grants for clients not listed.
        """
        stale = delete(ClientUser).where(ClientUser.user_id == user_id)
        if grants:
            stale = stale.where(ClientUser.client_id.not_in(list(grants)))
        await self.db.execute(stale)

        for client_id, level in grants.items():
            await self.grant(user_id, client_id, level)

        logger.info("Access grants synced", user_id=user_id, client_count=len(grants))
