"""
services/client_service.py
--------------------------
Business logic for client management.

Service layer is responsible for:
  - Constructing queries
  - Enforcing business rules
  - Returning domain objects (ORM models) to the route layer
  - Never returning HTTP responses (that's the route's job)

Permission checks happen in the routes through ClientPolicy; these
functions assume the caller is already authorized.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.models.client import Client
from app.models.client_user import AccessLevel
from app.models.user import User, UserRole
from app.schemas.client import ClientCreate, ClientUpdate
from app.services.authorization import ClientPolicy

logger = get_logger(__name__)


class ClientService:

    @staticmethod
    async def list_visible(
        db: AsyncSession,
        policy: ClientPolicy,
        user: User,
        active_only: bool = False,
    ) -> list[Client]:
        query = policy.visible_clients_query(user)
        if active_only:
            query = query.where(Client.active.is_(True))
        result = await db.execute(query.order_by(Client.name))
        return list(result.scalars().all())

    @staticmethod
    async def count_visible(db: AsyncSession, policy: ClientPolicy, user: User) -> int:
        subquery = policy.visible_clients_query(user).subquery()
        result = await db.execute(select(func.count()).select_from(subquery))
        return result.scalar_one()

    @staticmethod
    async def get_client(db: AsyncSession, client_id: str) -> Client:
        client = await db.get(Client, client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    @staticmethod
    async def create_client(
        db: AsyncSession,
        data: ClientCreate,
        acting: User,
        policy: ClientPolicy,
    ) -> Client:
        """
        Create a client. A manager who creates a client is granted admin
        access to it, otherwise the new client would be invisible to them.
        """
        client = Client(**data.model_dump(), created_by=acting.id, updated_by=acting.id)
        db.add(client)
        await db.flush()

        if acting.role_enum is UserRole.manager:
            await policy.grants.grant(acting.id, client.id, AccessLevel.admin)

        await db.refresh(client)
        logger.info("Client created", client_id=client.id, created_by=acting.id)
        return client

    @staticmethod
    async def update_client(
        db: AsyncSession, client: Client, data: ClientUpdate, acting: User
    ) -> Client:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(client, field, value)
        client.updated_by = acting.id
        await db.flush()
        await db.refresh(client)
        logger.info("Client updated", client_id=client.id, updated_by=acting.id)
        return client

    @staticmethod
    async def set_active(
        db: AsyncSession, client: Client, active: bool, acting: User
    ) -> Client:
        """Soft-disable (active=False) or restore (active=True) a client."""
        client.active = active
        client.updated_by = acting.id
        await db.flush()
        await db.refresh(client)
        logger.info(
            "Client restored" if active else "Client deactivated",
            client_id=client.id,
            updated_by=acting.id,
        )
        return client

    @staticmethod
    async def force_delete(db: AsyncSession, client: Client, acting: User) -> None:
        """Hard delete. Grants and personnel go with it."""
        client_id = client.id
        await db.delete(client)
        await db.flush()
        logger.info("Client deleted", client_id=client_id, deleted_by=acting.id)
