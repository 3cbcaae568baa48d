"""
services/personnel_service.py
-----------------------------
Business logic for personnel records.

Listings are always restricted to clients the user can see; a selected
client narrows them further.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.client import Client
from app.models.personnel import Personnel
from app.models.user import User
from app.schemas.personnel import PersonnelCreate
from app.services.authorization import ClientPolicy

logger = get_logger(__name__)


class PersonnelService:

    @staticmethod
    def _visible_query(policy: ClientPolicy, user: User, client_id: str | None):
        visible_ids = policy.visible_clients_query(user).with_only_columns(Client.id)
        query = select(Personnel).where(Personnel.client_id.in_(visible_ids))
        if client_id is not None:
            query = query.where(Personnel.client_id == client_id)
        return query

    @staticmethod
    async def list_personnel(
        db: AsyncSession,
        policy: ClientPolicy,
        user: User,
        client_id: str | None = None,
    ) -> list[Personnel]:
        query = PersonnelService._visible_query(policy, user, client_id)
        result = await db.execute(
            query.order_by(Personnel.last_name, Personnel.first_name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_personnel(
        db: AsyncSession,
        policy: ClientPolicy,
        user: User,
        client_id: str | None = None,
    ) -> int:
        subquery = PersonnelService._visible_query(policy, user, client_id).subquery()
        result = await db.execute(select(func.count()).select_from(subquery))
        return result.scalar_one()

    @staticmethod
    async def get_personnel(db: AsyncSession, personnel_id: str) -> Personnel:
        personnel = await db.get(Personnel, personnel_id)
        if personnel is None:
            raise NotFoundError("Personnel", personnel_id)
        return personnel

    @staticmethod
    async def create_personnel(
        db: AsyncSession, data: PersonnelCreate, acting: User
    ) -> Personnel:
        """Caller must already hold update rights on data.client_id."""
        if data.user_id is not None and await db.get(User, data.user_id) is None:
            raise ValidationError("The selected user id is invalid.", field="user_id")

        personnel = Personnel(
            **data.model_dump(),
            created_by=acting.id,
            updated_by=acting.id,
        )
        db.add(personnel)
        await db.flush()
        await db.refresh(personnel)
        logger.info(
            "Personnel created",
            personnel_id=personnel.id,
            client_id=personnel.client_id,
            created_by=acting.id,
        )
        return personnel
