"""
services/user_service.py
------------------------
Business logic for authentication and user management.

Role rules enforced here:
  - Admins may create, edit and delete any user and assign any role.
  - Managers may only create 'user' accounts, and may only assign clients
    they themselves can update. Nobody escalates a role implicitly.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthorizationDenied, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.security import hash_password, verify_password
from app.models.client import Client
from app.models.client_user import AccessLevel
from app.models.user import User, UserRole
from app.schemas.user import ClientAssignment, UserCreate, UserUpdate
from app.services.authorization import ClientPolicy

logger = get_logger(__name__)

EMAIL_TAKEN = "The email has already been taken."


class UserService:

    @staticmethod
    async def authenticate(
        db: AsyncSession, email: str, password: str
    ) -> User | None:
        """
        Verify credentials and return the User if valid, else None.
        Email lookup is case-insensitive.
        """
        result = await db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        user = result.scalar_one_or_none()
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    async def get_user(db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    @staticmethod
    async def list_users(db: AsyncSession) -> list[User]:
        result = await db.execute(select(User).order_by(User.name))
        return list(result.scalars().all())

    @staticmethod
    async def _email_taken(db: AsyncSession, email: str, exclude_id: str | None = None) -> bool:
        query = select(User.id).where(User.email == email)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await db.execute(query)
        return result.first() is not None

    @staticmethod
    async def _resolve_assignments(
        db: AsyncSession,
        assignments: list[ClientAssignment],
        acting: User,
        policy: ClientPolicy,
    ) -> dict[str, AccessLevel]:
        """Check every assigned client exists and the acting user may hand it out."""
        grants: dict[str, AccessLevel] = {}
        for assignment in assignments:
            client = await db.get(Client, assignment.client_id)
            if client is None:
                raise ValidationError(
                    f"Client '{assignment.client_id}' does not exist.", field="clients"
                )
            if not await policy.can_update(acting, client):
                raise AuthorizationDenied(
                    f"You cannot assign users to client '{client.name}'."
                )
            grants[client.id] = assignment.access_level
        return grants

    @staticmethod
    async def create_user(
        db: AsyncSession,
        data: UserCreate,
        acting: User,
        policy: ClientPolicy,
    ) -> User:
        """
        Create a user and its client grants in one unit of work.
        Raises ValidationError on duplicate email or unknown clients and
        AuthorizationDenied when a manager oversteps.
        """
        if acting.role_enum is UserRole.manager and data.role is not UserRole.user:
            raise AuthorizationDenied("Managers can only create users with the 'user' role.")

        email = data.email.lower()
        if await UserService._email_taken(db, email):
            raise ValidationError(EMAIL_TAKEN, field="email")

        grants = await UserService._resolve_assignments(db, data.clients, acting, policy)

        user = User(
            name=data.name.strip(),
            email=email,
            hashed_password=hash_password(data.password),
            role=data.role.value,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ValidationError(EMAIL_TAKEN, field="email")

        await policy.grants.sync(user.id, grants)
        await db.refresh(user)
        logger.info(
            "User created",
            new_user_id=user.id,
            role=user.role,
            created_by=acting.id,
            client_count=len(grants),
        )
        return user

    @staticmethod
    async def update_user(
        db: AsyncSession,
        user: User,
        data: UserUpdate,
        acting: User,
        policy: ClientPolicy,
    ) -> User:
        """Apply an admin edit. The role only changes when `role` is sent."""
        if data.email is not None:
            email = data.email.lower()
            if await UserService._email_taken(db, email, exclude_id=user.id):
                raise ValidationError(EMAIL_TAKEN, field="email")
            user.email = email
        if data.name is not None:
            user.name = data.name.strip()
        if data.password is not None:
            user.hashed_password = hash_password(data.password)
        if data.role is not None and data.role.value != user.role:
            logger.info(
                "User role changed",
                user_id=user.id,
                old=user.role,
                new=data.role.value,
                changed_by=acting.id,
            )
            user.role = data.role.value

        if data.clients is not None:
            grants = await UserService._resolve_assignments(db, data.clients, acting, policy)
            await policy.grants.sync(user.id, grants)

        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def delete_user(db: AsyncSession, user: User, acting: User) -> None:
        if user.id == acting.id:
            raise ValidationError("You cannot delete your own account.", field="user")
        await db.delete(user)
        await db.flush()
        logger.info("User deleted", user_id=user.id, deleted_by=acting.id)
