"""
create_tables.py
----------------
One-shot script to create all database tables, optionally seeding demo
clients and one user per role.

Usage:
    python create_tables.py           # schema only
    python create_tables.py --seed    # schema + demo data
"""

import argparse
import asyncio

from sqlalchemy import select

from app.core.config import settings
from app.core.logging import configure_logging, get_logger
from app.core.security import hash_password
from app.db.session import build_engine, build_session_factory
from app.models import AccessLevel, Base, Client, User, UserRole  # Imports all models so metadata is populated
from app.services.access_grants import AccessGrantStore

logger = get_logger(__name__)

DEMO_CLIENTS = [
    {"name": "Lakeside Family Practice", "industry": "Healthcare", "city": "Madison", "state_code": "WI"},
    {"name": "Northwind Home Health", "industry": "Home Health", "city": "Duluth", "state_code": "MN"},
    {"name": "Summit Behavioral Services", "industry": "Behavioral Health", "city": "Boise", "state_code": "ID"},
]

DEMO_USERS = [
    ("Admin User", "admin@example.com", UserRole.admin),
    ("Manager User", "manager@example.com", UserRole.manager),
    ("Regular User", "user@example.com", UserRole.user),
]

DEMO_PASSWORD = "password"


async def seed(session_factory) -> None:
    """Idempotent: existing users / clients (matched by email / name) are reused."""
    async with session_factory() as db:
        clients = []
        for data in DEMO_CLIENTS:
            result = await db.execute(select(Client).where(Client.name == data["name"]))
            client = result.scalar_one_or_none()
            if client is None:
                client = Client(**data)
                db.add(client)
            clients.append(client)

        users = {}
        for name, email, role in DEMO_USERS:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(
                    name=name,
                    email=email,
                    hashed_password=hash_password(DEMO_PASSWORD),
                    role=role.value,
                )
                db.add(user)
            users[role] = user
        await db.flush()

        grants = AccessGrantStore(db)
        # Manager: write access to the first two clients; user: read access to the first.
        await grants.grant(users[UserRole.manager].id, clients[0].id, AccessLevel.write)
        await grants.grant(users[UserRole.manager].id, clients[1].id, AccessLevel.write)
        await grants.grant(users[UserRole.user].id, clients[0].id, AccessLevel.read)
        await db.commit()

    for _, email, role in DEMO_USERS:
        logger.info("Demo user ready", email=email, role=role.value, password=DEMO_PASSWORD)


async def create_all_tables(with_seed: bool = False) -> None:
    engine = build_engine(settings.DATABASE_URL, echo=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("All tables created")

    if with_seed:
        await seed(build_session_factory(engine))
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the database schema.")
    parser.add_argument("--seed", action="store_true", help="insert demo clients and users")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(create_all_tables(with_seed=args.seed))
