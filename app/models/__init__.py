"""
models/__init__.py
------------------
Re-export all models so create_tables.py (and any future migration tool)
can import Base and discover all tables via a single import:

    from app.models import Base
"""

from app.db.base import Base
from app.models.client import Client
from app.models.client_user import AccessLevel, ClientUser
from app.models.personnel import Personnel
from app.models.user import User, UserRole

__all__ = [
    "Base",
    "Client",
    "ClientUser",
    "AccessLevel",
    "Personnel",
    "User",
    "UserRole",
]
