"""
models/user.py
--------------
User ORM model with a global role.

Role design:
  - 'admin':   Sees and manages every client and every user.
  - 'manager': Sees assigned clients; may update those granted write/admin.
  - 'user':    Sees assigned clients, read-only.

The role is a closed set. Authorization code matches on it exhaustively,
so adding a member here forces a decision in every policy method.

The hashed_password column stores bcrypt hashes only; plain text is
never stored and never logged.
"""

from enum import Enum as PyEnum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin, generate_uuid


class UserRole(str, PyEnum):
    admin = "admin"
    manager = "manager"
    user = "user"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.user.value
    )

    # Relationships
    client_grants: Mapped[list["ClientUser"]] = relationship(  # noqa: F821
        "ClientUser", back_populates="user", cascade="all, delete-orphan"
    )
    personnel: Mapped[list["Personnel"]] = relationship(  # noqa: F821
        "Personnel", back_populates="user"
    )

    @property
    def role_enum(self) -> UserRole:
        return UserRole(self.role)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
