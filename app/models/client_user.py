"""
models/client_user.py
---------------------
Access grant linking a user to a client with an access level.

One row per (client, user) pair, enforced by a unique constraint. Admins
bypass this table entirely; for everyone else a missing row means no access.
"""

from enum import Enum as PyEnum

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin, generate_uuid


class AccessLevel(str, PyEnum):
    read = "read"
    write = "write"
    admin = "admin"


class ClientUser(Base, TimestampMixin):
    __tablename__ = "client_user"
    __table_args__ = (
        UniqueConstraint("client_id", "user_id", name="uq_client_user_pair"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    client_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    access_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccessLevel.read.value
    )

    # Relationships
    client: Mapped["Client"] = relationship("Client", back_populates="user_grants")  # noqa: F821
    user: Mapped["User"] = relationship("User", back_populates="client_grants")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<ClientUser user_id={self.user_id} client_id={self.client_id} "
            f"access_level={self.access_level}>"
        )
