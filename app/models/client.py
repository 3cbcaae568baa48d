"""
models/client.py
----------------
Client (tenant organisation) ORM model.

Clients are never hidden by the row itself: visibility is decided per user
from the client_user grant table (see services/authorization.py). The
`active` flag is a soft-disable; hard deletes cascade to grants and
personnel.
"""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import AuditMixin, Base, TimestampMixin, generate_uuid


class Client(Base, TimestampMixin, AuditMixin):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    industry: Mapped[str] = mapped_column(String(100), nullable=False)
    services_provided: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Provider identifiers
    ccn: Mapped[str | None] = mapped_column(String(12), nullable=True)
    npi: Mapped[str | None] = mapped_column(String(12), nullable=True)

    # Address
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state_code: Mapped[str | None] = mapped_column(String(3), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Contact
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(255), nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    user_grants: Mapped[list["ClientUser"]] = relationship(  # noqa: F821
        "ClientUser", back_populates="client", cascade="all, delete-orphan"
    )
    personnel: Mapped[list["Personnel"]] = relationship(  # noqa: F821
        "Personnel", back_populates="client", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Client id={self.id} name={self.name}>"
