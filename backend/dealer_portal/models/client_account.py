"""
Client Account Model - a dealership customer with access to the client portal.
"""
import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealer_portal.db.database import Base
from dealer_portal.core.timezone import utc_now

if TYPE_CHECKING:
    from dealer_portal.models.dealership import Dealership


class ClientAccountStatus(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


def _new_client_id() -> str:
    return uuid.uuid4().hex


class ClientAccount(Base):
    """
    Client portal account.
    The id is an opaque string: accounts created from a lead keep ids
    such as "lead-42", so it is not constrained to a UUID.
    """

    __tablename__ = "client_accounts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_client_id)

    dealership_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("dealerships.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    lead_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Null until the client is invited and sets a password
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[ClientAccountStatus] = mapped_column(
        Enum(ClientAccountStatus),
        nullable=False,
        default=ClientAccountStatus.ACTIVE,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    dealership: Mapped[Optional["Dealership"]] = relationship(
        "Dealership",
        back_populates="client_accounts",
        lazy="noload",
    )

    @property
    def has_portal_login(self) -> bool:
        return bool(self.password_hash)

    def __repr__(self) -> str:
        return f"<ClientAccount {self.name} ({self.email})>"
