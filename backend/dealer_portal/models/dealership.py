"""
Dealership Model
"""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealer_portal.db.database import Base
from dealer_portal.core.timezone import utc_now

if TYPE_CHECKING:
    from dealer_portal.models.user import User
    from dealer_portal.models.client_account import ClientAccount


class Dealership(Base):
    """Dealership entity - the tenant that owns staff users and client accounts"""

    __tablename__ = "dealerships"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=True, unique=True, index=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )

    users: Mapped[List["User"]] = relationship(
        "User",
        back_populates="dealership",
        lazy="noload"
    )
    client_accounts: Mapped[List["ClientAccount"]] = relationship(
        "ClientAccount",
        back_populates="dealership",
        lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<Dealership {self.name}>"
