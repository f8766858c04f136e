"""
Client Directory - resolves client ids to client portal accounts.

Lookups are side-effect free. A missing client is a normal outcome (None),
only an unreachable directory raises ClientDirectoryError.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dealer_portal.core.exceptions import ClientDirectoryError
from dealer_portal.models.client_account import ClientAccount, ClientAccountStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientRecord:
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    dealership_id: Optional[UUID] = None
    status: ClientAccountStatus = ClientAccountStatus.ACTIVE
    password_hash: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == ClientAccountStatus.ACTIVE

    @classmethod
    def from_account(cls, account: ClientAccount) -> "ClientRecord":
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            phone=account.phone,
            dealership_id=account.dealership_id,
            status=account.status,
            password_hash=account.password_hash,
        )


class ClientDirectory(Protocol):
    async def find_by_id(self, client_id: str) -> Optional[ClientRecord]:
        ...

    async def find_by_email(self, email: str) -> Optional[ClientRecord]:
        ...


class DatabaseClientDirectory:
    """Client directory backed by the client_accounts table"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, client_id: str) -> Optional[ClientRecord]:
        try:
            result = await self.db.execute(
                select(ClientAccount).where(ClientAccount.id == client_id)
            )
        except SQLAlchemyError as e:
            logger.error("Client lookup failed for id=%s: %s", client_id, e)
            raise ClientDirectoryError("Client directory unavailable", client_id=client_id) from e
        account = result.scalar_one_or_none()
        return ClientRecord.from_account(account) if account else None

    async def find_by_email(self, email: str) -> Optional[ClientRecord]:
        try:
            result = await self.db.execute(
                select(ClientAccount).where(func.lower(ClientAccount.email) == email.strip().lower())
            )
        except SQLAlchemyError as e:
            logger.error("Client lookup by email failed: %s", e)
            raise ClientDirectoryError("Client directory unavailable") from e
        account = result.scalar_one_or_none()
        return ClientRecord.from_account(account) if account else None


class InMemoryClientDirectory:
    """Dict-backed directory for demos and tests"""

    def __init__(self, records: Iterable[ClientRecord] = ()):
        self._records: Dict[str, ClientRecord] = {r.id: r for r in records}

    def add(self, record: ClientRecord) -> None:
        self._records[record.id] = record

    async def find_by_id(self, client_id: str) -> Optional[ClientRecord]:
        return self._records.get(client_id)

    async def find_by_email(self, email: str) -> Optional[ClientRecord]:
        wanted = email.strip().lower()
        for record in self._records.values():
            if record.email.lower() == wanted:
                return record
        return None


class ClientAccountService:
    """Admin-side queries over client accounts"""

    @staticmethod
    async def list_accounts(
        db: AsyncSession,
        dealership_id: Optional[UUID] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[ClientAccount], int]:
        """List client accounts, newest first, optionally scoped to one dealership."""
        filters = []
        if dealership_id:
            filters.append(ClientAccount.dealership_id == dealership_id)
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(
                or_(
                    ClientAccount.name.ilike(pattern),
                    ClientAccount.email.ilike(pattern),
                    ClientAccount.phone.ilike(pattern),
                )
            )

        count_q = select(func.count()).select_from(ClientAccount).where(*filters)
        total = (await db.execute(count_q)).scalar() or 0

        items_q = (
            select(ClientAccount)
            .where(*filters)
            .order_by(ClientAccount.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await db.execute(items_q)
        return list(result.scalars().all()), total

    @staticmethod
    async def get_account(db: AsyncSession, client_id: str) -> Optional[ClientAccount]:
        result = await db.execute(select(ClientAccount).where(ClientAccount.id == client_id))
        return result.scalar_one_or_none()
