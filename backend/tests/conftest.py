import os
import uuid

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dealer_portal.api import deps
from dealer_portal.core.permissions import UserRole
from dealer_portal.core.security import get_password_hash
from dealer_portal.db.database import Base, get_db
from dealer_portal.models import ClientAccountStatus, User
from dealer_portal.services.client_directory import ClientRecord, InMemoryClientDirectory
from dealer_portal.services.impersonation import ImpersonationController
from dealer_portal.services.session_store import MemoryStorage, SessionStore
from dealer_portal.web.dependencies import get_client_directory

DEALERSHIP_A = uuid.UUID("11111111-1111-1111-1111-111111111111")
DEALERSHIP_B = uuid.UUID("22222222-2222-2222-2222-222222222222")

CLIENT_PASSWORD = "client-pass"


@pytest.fixture(scope="session")
def client_password_hash():
    return get_password_hash(CLIENT_PASSWORD)


@pytest.fixture()
def client_records(client_password_hash):
    return [
        ClientRecord(
            id="42",
            name="Ada Lovelace",
            email="ada@example.com",
            phone="+1 555 0100",
            dealership_id=DEALERSHIP_A,
            status=ClientAccountStatus.ACTIVE,
            password_hash=client_password_hash,
        ),
        ClientRecord(
            id="lead-42",
            name="Grace Hopper",
            email="grace@example.com",
            phone=None,
            dealership_id=DEALERSHIP_A,
            status=ClientAccountStatus.ACTIVE,
            password_hash=None,
        ),
        ClientRecord(
            id="7",
            name="Alan Turing",
            email="alan@example.com",
            phone=None,
            dealership_id=DEALERSHIP_B,
            status=ClientAccountStatus.ACTIVE,
            password_hash=client_password_hash,
        ),
    ]


@pytest.fixture()
def directory(client_records):
    return InMemoryClientDirectory(client_records)


@pytest.fixture()
def durable():
    return MemoryStorage()


@pytest.fixture()
def volatile():
    return MemoryStorage()


@pytest.fixture()
def store(durable, volatile):
    return SessionStore(durable=durable, volatile=volatile)


@pytest.fixture()
def controller(directory, store):
    return ImpersonationController(directory, store)


def make_user(role: UserRole, dealership_id=None, email=None) -> User:
    return User(
        id=uuid.uuid4(),
        email=email or f"{role.value}@dealer.test",
        password_hash="unused",
        first_name="Test",
        last_name=role.value.title(),
        role=role,
        dealership_id=dealership_id,
        is_active=True,
    )


@pytest.fixture()
def super_admin():
    return make_user(UserRole.SUPER_ADMIN)


@pytest.fixture()
def dealership_admin():
    return make_user(UserRole.DEALERSHIP_ADMIN, dealership_id=DEALERSHIP_A)


@pytest.fixture()
def salesperson():
    return make_user(UserRole.SALESPERSON, dealership_id=DEALERSHIP_A)


@pytest_asyncio.fixture()
async def db_session():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
    await engine.dispose()


class StaffHolder:
    """Which staff user the test app treats as logged in"""

    def __init__(self):
        self.user = None


@pytest.fixture()
def staff():
    return StaffHolder()


@pytest.fixture()
def app(directory, staff):
    from dealer_portal.main import create_application

    application = create_application()

    def current_staff():
        return staff.user

    def current_active_staff():
        if staff.user is None:
            from fastapi import HTTPException

            raise HTTPException(status_code=401, detail="Not authenticated")
        return staff.user

    application.dependency_overrides[get_client_directory] = lambda: directory
    application.dependency_overrides[deps.get_optional_staff_user] = current_staff
    application.dependency_overrides[deps.get_current_active_user] = current_active_staff
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db_override(app, db_session):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    return db_session


@pytest_asyncio.fixture()
async def async_client(app):
    """Client running on the test's event loop, for tests that share the database session"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
