import pytest

from dealer_portal.api import deps
from dealer_portal.core.permissions import UserRole
from dealer_portal.core.security import create_access_token, get_password_hash
from dealer_portal.models import Dealership, User

from tests.conftest import DEALERSHIP_A
from tests.test_client_directory import seed_accounts


async def create_staff(db, role=UserRole.DEALERSHIP_ADMIN, is_active=True):
    user = User(
        email="owner@northside.dev",
        password_hash=get_password_hash("staff-pass"),
        first_name="Nora",
        last_name="Owner",
        role=role,
        dealership_id=DEALERSHIP_A,
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    return user


@pytest.fixture()
def real_staff_auth(app):
    app.dependency_overrides.pop(deps.get_optional_staff_user, None)
    app.dependency_overrides.pop(deps.get_current_active_user, None)
    return app


@pytest.mark.asyncio
async def test_login_sets_staff_cookie_and_me_works(async_client, db_override, real_staff_auth):
    db_override.add(Dealership(id=DEALERSHIP_A, name="Northside Motors"))
    await create_staff(db_override)

    response = await async_client.post(
        "/api/v1/auth/login",
        data={"username": "OWNER@northside.dev", "password": "staff-pass"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "dealership_admin"
    assert "staff_token=" in response.headers["set-cookie"]

    me = await async_client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {body['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["email"] == "owner@northside.dev"


@pytest.mark.asyncio
async def test_login_rejects_wrong_password(async_client, db_override, real_staff_auth):
    await create_staff(db_override)

    response = await async_client.post(
        "/api/v1/auth/login",
        data={"username": "owner@northside.dev", "password": "nope"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_requires_token(async_client, db_override, real_staff_auth):
    response = await async_client.get("/api/v1/auth/me")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_client_preview_with_staff_cookie(async_client, db_override, real_staff_auth):
    await seed_accounts(db_override)
    await create_staff(db_override)
    await async_client.post(
        "/api/v1/auth/login",
        data={"username": "owner@northside.dev", "password": "staff-pass"},
    )

    response = await async_client.get("/client-preview", params={"impersonateClientId": "42"})

    assert response.status_code == 200
    assert response.json()["identity"]["name"] == "Ada Lovelace"


@pytest.mark.asyncio
async def test_client_preview_ignores_inactive_staff(async_client, db_override, real_staff_auth):
    user = await create_staff(db_override, is_active=False)
    token = create_access_token(str(user.id))

    response = await async_client.get(
        "/client-preview",
        params={"impersonateClientId": "42"},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/login"
