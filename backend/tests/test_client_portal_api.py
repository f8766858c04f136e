import pytest

from dealer_portal.core.exceptions import ClientDirectoryError
from dealer_portal.web.dependencies import get_client_directory

from tests.conftest import DEALERSHIP_A
from tests.test_client_directory import seed_accounts

API = "/api/v1/client-portal"


def test_impersonation_requires_login(client):
    response = client.post(f"{API}/impersonation", json={"client_id": "42"})

    assert response.status_code == 401


def test_salesperson_cannot_impersonate(client, staff, salesperson):
    staff.user = salesperson

    response = client.post(f"{API}/impersonation", json={"client_id": "42"})

    assert response.status_code == 403


def test_start_impersonation_returns_preview_url(client, staff, super_admin):
    staff.user = super_admin

    response = client.post(f"{API}/impersonation", json={"client_id": "lead-42"})

    assert response.status_code == 200
    body = response.json()
    assert body["identity"]["id"] == "lead-42"
    assert body["identity"]["isPreview"] is True
    assert body["preview_url"] == "/client-preview?impersonateClientId=lead-42"

    status = client.get(f"{API}/impersonation").json()
    assert status == {"impersonating": True, "client_id": "lead-42"}

    # The portal picks the impersonation up in the same browser
    portal = client.get("/portal").json()
    assert portal["identity"]["id"] == "lead-42"


def test_start_impersonation_unknown_client(client, staff, super_admin):
    staff.user = super_admin

    response = client.post(f"{API}/impersonation", json={"client_id": "ghost-1"})

    assert response.status_code == 404
    assert client.get(f"{API}/impersonation").json()["impersonating"] is False


def test_start_impersonation_other_dealership_is_not_found(client, staff, dealership_admin):
    staff.user = dealership_admin

    response = client.post(f"{API}/impersonation", json={"client_id": "7"})

    assert response.status_code == 404


def test_start_impersonation_directory_outage_is_retryable(app, client, staff, super_admin):
    class FailingDirectory:
        async def find_by_id(self, client_id):
            raise ClientDirectoryError("database is down", client_id=client_id)

        async def find_by_email(self, email):
            raise ClientDirectoryError("database is down")

    app.dependency_overrides[get_client_directory] = FailingDirectory
    staff.user = super_admin

    response = client.post(f"{API}/impersonation", json={"client_id": "42"})

    assert response.status_code == 503
    assert response.json()["retryable"] is True
    assert client.get(f"{API}/impersonation").json()["impersonating"] is False


def test_stop_impersonation(client, staff, super_admin):
    staff.user = super_admin
    client.post(f"{API}/impersonation", json={"client_id": "42"})

    response = client.delete(f"{API}/impersonation")

    assert response.json() == {"impersonating": False, "client_id": None}
    assert client.get("/portal", follow_redirects=False).status_code == 303


def test_switching_clients_replaces_the_impersonation(client, staff, super_admin):
    staff.user = super_admin
    client.post(f"{API}/impersonation", json={"client_id": "42"})
    client.post(f"{API}/impersonation", json={"client_id": "7"})

    assert client.get(f"{API}/impersonation").json()["client_id"] == "7"


@pytest.mark.asyncio
async def test_super_admin_lists_all_accounts(async_client, staff, super_admin, db_override):
    await seed_accounts(db_override)
    staff.user = super_admin

    response = await async_client.get(f"{API}/accounts")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert body["pages"] == 1


@pytest.mark.asyncio
async def test_dealership_staff_list_only_their_accounts(async_client, staff, salesperson, db_override):
    await seed_accounts(db_override)
    staff.user = salesperson

    response = await async_client.get(f"{API}/accounts", params={"page_size": 1})

    body = response.json()
    assert body["total"] == 2
    assert body["pages"] == 2
    assert all(item["dealership_id"] == str(DEALERSHIP_A) for item in body["items"])


@pytest.mark.asyncio
async def test_get_account_hides_other_dealership(async_client, staff, dealership_admin, db_override):
    await seed_accounts(db_override)
    staff.user = dealership_admin

    response = await async_client.get(f"{API}/accounts/42")
    assert response.status_code == 200
    assert response.json()["has_portal_login"] is True

    assert (await async_client.get(f"{API}/accounts/7")).status_code == 404
