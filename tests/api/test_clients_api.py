# tests/api/test_clients_api.py
import pytest

from agencyos.core.config import settings
from agencyos.core.security import create_access_token

pytestmark = pytest.mark.asyncio

CLIENTS = f"{settings.API_V1_STR}/clients/"


async def test_client_crud(authenticated_client):
    created = await authenticated_client.post(CLIENTS, json={"name": "Acme", "phone": "77011234567", "budget": 500000})
    assert created.status_code == 201
    client_id = created.json()["id"]
    assert created.json()["status"] == "New Lead"

    listed = await authenticated_client.get(CLIENTS)
    assert [c["id"] for c in listed.json()] == [client_id]

    updated = await authenticated_client.patch(f"{CLIENTS}{client_id}", json={"status": "Presentation"})
    assert updated.status_code == 200
    assert updated.json()["status"] == "Presentation"

    deleted = await authenticated_client.delete(f"{CLIENTS}{client_id}")
    assert deleted.status_code == 204
    assert (await authenticated_client.get(f"{CLIENTS}{client_id}")).status_code == 404


async def test_invalid_status_is_422(authenticated_client):
    response = await authenticated_client.post(CLIENTS, json={"name": "Acme", "status": "Maybe"})

    assert response.status_code == 422


async def test_members_cannot_delete_clients(test_client, member_user, db_client, organization):
    client = await db_client["clients"].insert_one({"organization_id": organization.id, "name": "Acme"})
    token = create_access_token(data={"sub": member_user.email, "uid": member_user.id})

    response = await test_client.delete(
        f"{CLIENTS}{client.inserted_id}", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 403


async def test_clients_are_scoped_to_the_organization(authenticated_client, db_client):
    await db_client["clients"].insert_one({"organization_id": "another-org", "name": "Foreign"})

    response = await authenticated_client.get(CLIENTS)

    assert response.json() == []
