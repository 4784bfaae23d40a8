# tests/api/test_whatsapp_api.py
import asyncio

import httpx
import pytest
import pytest_asyncio

from agencyos.core.config import settings
from agencyos.core.security import create_access_token
from agencyos.main import app
from agencyos.modules.whatsapp.poller import PairingSnapshot, QrPairingPoller
from agencyos.modules.whatsapp.repository import EvolutionInstanceRepository
from agencyos.modules.whatsapp.routers import get_qr_poller

pytestmark = pytest.mark.asyncio

INSTANCES = f"{settings.API_V1_STR}/whatsapp/instances"


@pytest_asyncio.fixture
async def poller():
    poller = QrPairingPoller(interval=0.01, timeout=None)
    app.dependency_overrides[get_qr_poller] = lambda: poller
    yield poller
    await poller.close()


@pytest_asyncio.fixture
async def pairing_instance(db_client, organization, poller):
    instance = await EvolutionInstanceRepository(db_client).create({
        "organization_id": organization.id,
        "instance_name": "org_sales",
        "display_name": "Sales",
        "connection_status": "qr",
    })

    async def still_connecting():
        return PairingSnapshot(state="connecting")

    poller.start(instance.id, still_connecting)
    await asyncio.sleep(0)
    return instance


async def test_foreign_admin_cannot_stop_pairing_by_deleting(test_client, db_client, rival_admin, pairing_instance, poller):
    token = create_access_token(data={"sub": rival_admin.email, "uid": rival_admin.id})

    response = await test_client.delete(
        f"{INSTANCES}/{pairing_instance.id}", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 404
    assert poller.is_polling(pairing_instance.id)
    assert await EvolutionInstanceRepository(db_client).get_by_id(pairing_instance.id) is not None


async def test_owner_delete_stops_pairing(authenticated_client, db_client, pairing_instance, poller, respx_mock):
    respx_mock.delete(f"{settings.EVOLUTION_API_URL}/instance/org_sales/delete").mock(
        return_value=httpx.Response(200, json={"status": "SUCCESS"})
    )

    response = await authenticated_client.delete(f"{INSTANCES}/{pairing_instance.id}")

    assert response.status_code == 204
    assert not poller.is_polling(pairing_instance.id)
    assert await EvolutionInstanceRepository(db_client).get_by_id(pairing_instance.id) is None
