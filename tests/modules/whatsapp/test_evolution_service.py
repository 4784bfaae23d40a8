# tests/modules/whatsapp/test_evolution_service.py
import json

import httpx
import pytest
import pytest_asyncio
from fastapi import HTTPException

from agencyos.core.config import settings
from agencyos.modules.whatsapp.models import EvolutionSettingsUpdateAPI
from agencyos.modules.whatsapp.repository import EvolutionInstanceRepository, EvolutionSettingsRepository
from agencyos.modules.whatsapp.services import EvolutionService

pytestmark = pytest.mark.asyncio

GLOBAL = settings.EVOLUTION_API_URL


@pytest.fixture
def service(db_client) -> EvolutionService:
    return EvolutionService(EvolutionSettingsRepository(db_client), EvolutionInstanceRepository(db_client))


@pytest_asyncio.fixture
async def instance(db_client, organization):
    return await EvolutionInstanceRepository(db_client).create({
        "organization_id": organization.id,
        "instance_name": "org_sales",
        "display_name": "Sales",
        "connection_status": "qr",
    })


async def test_global_settings_are_the_fallback(service, organization, instance, respx_mock):
    route = respx_mock.get(f"{GLOBAL}/instance/org_sales/connectionState").mock(
        return_value=httpx.Response(200, json={"instance": {"state": "open"}})
    )

    assert await service.get_connection_state(organization.id, instance.id) == "open"
    assert route.calls.last.request.headers["apikey"] == settings.EVOLUTION_API_KEY
    refreshed = await service.get_instance(organization.id, instance.id)
    assert refreshed.connection_status == "open"
    assert refreshed.last_connected_at is not None


async def test_organization_settings_win(service, organization, instance, respx_mock):
    await service.save_settings(organization.id, EvolutionSettingsUpdateAPI(server_url="https://own.evo.kz/", api_key="org-key"))
    route = respx_mock.get("https://own.evo.kz/instance/org_sales/connectionState").mock(
        return_value=httpx.Response(200, json={"state": "close"})
    )

    assert await service.get_connection_state(organization.id, instance.id) == "disconnected"
    assert route.calls.last.request.headers["apikey"] == "org-key"


async def test_unreachable_server_reads_as_disconnected(service, organization, instance, respx_mock):
    respx_mock.get(f"{GLOBAL}/instance/org_sales/connectionState").mock(side_effect=httpx.ConnectError("refused"))

    assert await service.get_connection_state(organization.id, instance.id) == "disconnected"


async def test_sending_on_network_failure_is_502(service, organization, instance, respx_mock):
    respx_mock.post(f"{GLOBAL}/message/sendText/org_sales").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(HTTPException) as exc_info:
        await service.send_text(organization.id, instance.id, "77011234567", "Hi")
    assert exc_info.value.status_code == 502


async def test_connect_stores_qr_code(service, organization, instance, respx_mock):
    respx_mock.get(f"{GLOBAL}/instance/org_sales/connect").mock(
        return_value=httpx.Response(200, json={"base64": "data:image/png;base64,QR", "pairingCode": "WZYEH1YY"})
    )

    result = await service.connect_instance(organization.id, instance.id)

    assert result.state == "qr"
    assert result.pairing_code == "WZYEH1YY"
    stored = await service.get_instance(organization.id, instance.id)
    assert stored.qr_code == "data:image/png;base64,QR"


async def test_create_instance_names_it_after_the_organization(service, organization, respx_mock):
    route = respx_mock.post(f"{GLOBAL}/instance/create").mock(return_value=httpx.Response(201, json={}))

    created = await service.create_instance(organization.id, "Sales Team")

    assert created.instance_name == f"org_{organization.id}_sales_team"
    assert json.loads(route.calls.last.request.content)["instanceName"] == created.instance_name

    with pytest.raises(HTTPException) as exc_info:
        await service.create_instance(organization.id, "Sales Team")
    assert exc_info.value.status_code == 409



async def test_same_display_name_in_two_organizations(service, organization, rival_organization, respx_mock):
    respx_mock.post(f"{GLOBAL}/instance/create").mock(return_value=httpx.Response(201, json={}))

    ours = await service.create_instance(organization.id, "Main")
    theirs = await service.create_instance(rival_organization.id, "Main")

    assert ours.instance_name != theirs.instance_name
    assert theirs.organization_id == rival_organization.id


async def test_send_via_active_instance_needs_an_open_instance(service, organization, instance, respx_mock):
    assert await service.send_text_via_active_instance(organization.id, "77011234567", "Hi") is False

    await service.instance_repo.update(instance.id, {"connection_status": "open"})
    route = respx_mock.post(f"{GLOBAL}/message/sendText/org_sales").mock(return_value=httpx.Response(201, json={}))

    assert await service.send_text_via_active_instance(organization.id, "77011234567", "Hi") is True
    assert route.called


async def test_delete_removes_instance_even_if_remote_fails(service, organization, instance, respx_mock):
    respx_mock.delete(f"{GLOBAL}/instance/org_sales/delete").mock(return_value=httpx.Response(500, json={"error": "boom"}))

    await service.delete_instance(organization.id, instance.id)

    with pytest.raises(HTTPException) as exc_info:
        await service.get_instance(organization.id, instance.id)
    assert exc_info.value.status_code == 404


async def test_test_connection_records_health(service, organization, respx_mock):
    await service.save_settings(organization.id, EvolutionSettingsUpdateAPI(server_url="https://own.evo.kz", api_key="org-key"))
    respx_mock.get("https://own.evo.kz/instance/fetchInstances").mock(return_value=httpx.Response(200, json=[{}, {}]))

    result = await service.test_connection(organization.id)

    assert result.ok
    assert result.instances_found == 2
    assert (await service.get_settings(organization.id)).health_status == "healthy"
