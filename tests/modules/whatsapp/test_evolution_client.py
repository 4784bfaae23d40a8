# tests/modules/whatsapp/test_evolution_client.py
import json

import httpx
import pytest

from agencyos.modules.whatsapp.client import EvolutionApiError, EvolutionClient

pytestmark = pytest.mark.asyncio

SERVER = "https://evo.agency.kz"


@pytest.fixture
def client() -> EvolutionClient:
    return EvolutionClient(SERVER + "/", "secret-key", timeout=5)


async def test_fetch_instances_wraps_list_body(client, respx_mock):
    route = respx_mock.get(f"{SERVER}/instance/fetchInstances").mock(
        return_value=httpx.Response(200, json=[{"name": "a"}, {"name": "b"}])
    )

    response = await client.fetch_instances()

    assert response.ok
    assert response.data == {"items": [{"name": "a"}, {"name": "b"}]}
    assert route.calls.last.request.headers["apikey"] == "secret-key"


async def test_send_text_posts_number_and_text(client, respx_mock):
    route = respx_mock.post(f"{SERVER}/message/sendText/org_1_sales").mock(
        return_value=httpx.Response(201, json={"key": {"id": "MSG1"}})
    )

    response = await client.send_text("org_1_sales", "77011234567", "Hello")

    assert response.ok
    assert response.status_code == 201
    assert json.loads(route.calls.last.request.content) == {"number": "77011234567", "text": "Hello"}


async def test_create_instance_registers_webhook(client, respx_mock):
    route = respx_mock.post(f"{SERVER}/instance/create").mock(return_value=httpx.Response(201, json={"instance": {}}))

    await client.create_instance("org_1_sales", webhook_url="https://api.agency.kz/hook", events=["MESSAGES_UPSERT"])

    body = json.loads(route.calls.last.request.content)
    assert body["instanceName"] == "org_1_sales"
    assert body["webhookUrl"] == "https://api.agency.kz/hook"
    assert body["webhookEvents"] == ["MESSAGES_UPSERT"]
    assert body["qrcode"] is True


async def test_error_status_is_returned_not_raised(client, respx_mock):
    respx_mock.delete(f"{SERVER}/instance/org_1_sales/logout").mock(
        return_value=httpx.Response(404, json={"message": "instance not found"})
    )

    response = await client.logout("org_1_sales")

    assert not response.ok
    assert response.error_message == "instance not found"


async def test_non_json_body_is_kept_raw(client, respx_mock):
    respx_mock.get(f"{SERVER}/instance/org_1_sales/connect").mock(return_value=httpx.Response(502, text="Bad gateway"))

    response = await client.connect("org_1_sales")

    assert response.data == {"raw": "Bad gateway"}
    assert response.error_message == "Bad gateway"


async def test_network_failures_raise_evolution_error(client, respx_mock):
    respx_mock.get(f"{SERVER}/instance/org_1_sales/connectionState").mock(side_effect=httpx.ConnectTimeout("slow"))
    respx_mock.post(f"{SERVER}/instance/org_1_sales/restart").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(EvolutionApiError):
        await client.connection_state("org_1_sales")
    with pytest.raises(EvolutionApiError):
        await client.restart("org_1_sales")
