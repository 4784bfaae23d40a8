# tests/modules/whatsapp/test_webhook.py
import pytest
import pytest_asyncio

from agencyos.modules.ai_agents.repository import AIAgentRepository
from agencyos.modules.clients.repository import ClientRepository
from agencyos.modules.whatsapp.repository import (
    EvolutionInstanceRepository,
    WebhookLogRepository,
    WhatsAppChatRepository,
    WhatsAppMessageRepository,
)
from agencyos.modules.whatsapp.webhook import EvolutionWebhookProcessor

pytestmark = pytest.mark.asyncio


@pytest.fixture
def processor(db_client) -> EvolutionWebhookProcessor:
    return EvolutionWebhookProcessor(
        EvolutionInstanceRepository(db_client),
        WhatsAppChatRepository(db_client),
        WhatsAppMessageRepository(db_client),
        ClientRepository(db_client),
        WebhookLogRepository(db_client),
        AIAgentRepository(db_client),
    )


@pytest_asyncio.fixture
async def instance(db_client, organization):
    return await EvolutionInstanceRepository(db_client).create({
        "organization_id": organization.id,
        "instance_name": "org_sales",
        "display_name": "Sales",
        "connection_status": "qr",
    })


def _incoming(message_id: str, text: str = "Здравствуйте, сколько стоит SMM?", from_me: bool = False) -> dict:
    return {
        "event": "MESSAGES_UPSERT",
        "instance": "org_sales",
        "data": {
            "key": {"id": message_id, "remoteJid": "87011234567@s.whatsapp.net", "fromMe": from_me},
            "pushName": "Dana",
            "message": {"conversation": text},
            "messageTimestamp": 1767225600,
        },
    }


async def test_missing_and_unknown_instances(processor, db_client):
    assert (await processor.process({"event": "MESSAGES_UPSERT"}))[0] == 400
    assert (await processor.process({"event": "MESSAGES_UPSERT", "instance": "ghost"}))[0] == 404
    assert await db_client["webhook_logs"].count_documents({}) == 2


async def test_incoming_message_creates_lead_chat_and_message(processor, db_client, organization, instance):
    status_code, body = await processor.process(_incoming("MSG-1"))

    assert status_code == 200
    assert body["status"] == "ok"

    clients = await ClientRepository(db_client).list_for_org(organization.id)
    assert len(clients) == 1
    assert clients[0].phone == "77011234567"
    assert clients[0].name == "Dana"
    assert clients[0].status == "lead"
    assert clients[0].source == "WhatsApp"

    chat = await WhatsAppChatRepository(db_client).get_by_chat_id(organization.id, "87011234567@s.whatsapp.net")
    assert chat.client_id == clients[0].id
    assert chat.chat_type == "individual"

    message = await WhatsAppMessageRepository(db_client).get_by_message_id("MSG-1")
    assert message.direction == "incoming"
    assert message.content.startswith("Здравствуйте")
    assert message.is_read is False


async def test_duplicate_message_is_ignored(processor, db_client, organization, instance):
    await processor.process(_incoming("MSG-1"))

    status_code, body = await processor.process(_incoming("MSG-1"))

    assert (status_code, body) == (200, {"status": "duplicate"})
    assert await WhatsAppMessageRepository(db_client).count_for_org(organization.id) == 1


async def test_known_client_is_reused(processor, db_client, organization, instance):
    existing = await ClientRepository(db_client).create({
        "organization_id": organization.id, "name": "Dana K.", "phone": "77011234567", "status": "In Work",
    })

    await processor.process(_incoming("MSG-2"))

    assert await ClientRepository(db_client).count_for_org(organization.id) == 1
    message = await WhatsAppMessageRepository(db_client).get_by_message_id("MSG-2")
    assert message.client_id == existing.id


async def test_outgoing_message_does_not_create_lead(processor, db_client, organization, instance):
    await processor.process(_incoming("MSG-3", text="Добрый день!", from_me=True))

    assert await ClientRepository(db_client).count_for_org(organization.id) == 0
    message = await WhatsAppMessageRepository(db_client).get_by_message_id("MSG-3")
    assert message.direction == "outgoing"
    assert message.is_read is True


async def test_message_status_updates(processor, db_client, instance):
    await processor.process(_incoming("MSG-4"))

    await processor.process({
        "event": "MESSAGES_UPDATE",
        "instance": "org_sales",
        "data": {"key": {"id": "MSG-4"}, "update": {"status": 3}},
    })

    assert (await WhatsAppMessageRepository(db_client).get_by_message_id("MSG-4")).status == "read"


async def test_connection_update_records_phone(processor, db_client, instance):
    await processor.process({
        "event": "CONNECTION_UPDATE",
        "instance": "org_sales",
        "data": {"state": "open", "wuid": "77017654321@s.whatsapp.net"},
    })

    updated = await EvolutionInstanceRepository(db_client).get_by_id(instance.id)
    assert updated.connection_status == "open"
    assert updated.phone_number == "77017654321"
    assert updated.last_connected_at is not None


async def test_qrcode_update_stores_qr(processor, db_client, instance):
    await processor.process({
        "event": "QRCODE_UPDATED",
        "instance": "org_sales",
        "data": {"qrcode": {"base64": "data:image/png;base64,NEW"}},
    })

    updated = await EvolutionInstanceRepository(db_client).get_by_id(instance.id)
    assert updated.qr_code == "data:image/png;base64,NEW"
    assert updated.connection_status == "qr"


async def test_unhandled_event_is_acknowledged(processor, instance):
    assert await processor.process({"event": "SEND_MESSAGE", "instance": "org_sales"}) == (
        200, {"status": "ok", "event": "SEND_MESSAGE"}
    )
