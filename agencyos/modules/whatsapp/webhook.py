# agencyos/modules/whatsapp/webhook.py

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends
from loguru import logger

from agencyos.core.repository import utcnow
from agencyos.modules.ai_agents.repository import AIAgentRepository, get_ai_agent_repository
from agencyos.modules.clients.repository import ClientRepository, get_client_repository
from .repository import (
    EvolutionInstanceRepository,
    WebhookLogRepository,
    WhatsAppChatRepository,
    WhatsAppMessageRepository,
    get_evolution_instance_repository,
    get_webhook_log_repository,
    get_whatsapp_chat_repository,
    get_whatsapp_message_repository,
)
from .services import normalize_state

MESSAGE_STATUS_CODES = {1: "sent", 2: "delivered", 3: "read"}


def normalize_phone(phone: str) -> str:
    """Digits only; local 8XXXXXXXXXX and bare 10-digit numbers become +7 numbers."""
    cleaned = re.sub(r"\D", "", phone)
    if cleaned.startswith("8") and len(cleaned) == 11:
        cleaned = "7" + cleaned[1:]
    if len(cleaned) == 10:
        cleaned = "7" + cleaned
    return cleaned


def extract_content(message: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    """Text and media fields of a Baileys message body."""
    m = message or {}
    result: Dict[str, Optional[str]] = {"content": "", "media_url": None, "media_type": None, "media_filename": None}
    if m.get("conversation"):
        result["content"] = m["conversation"]
    elif m.get("extendedTextMessage"):
        result["content"] = m["extendedTextMessage"].get("text") or ""
    elif m.get("imageMessage"):
        result.update(content=m["imageMessage"].get("caption") or "[Image]",
                      media_url=m["imageMessage"].get("url"), media_type="image")
    elif m.get("videoMessage"):
        result.update(content=m["videoMessage"].get("caption") or "[Video]",
                      media_url=m["videoMessage"].get("url"), media_type="video")
    elif m.get("audioMessage"):
        result.update(content="[Audio]", media_url=m["audioMessage"].get("url"), media_type="audio")
    elif m.get("documentMessage"):
        doc = m["documentMessage"]
        result.update(content=doc.get("caption") or "[Document]", media_url=doc.get("url"),
                      media_type="document", media_filename=doc.get("fileName"))
    return result


def _message_time(raw_timestamp: Any) -> datetime:
    try:
        seconds = int(raw_timestamp)
    except (TypeError, ValueError):
        return utcnow()
    if seconds <= 0:
        return utcnow()
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


class EvolutionWebhookProcessor:
    """Applies Evolution API webhook events to instances, chats, messages and clients."""

    def __init__(
        self,
        instance_repo: EvolutionInstanceRepository,
        chat_repo: WhatsAppChatRepository,
        message_repo: WhatsAppMessageRepository,
        client_repo: ClientRepository,
        webhook_log_repo: WebhookLogRepository,
        agent_repo: AIAgentRepository,
    ):
        self.instance_repo = instance_repo
        self.chat_repo = chat_repo
        self.message_repo = message_repo
        self.client_repo = client_repo
        self.webhook_log_repo = webhook_log_repo
        self.agent_repo = agent_repo

    async def process(self, payload: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        """Returns the HTTP status code and body to answer the webhook with."""
        event = payload.get("event") or "unknown"
        instance_name = payload.get("instance")
        log = logger.bind(service="EvolutionWebhook", event=event, instance=instance_name)

        await self.webhook_log_repo.log("evolution_api", event, payload, instance_name)

        if not instance_name:
            return 400, {"error": "no instance"}
        instance = await self.instance_repo.get_by_name(instance_name)
        if not instance:
            log.warning("Webhook for unknown instance.")
            return 404, {"error": "instance not found"}

        data = payload.get("data") or {}
        if event == "QRCODE_UPDATED":
            await self._on_qrcode_updated(instance.id, data)
        elif event == "CONNECTION_UPDATE":
            await self._on_connection_update(instance.id, data)
        elif event == "MESSAGES_UPSERT":
            outcome = await self._on_message_upsert(instance.organization_id, instance_name, data)
            if outcome:
                return 200, {"status": outcome}
        elif event == "MESSAGES_UPDATE":
            await self._on_message_update(data)
        else:
            log.debug("Event acknowledged without processing.")

        return 200, {"status": "ok", "event": event}

    async def _on_qrcode_updated(self, instance_id: str, data: Dict[str, Any]) -> None:
        qrcode = data.get("qrcode")
        qr = qrcode.get("base64") if isinstance(qrcode, dict) else qrcode
        if qr:
            await self.instance_repo.update(instance_id, {
                "qr_code": qr,
                "qr_code_updated_at": utcnow(),
                "connection_status": "qr",
            })

    async def _on_connection_update(self, instance_id: str, data: Dict[str, Any]) -> None:
        state = data.get("state")
        if not state:
            return
        updates: Dict[str, Any] = {"connection_status": normalize_state(state)}
        if state == "open":
            updates["last_connected_at"] = utcnow()
            updates["error_message"] = None
            wuid = (data.get("instance") or {}).get("wuid") or data.get("wuid")
            if wuid:
                updates["phone_number"] = wuid.split("@")[0]
        await self.instance_repo.update(instance_id, updates)

    async def _on_message_upsert(self, organization_id: str, instance_name: str, msg: Dict[str, Any]) -> Optional[str]:
        key = msg.get("key")
        if not key:
            return "ignored"

        message_id = key.get("id")
        if message_id and await self.message_repo.get_by_message_id(message_id):
            return "duplicate"

        remote_jid: str = key.get("remoteJid") or ""
        from_me = bool(key.get("fromMe"))
        is_group = "@g.us" in remote_jid
        push_name = msg.get("pushName")

        phone = normalize_phone(remote_jid.split("@")[0]) if remote_jid and not is_group else None

        client_id = None
        if phone:
            client = await self.client_repo.find_by_phone(organization_id, phone)
            if client:
                client_id = client.id
            elif not from_me:
                client = await self.client_repo.create({
                    "organization_id": organization_id,
                    "name": push_name or phone,
                    "phone": phone,
                    "status": "lead",
                    "source": "WhatsApp",
                })
                client_id = client.id
                logger.bind(service="EvolutionWebhook", organization_id=organization_id).info(
                    f"Lead created from incoming WhatsApp message: {client_id}"
                )

        content = extract_content(msg.get("message"))
        timestamp = _message_time(msg.get("messageTimestamp"))

        await self.chat_repo.upsert_chat(organization_id, remote_jid, {
            "chat_name": (push_name or remote_jid) if is_group else (phone or remote_jid),
            "chat_type": "group" if is_group else "individual",
            "client_id": client_id,
            "phone": phone,
            "instance_name": instance_name,
            "last_message_at": timestamp,
            "provider_type": "evolution",
        })
        await self.message_repo.create({
            "organization_id": organization_id,
            "chat_id": remote_jid,
            "client_id": client_id,
            "message_id": message_id,
            "direction": "outgoing" if from_me else "incoming",
            "sender_name": push_name or phone or "Unknown",
            "status": "sent",
            "timestamp": timestamp,
            "is_read": from_me,
            "provider_type": "evolution",
            **content,
        })

        if not from_me:
            await self._notify_agents(organization_id, client_id, content["content"])
        return None

    async def _on_message_update(self, data: Dict[str, Any]) -> None:
        message_id = (data.get("key") or {}).get("id")
        status_code = (data.get("update") or {}).get("status")
        if message_id and status_code is not None:
            new_status = MESSAGE_STATUS_CODES.get(status_code, "sent")
            await self.message_repo.update_status_by_message_id(message_id, new_status)

    async def _notify_agents(self, organization_id: str, client_id: Optional[str], text: str) -> None:
        agents = await self.agent_repo.list_active_by_trigger(organization_id, "whatsapp_incoming")
        for agent in agents:
            logger.bind(service="EvolutionWebhook", agent_id=agent.id).info(
                f"Agent '{agent.name}' triggered by incoming WhatsApp message (client {client_id}): {text[:80]}"
            )


async def get_evolution_webhook_processor(
    instance_repo: EvolutionInstanceRepository = Depends(get_evolution_instance_repository),
    chat_repo: WhatsAppChatRepository = Depends(get_whatsapp_chat_repository),
    message_repo: WhatsAppMessageRepository = Depends(get_whatsapp_message_repository),
    client_repo: ClientRepository = Depends(get_client_repository),
    webhook_log_repo: WebhookLogRepository = Depends(get_webhook_log_repository),
    agent_repo: AIAgentRepository = Depends(get_ai_agent_repository),
) -> EvolutionWebhookProcessor:
    return EvolutionWebhookProcessor(instance_repo, chat_repo, message_repo, client_repo, webhook_log_repo, agent_repo)
