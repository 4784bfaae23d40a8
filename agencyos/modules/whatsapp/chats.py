# agencyos/modules/whatsapp/chats.py
from typing import List, Optional, Tuple

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.core.logging_config import trace_id_var
from agencyos.core.repository import utcnow
from agencyos.worker.tasks_whatsapp import send_whatsapp_message
from .models import WhatsAppChatInDB, WhatsAppMessageInDB
from .repository import (
    WhatsAppChatRepository,
    WhatsAppMessageRepository,
    get_whatsapp_chat_repository,
    get_whatsapp_message_repository,
)


class ChatService:
    def __init__(self, chat_repo: WhatsAppChatRepository, message_repo: WhatsAppMessageRepository):
        self.chat_repo = chat_repo
        self.message_repo = message_repo

    async def list_chats(self, organization_id: str) -> List[WhatsAppChatInDB]:
        return await self.chat_repo.list_recent(organization_id)

    async def _get_chat(self, organization_id: str, chat_id: str) -> WhatsAppChatInDB:
        chat = await self.chat_repo.get_by_chat_id(organization_id, chat_id)
        if not chat:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found.")
        return chat

    async def list_messages(self, organization_id: str, chat_id: str) -> List[WhatsAppMessageInDB]:
        await self._get_chat(organization_id, chat_id)
        return await self.message_repo.list_for_chat(organization_id, chat_id)

    async def send_chat_message(
        self,
        organization_id: str,
        chat_id: str,
        text: str,
        sender_name: str,
    ) -> Tuple[WhatsAppMessageInDB, Optional[str]]:
        """Stores the outgoing message as `pending` and queues the actual send."""
        chat = await self._get_chat(organization_id, chat_id)
        now = utcnow()
        message = await self.message_repo.create({
            "organization_id": organization_id,
            "chat_id": chat_id,
            "client_id": chat.client_id,
            "direction": "outgoing",
            "content": text,
            "sender_name": sender_name,
            "status": "pending",
            "timestamp": now,
            "is_read": True,
            "provider_type": "evolution",
        })
        await self.chat_repo.upsert_chat(organization_id, chat_id, {"last_message_at": now})

        job = send_whatsapp_message.delay(
            organization_id=organization_id,
            number=chat.phone or chat_id,
            text=text,
            message_db_id=message.id,
            trace_id=trace_id_var.get(),
        )
        logger.bind(service="ChatService", organization_id=organization_id, chat_id=chat_id).info(
            f"Outgoing message {message.id} queued (job {job.id})."
        )
        return message, job.id


async def get_chat_service(
    chat_repo: WhatsAppChatRepository = Depends(get_whatsapp_chat_repository),
    message_repo: WhatsAppMessageRepository = Depends(get_whatsapp_message_repository),
) -> ChatService:
    return ChatService(chat_repo, message_repo)
