# agencyos/modules/whatsapp/repository.py
from typing import Any, Dict, List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository, utcnow
from .models import (
    EvolutionInstanceInDB,
    EvolutionSettingsInDB,
    WhatsAppChatInDB,
    WhatsAppMessageInDB,
)


class EvolutionSettingsRepository(TenantRepository[EvolutionSettingsInDB]):
    model = EvolutionSettingsInDB
    collection_name = "evolution_settings"

    async def get_for_organization(self, organization_id: str) -> Optional[EvolutionSettingsInDB]:
        return await self.get_by({"organization_id": organization_id})

    async def upsert_for_organization(self, organization_id: str, data: Dict[str, Any]) -> EvolutionSettingsInDB:
        now = utcnow()
        try:
            document = await self.collection.find_one_and_update(
                {"organization_id": organization_id},
                {
                    "$set": {**data, "updated_at": now},
                    "$setOnInsert": {"organization_id": organization_id, "created_at": now},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            self._handle_db_exception(e, "upsert_for_organization", query={"organization_id": organization_id})
        return self._validate(document)


class EvolutionInstanceRepository(TenantRepository[EvolutionInstanceInDB]):
    model = EvolutionInstanceInDB
    collection_name = "evolution_instances"

    async def get_by_name(self, instance_name: str) -> Optional[EvolutionInstanceInDB]:
        """Looks an instance up across tenants; used by the webhook only."""
        return await self.get_by({"instance_name": instance_name})

    async def get_active_instance(self, organization_id: str) -> Optional[EvolutionInstanceInDB]:
        """Most recently connected `open` instance of the organization."""
        return await self.get_by(
            {"organization_id": organization_id, "connection_status": "open"},
            sort=[("last_connected_at", DESCENDING)],
        )

    async def update_by_name(self, instance_name: str, data: Dict[str, Any]) -> Optional[EvolutionInstanceInDB]:
        instance = await self.get_by_name(instance_name)
        if not instance:
            return None
        return await self.update(instance.id, data)


class WhatsAppChatRepository(TenantRepository[WhatsAppChatInDB]):
    model = WhatsAppChatInDB
    collection_name = "whatsapp_chats"

    async def upsert_chat(self, organization_id: str, chat_id: str, data: Dict[str, Any]) -> WhatsAppChatInDB:
        now = utcnow()
        try:
            document = await self.collection.find_one_and_update(
                {"organization_id": organization_id, "chat_id": chat_id},
                {
                    "$set": {**data, "updated_at": now},
                    "$setOnInsert": {"organization_id": organization_id, "chat_id": chat_id, "created_at": now},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            self._handle_db_exception(e, "upsert_chat", query={"chat_id": chat_id})
        return self._validate(document)

    async def get_by_chat_id(self, organization_id: str, chat_id: str) -> Optional[WhatsAppChatInDB]:
        return await self.get_by({"organization_id": organization_id, "chat_id": chat_id})

    async def list_recent(self, organization_id: str, limit: int = 100) -> List[WhatsAppChatInDB]:
        return await self.list_for_org(organization_id, limit=limit, sort=[("last_message_at", DESCENDING)])


class WhatsAppMessageRepository(TenantRepository[WhatsAppMessageInDB]):
    model = WhatsAppMessageInDB
    collection_name = "whatsapp_messages"

    async def get_by_message_id(self, message_id: str) -> Optional[WhatsAppMessageInDB]:
        return await self.get_by({"message_id": message_id})

    async def update_status_by_message_id(self, message_id: str, new_status: str) -> bool:
        try:
            result = await self.collection.update_one(
                {"message_id": message_id},
                {"$set": {"status": new_status, "updated_at": utcnow()}},
            )
        except Exception as e:
            self._handle_db_exception(e, "update_status_by_message_id", query={"message_id": message_id})
        return result.modified_count > 0

    async def list_for_chat(self, organization_id: str, chat_id: str, limit: int = 200) -> List[WhatsAppMessageInDB]:
        return await self.list_for_org(
            organization_id, {"chat_id": chat_id}, limit=limit, sort=[("timestamp", ASCENDING)]
        )


class WebhookLogRepository:
    """Raw webhook payloads, kept for troubleshooting."""

    collection_name = "webhook_logs"

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[self.collection_name]

    async def log(self, source: str, event_type: str, payload: Dict[str, Any], instance_name: Optional[str] = None) -> None:
        await self.collection.insert_one({
            "source": source,
            "event_type": event_type,
            "instance_name": instance_name,
            "payload": payload,
            "created_at": utcnow(),
        })


async def get_evolution_settings_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> EvolutionSettingsRepository:
    return EvolutionSettingsRepository(db)


async def get_evolution_instance_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> EvolutionInstanceRepository:
    return EvolutionInstanceRepository(db)


async def get_whatsapp_chat_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> WhatsAppChatRepository:
    return WhatsAppChatRepository(db)


async def get_whatsapp_message_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> WhatsAppMessageRepository:
    return WhatsAppMessageRepository(db)


async def get_webhook_log_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> WebhookLogRepository:
    return WebhookLogRepository(db)
