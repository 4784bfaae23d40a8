# agencyos/modules/whatsapp/models.py
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId

# --- Constants ---
CONNECTION_STATUSES = Literal["disconnected", "connecting", "open", "close", "qr"]
HEALTH_STATUSES = Literal["unknown", "healthy", "unhealthy"]
MESSAGE_DIRECTIONS = Literal["incoming", "outgoing"]
MESSAGE_STATUSES = Literal["pending", "sent", "delivered", "read", "failed"]
MEDIA_TYPES = Literal["image", "video", "audio", "document"]

WEBHOOK_EVENTS = [
    "QRCODE_UPDATED",
    "CONNECTION_UPDATE",
    "MESSAGES_UPSERT",
    "MESSAGES_UPDATE",
    "SEND_MESSAGE",
]


# --- Evolution settings (per organization) ---
class EvolutionSettingsInDB(BaseModel):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    server_url: str
    api_key: str
    is_active: bool = True
    last_health_check: Optional[datetime] = None
    health_status: HEALTH_STATUSES = "unknown"
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class EvolutionSettingsAPI(BaseModel):
    server_url: str
    api_key_masked: str
    is_active: bool
    last_health_check: Optional[datetime] = None
    health_status: HEALTH_STATUSES

    @classmethod
    def from_db(cls, settings_db: EvolutionSettingsInDB) -> "EvolutionSettingsAPI":
        key = settings_db.api_key
        masked = f"{key[:4]}...{key[-4:]}" if len(key) > 8 else "****"
        return cls(
            server_url=settings_db.server_url,
            api_key_masked=masked,
            is_active=settings_db.is_active,
            last_health_check=settings_db.last_health_check,
            health_status=settings_db.health_status,
        )


class EvolutionSettingsUpdateAPI(BaseModel):
    server_url: str = Field(..., min_length=1)
    api_key: str = Field(..., min_length=1)
    is_active: bool = True


class ConnectionTestAPI(BaseModel):
    ok: bool
    health_status: HEALTH_STATUSES
    instances_found: int = 0
    error: Optional[str] = None


# --- Instances ---
class EvolutionInstanceInDB(BaseModel):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    instance_name: str
    display_name: str
    phone_number: Optional[str] = None
    connection_status: CONNECTION_STATUSES = "disconnected"
    qr_code: Optional[str] = None
    qr_code_updated_at: Optional[datetime] = None
    pairing_code: Optional[str] = None
    webhook_configured: bool = False
    last_connected_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class EvolutionInstanceAPI(BaseModel):
    id: str
    instance_name: str
    display_name: str
    phone_number: Optional[str] = None
    connection_status: CONNECTION_STATUSES
    qr_code: Optional[str] = None
    pairing_code: Optional[str] = None
    webhook_configured: bool
    last_connected_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InstanceCreateAPI(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=64)


class ConnectResultAPI(BaseModel):
    qr_code: Optional[str] = None
    pairing_code: Optional[str] = None
    state: CONNECTION_STATUSES
    polling: bool = False


class ConnectionStateAPI(BaseModel):
    state: CONNECTION_STATUSES


class PairingStatusAPI(BaseModel):
    polling: bool
    connection_status: CONNECTION_STATUSES
    qr_code: Optional[str] = None
    phone_number: Optional[str] = None


# --- Sending ---
class SendTextAPI(BaseModel):
    number: str = Field(..., min_length=5)
    text: str = Field(..., min_length=1)


class SendMediaAPI(BaseModel):
    number: str = Field(..., min_length=5)
    mediatype: MEDIA_TYPES
    media: str = Field(..., description="URL or base64 payload")
    caption: str = ""
    file_name: Optional[str] = None


class SendAudioAPI(BaseModel):
    number: str = Field(..., min_length=5)
    audio: str = Field(..., description="URL or base64 payload")


class SendResultAPI(BaseModel):
    ok: bool
    status_code: int
    data: Dict[str, Any] = Field(default_factory=dict)


# --- Chats & messages ---
class WhatsAppChatInDB(BaseModel):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    chat_id: str
    chat_name: str
    chat_type: Literal["individual", "group"] = "individual"
    client_id: Optional[str] = None
    phone: Optional[str] = None
    instance_name: Optional[str] = None
    last_message_at: Optional[datetime] = None
    provider_type: str = "evolution"
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class WhatsAppChatAPI(BaseModel):
    id: str
    chat_id: str
    chat_name: str
    chat_type: str
    client_id: Optional[str] = None
    phone: Optional[str] = None
    last_message_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WhatsAppMessageInDB(BaseModel):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    chat_id: str
    client_id: Optional[str] = None
    message_id: Optional[str] = None
    direction: MESSAGE_DIRECTIONS
    content: str = ""
    sender_name: str = "Unknown"
    status: MESSAGE_STATUSES = "sent"
    timestamp: datetime
    media_url: Optional[str] = None
    media_type: Optional[MEDIA_TYPES] = None
    media_filename: Optional[str] = None
    is_read: bool = False
    provider_type: str = "evolution"
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class WhatsAppMessageAPI(BaseModel):
    id: str
    chat_id: str
    client_id: Optional[str] = None
    message_id: Optional[str] = None
    direction: MESSAGE_DIRECTIONS
    content: str
    sender_name: str
    status: MESSAGE_STATUSES
    timestamp: datetime
    media_url: Optional[str] = None
    media_type: Optional[MEDIA_TYPES] = None
    media_filename: Optional[str] = None
    is_read: bool

    model_config = ConfigDict(from_attributes=True)


class ChatMessageCreateAPI(BaseModel):
    text: str = Field(..., min_length=1)
