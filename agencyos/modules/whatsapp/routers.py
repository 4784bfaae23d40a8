# agencyos/modules/whatsapp/routers.py
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from loguru import logger

from agencyos.core.security import CurrentUser, require_role
from agencyos.models.api_common import AcceptedResponse, StatusResponse
from .chats import ChatService, get_chat_service
from .models import (
    ChatMessageCreateAPI,
    ConnectionStateAPI,
    ConnectionTestAPI,
    ConnectResultAPI,
    EvolutionInstanceAPI,
    EvolutionSettingsAPI,
    EvolutionSettingsUpdateAPI,
    InstanceCreateAPI,
    PairingStatusAPI,
    SendAudioAPI,
    SendMediaAPI,
    SendResultAPI,
    SendTextAPI,
    WhatsAppChatAPI,
    WhatsAppMessageAPI,
)
from .poller import QrPairingPoller, qr_poller
from .services import EvolutionService, get_evolution_service
from .webhook import EvolutionWebhookProcessor, get_evolution_webhook_processor

whatsapp_router = APIRouter()


def get_qr_poller() -> QrPairingPoller:
    return qr_poller


# --- Settings ---

@whatsapp_router.get("/settings", response_model=Optional[EvolutionSettingsAPI])
async def read_settings(current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    org_settings = await service.get_settings(current_user.organization_id)
    return EvolutionSettingsAPI.from_db(org_settings) if org_settings else None


@whatsapp_router.put("/settings", response_model=EvolutionSettingsAPI)
async def save_settings(
    payload: EvolutionSettingsUpdateAPI,
    current_user=Depends(require_role(["admin"])),
    service: EvolutionService = Depends(get_evolution_service),
):
    return EvolutionSettingsAPI.from_db(await service.save_settings(current_user.organization_id, payload))


@whatsapp_router.post("/settings/test", response_model=ConnectionTestAPI)
async def test_connection(current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    return await service.test_connection(current_user.organization_id)


# --- Instances ---

@whatsapp_router.get("/instances", response_model=List[EvolutionInstanceAPI])
async def list_instances(current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    return [EvolutionInstanceAPI.model_validate(i) for i in await service.get_instances(current_user.organization_id)]


@whatsapp_router.post("/instances", response_model=EvolutionInstanceAPI, status_code=status.HTTP_201_CREATED)
async def create_instance(
    payload: InstanceCreateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: EvolutionService = Depends(get_evolution_service),
):
    instance = await service.create_instance(current_user.organization_id, payload.display_name, created_by=current_user.id)
    return EvolutionInstanceAPI.model_validate(instance)


@whatsapp_router.get("/instances/{instance_id}", response_model=EvolutionInstanceAPI)
async def get_instance(instance_id: str, current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    return EvolutionInstanceAPI.model_validate(await service.get_instance(current_user.organization_id, instance_id))


@whatsapp_router.post(
    "/instances/{instance_id}/connect",
    response_model=ConnectResultAPI,
    summary="Request a QR code and start polling until the phone is paired",
)
async def connect_instance(
    instance_id: str,
    current_user: CurrentUser,
    service: EvolutionService = Depends(get_evolution_service),
    poller: QrPairingPoller = Depends(get_qr_poller),
):
    return await service.start_pairing(current_user.organization_id, instance_id, poller)


@whatsapp_router.get(
    "/instances/{instance_id}/pair",
    summary="Connect and wait until the instance is paired or the poll times out",
)
async def pair_instance(
    instance_id: str,
    current_user: CurrentUser,
    service: EvolutionService = Depends(get_evolution_service),
    poller: QrPairingPoller = Depends(get_qr_poller),
) -> Dict[str, Any]:
    connect_result, result = await service.pair(current_user.organization_id, instance_id, poller)
    return {
        "connected": result.connected,
        "state": result.state,
        "qr_code": result.qr_code or connect_result.qr_code,
        "pairing_code": connect_result.pairing_code,
        "attempts": result.attempts,
    }


@whatsapp_router.get("/instances/{instance_id}/pairing", response_model=PairingStatusAPI)
async def pairing_status(
    instance_id: str,
    current_user: CurrentUser,
    service: EvolutionService = Depends(get_evolution_service),
    poller: QrPairingPoller = Depends(get_qr_poller),
):
    instance = await service.get_instance(current_user.organization_id, instance_id)
    return PairingStatusAPI(
        polling=poller.is_polling(instance.id),
        connection_status=instance.connection_status,
        qr_code=instance.qr_code,
        phone_number=instance.phone_number,
    )


@whatsapp_router.delete("/instances/{instance_id}/pairing", response_model=StatusResponse)
async def stop_pairing(
    instance_id: str,
    current_user: CurrentUser,
    service: EvolutionService = Depends(get_evolution_service),
    poller: QrPairingPoller = Depends(get_qr_poller),
):
    instance = await service.get_instance(current_user.organization_id, instance_id)
    stopped = poller.stop(instance.id)
    return StatusResponse(status="ok", message="Polling stopped." if stopped else "No active polling.")


@whatsapp_router.get("/instances/{instance_id}/state", response_model=ConnectionStateAPI)
async def connection_state(instance_id: str, current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    return ConnectionStateAPI(state=await service.get_connection_state(current_user.organization_id, instance_id))


@whatsapp_router.post("/instances/{instance_id}/restart", response_model=SendResultAPI)
async def restart_instance(instance_id: str, current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    response = await service.restart_instance(current_user.organization_id, instance_id)
    return SendResultAPI(ok=response.ok, status_code=response.status_code, data=response.data)


@whatsapp_router.post("/instances/{instance_id}/logout", response_model=SendResultAPI)
async def logout_instance(instance_id: str, current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    response = await service.logout_instance(current_user.organization_id, instance_id)
    return SendResultAPI(ok=response.ok, status_code=response.status_code, data=response.data)


@whatsapp_router.delete("/instances/{instance_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_instance(
    instance_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: EvolutionService = Depends(get_evolution_service),
    poller: QrPairingPoller = Depends(get_qr_poller),
):
    instance = await service.get_instance(current_user.organization_id, instance_id)
    poller.stop(instance.id)
    await service.delete_instance(current_user.organization_id, instance.id)


# --- Sending ---

@whatsapp_router.post("/instances/{instance_id}/send/text", response_model=SendResultAPI)
async def send_text(instance_id: str, payload: SendTextAPI, current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    return await service.send_text(current_user.organization_id, instance_id, payload.number, payload.text)


@whatsapp_router.post("/instances/{instance_id}/send/media", response_model=SendResultAPI)
async def send_media(instance_id: str, payload: SendMediaAPI, current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    return await service.send_media(
        current_user.organization_id, instance_id, payload.number, payload.mediatype,
        payload.media, payload.caption, payload.file_name,
    )


@whatsapp_router.post("/instances/{instance_id}/send/audio", response_model=SendResultAPI)
async def send_audio(instance_id: str, payload: SendAudioAPI, current_user: CurrentUser, service: EvolutionService = Depends(get_evolution_service)):
    return await service.send_audio(current_user.organization_id, instance_id, payload.number, payload.audio)


# --- Chats ---

@whatsapp_router.get("/chats", response_model=List[WhatsAppChatAPI])
async def list_chats(current_user: CurrentUser, service: ChatService = Depends(get_chat_service)):
    return [WhatsAppChatAPI.model_validate(c) for c in await service.list_chats(current_user.organization_id)]


@whatsapp_router.get("/chats/{chat_id}/messages", response_model=List[WhatsAppMessageAPI])
async def list_messages(chat_id: str, current_user: CurrentUser, service: ChatService = Depends(get_chat_service)):
    messages = await service.list_messages(current_user.organization_id, chat_id)
    return [WhatsAppMessageAPI.model_validate(m) for m in messages]


@whatsapp_router.post("/chats/{chat_id}/messages", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def send_chat_message(
    chat_id: str,
    payload: ChatMessageCreateAPI,
    current_user: CurrentUser,
    service: ChatService = Depends(get_chat_service),
):
    message, job_id = await service.send_chat_message(current_user.organization_id, chat_id, payload.text, current_user.name)
    return AcceptedResponse(message=f"Message {message.id} queued for sending.", job_id=job_id)


# --- Evolution webhook (called by the Evolution server, no auth) ---

@whatsapp_router.get("/webhook/evolution")
async def webhook_status():
    return {"status": "online", "message": "Evolution API webhook ready"}


@whatsapp_router.post("/webhook/evolution")
async def evolution_webhook(
    payload: Dict[str, Any] = Body(...),
    processor: EvolutionWebhookProcessor = Depends(get_evolution_webhook_processor),
):
    try:
        status_code, body = await processor.process(payload)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Evolution webhook processing failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook processing failed.")
    return JSONResponse(status_code=status_code, content=body)
