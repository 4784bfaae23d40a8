# agencyos/modules/whatsapp/services.py
import re
from typing import List, Optional, Tuple

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.core.config import settings
from agencyos.core.repository import utcnow
from .client import EvolutionApiError, EvolutionClient, EvolutionResponse
from .models import (
    WEBHOOK_EVENTS,
    ConnectionTestAPI,
    ConnectResultAPI,
    EvolutionInstanceInDB,
    EvolutionSettingsInDB,
    EvolutionSettingsUpdateAPI,
    SendResultAPI,
)
from .poller import PairingResult, PairingSnapshot, QrPairingPoller
from .repository import (
    EvolutionInstanceRepository,
    EvolutionSettingsRepository,
    get_evolution_instance_repository,
    get_evolution_settings_repository,
)

VALID_STATES = {"disconnected", "connecting", "open", "close", "qr"}


def build_instance_name(organization_id: str, display_name: str) -> str:
    """Evolution instance names are global, so the whole organization id goes in."""
    slug = re.sub(r"[^a-z0-9]", "_", display_name.lower())
    return f"org_{organization_id}_{slug}"


def extract_qr(data: dict) -> Optional[str]:
    """QR payload as returned by `/connect`: `qrcode.base64`, `qrcode` or `base64`."""
    qrcode = data.get("qrcode")
    if isinstance(qrcode, dict):
        qr = qrcode.get("base64")
        if qr:
            return qr
    elif qrcode:
        return qrcode
    return data.get("base64") or None


def normalize_state(raw_state: Optional[str]) -> str:
    state = raw_state or "disconnected"
    if state == "close":
        return "disconnected"
    return state if state in VALID_STATES else "connecting"


class EvolutionService:
    def __init__(self, settings_repo: EvolutionSettingsRepository, instance_repo: EvolutionInstanceRepository):
        self.settings_repo = settings_repo
        self.instance_repo = instance_repo

    # --- Connection settings ---

    async def _resolve_client(self, organization_id: str) -> EvolutionClient:
        """Organization settings win over the global EVOLUTION_API_* configuration."""
        org_settings = await self.settings_repo.get_for_organization(organization_id)
        if org_settings and org_settings.is_active:
            return EvolutionClient(org_settings.server_url, org_settings.api_key, settings.EVOLUTION_HTTP_TIMEOUT)
        if settings.EVOLUTION_API_URL and settings.EVOLUTION_API_KEY:
            return EvolutionClient(settings.EVOLUTION_API_URL, settings.EVOLUTION_API_KEY, settings.EVOLUTION_HTTP_TIMEOUT)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Evolution API is not configured.")

    async def _call(self, organization_id: str, operation: str, *args, **kwargs) -> EvolutionResponse:
        client = await self._resolve_client(organization_id)
        try:
            return await getattr(client, operation)(*args, **kwargs)
        except EvolutionApiError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    async def _get_instance(self, organization_id: str, instance_id: str) -> EvolutionInstanceInDB:
        instance = await self.instance_repo.get_for_org(organization_id, instance_id)
        if not instance:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="WhatsApp instance not found.")
        return instance

    async def get_settings(self, organization_id: str) -> Optional[EvolutionSettingsInDB]:
        return await self.settings_repo.get_for_organization(organization_id)

    async def save_settings(self, organization_id: str, payload: EvolutionSettingsUpdateAPI) -> EvolutionSettingsInDB:
        data = payload.model_dump()
        data["server_url"] = data["server_url"].rstrip("/")
        data["health_status"] = "unknown"
        saved = await self.settings_repo.upsert_for_organization(organization_id, data)
        logger.bind(service="EvolutionService", organization_id=organization_id).info("Evolution settings saved.")
        return saved

    async def test_connection(self, organization_id: str) -> ConnectionTestAPI:
        log = logger.bind(service="EvolutionService", organization_id=organization_id)
        client = await self._resolve_client(organization_id)
        try:
            response = await client.fetch_instances()
            result = ConnectionTestAPI(
                ok=response.ok,
                health_status="healthy" if response.ok else "unhealthy",
                instances_found=len(response.data.get("items", [])) if response.ok else 0,
                error=None if response.ok else response.error_message,
            )
        except EvolutionApiError as e:
            result = ConnectionTestAPI(ok=False, health_status="unhealthy", error=str(e))

        org_settings = await self.settings_repo.get_for_organization(organization_id)
        if org_settings:
            await self.settings_repo.update(org_settings.id, {
                "health_status": result.health_status,
                "last_health_check": utcnow(),
            })
        log.info(f"Evolution connection test: {result.health_status}")
        return result

    # --- Instances ---

    async def get_instances(self, organization_id: str) -> List[EvolutionInstanceInDB]:
        return await self.instance_repo.list_for_org(organization_id, limit=0)

    async def get_instance(self, organization_id: str, instance_id: str) -> EvolutionInstanceInDB:
        return await self._get_instance(organization_id, instance_id)

    async def get_active_instance(self, organization_id: str) -> Optional[EvolutionInstanceInDB]:
        return await self.instance_repo.get_active_instance(organization_id)

    async def create_instance(self, organization_id: str, display_name: str, created_by: Optional[str] = None) -> EvolutionInstanceInDB:
        log = logger.bind(service="EvolutionService", organization_id=organization_id)
        instance_name = build_instance_name(organization_id, display_name)
        if await self.instance_repo.get_by_name(instance_name):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="An instance with this name already exists.")

        response = await self._call(
            organization_id, "create_instance", instance_name,
            webhook_url=settings.EVOLUTION_WEBHOOK_URL, events=WEBHOOK_EVENTS,
        )
        if not response.ok:
            log.error(f"Evolution refused to create instance '{instance_name}': {response.error_message}")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=response.error_message)

        instance = await self.instance_repo.create({
            "organization_id": organization_id,
            "instance_name": instance_name,
            "display_name": display_name,
            "connection_status": "qr",
            "webhook_configured": True,
            "created_by": created_by,
        })
        log.success(f"Evolution instance created: {instance_name}")
        return instance

    async def connect_instance(self, organization_id: str, instance_id: str) -> ConnectResultAPI:
        instance = await self._get_instance(organization_id, instance_id)
        response = await self._call(organization_id, "connect", instance.instance_name)
        if not response.ok:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=response.error_message)

        qr = extract_qr(response.data)
        new_status = "qr" if qr else "connecting"
        await self.instance_repo.update(instance.id, {
            "qr_code": qr,
            "qr_code_updated_at": utcnow(),
            "pairing_code": response.data.get("pairingCode"),
            "connection_status": new_status,
        })
        return ConnectResultAPI(qr_code=qr, pairing_code=response.data.get("pairingCode"), state=new_status)

    async def get_connection_state(self, organization_id: str, instance_id: str) -> str:
        """Refreshes the stored status from Evolution. Any failure reads as `disconnected`."""
        instance = await self._get_instance(organization_id, instance_id)
        try:
            response = await self._call(organization_id, "connection_state", instance.instance_name)
        except HTTPException as e:
            logger.bind(service="EvolutionService", instance=instance.instance_name).warning(
                f"Connection state unavailable: {e.detail}"
            )
            return "disconnected"
        if not response.ok:
            return "disconnected"

        # v2 nests the state under `instance`
        raw_state = response.data.get("state") or (response.data.get("instance") or {}).get("state")
        state = normalize_state(raw_state)
        updates = {"connection_status": state}
        if state == "open":
            updates["last_connected_at"] = utcnow()
            updates["error_message"] = None
        await self.instance_repo.update(instance.id, updates)
        return state

    async def restart_instance(self, organization_id: str, instance_id: str) -> EvolutionResponse:
        instance = await self._get_instance(organization_id, instance_id)
        response = await self._call(organization_id, "restart", instance.instance_name)
        if response.ok:
            await self.instance_repo.update(instance.id, {"connection_status": "connecting"})
        return response

    async def logout_instance(self, organization_id: str, instance_id: str) -> EvolutionResponse:
        instance = await self._get_instance(organization_id, instance_id)
        response = await self._call(organization_id, "logout", instance.instance_name)
        await self.instance_repo.update(instance.id, {
            "connection_status": "disconnected",
            "phone_number": None,
            "qr_code": None,
            "last_connected_at": None,
        })
        return response

    async def delete_instance(self, organization_id: str, instance_id: str) -> None:
        """Removes the instance locally even when the remote delete fails."""
        instance = await self._get_instance(organization_id, instance_id)
        try:
            response = await self._call(organization_id, "delete", instance.instance_name)
            if not response.ok:
                logger.warning(f"Remote delete of '{instance.instance_name}' failed: {response.error_message}")
        except HTTPException as e:
            logger.warning(f"Remote delete of '{instance.instance_name}' failed: {e.detail}")
        await self.instance_repo.delete_for_org(organization_id, instance.id)

    # --- QR pairing ---

    async def pairing_snapshot(self, organization_id: str, instance_id: str) -> PairingSnapshot:
        state = await self.get_connection_state(organization_id, instance_id)
        # The webhook keeps the stored QR fresh
        instance = await self.instance_repo.get_for_org(organization_id, instance_id)
        return PairingSnapshot(state=state, qr_code=instance.qr_code if instance else None)

    async def start_pairing(self, organization_id: str, instance_id: str, poller: QrPairingPoller) -> ConnectResultAPI:
        result = await self.connect_instance(organization_id, instance_id)
        log = logger.bind(service="EvolutionService", instance_id=instance_id)
        poller.start(
            instance_id,
            lambda: self.pairing_snapshot(organization_id, instance_id),
            on_qr=lambda qr: log.info("New QR code available for pairing."),
        )
        result.polling = True
        return result

    async def pair(self, organization_id: str, instance_id: str, poller: QrPairingPoller) -> Tuple[ConnectResultAPI, PairingResult]:
        """Connects and waits until the instance is paired or the poll times out."""
        connect_result = await self.connect_instance(organization_id, instance_id)
        poller.start(instance_id, lambda: self.pairing_snapshot(organization_id, instance_id))
        result = await poller.wait(instance_id)
        if result is None:
            # Replaced or stopped by another request
            result = PairingResult(connected=False, state=connect_result.state)
        return connect_result, result

    # --- Sending ---

    async def _send(self, organization_id: str, instance_id: str, operation: str, *args, **kwargs) -> SendResultAPI:
        instance = await self._get_instance(organization_id, instance_id)
        response = await self._call(organization_id, operation, instance.instance_name, *args, **kwargs)
        return SendResultAPI(ok=response.ok, status_code=response.status_code, data=response.data)

    async def send_text(self, organization_id: str, instance_id: str, number: str, text: str) -> SendResultAPI:
        return await self._send(organization_id, instance_id, "send_text", number, text)

    async def send_media(
        self,
        organization_id: str,
        instance_id: str,
        number: str,
        mediatype: str,
        media: str,
        caption: str = "",
        file_name: Optional[str] = None,
    ) -> SendResultAPI:
        return await self._send(organization_id, instance_id, "send_media", number, mediatype, media, caption, file_name)

    async def send_audio(self, organization_id: str, instance_id: str, number: str, audio: str) -> SendResultAPI:
        return await self._send(organization_id, instance_id, "send_audio", number, audio)

    async def send_text_via_active_instance(self, organization_id: str, number: str, text: str) -> bool:
        """Sends through the organization's connected instance. False when none is connected."""
        log = logger.bind(service="EvolutionService", organization_id=organization_id)
        instance = await self.get_active_instance(organization_id)
        if not instance:
            log.warning("No connected WhatsApp instance; message not sent.")
            return False
        result = await self.send_text(organization_id, instance.id, number, text)
        if not result.ok:
            log.error(f"WhatsApp message to {number} failed with status {result.status_code}")
        return result.ok


async def get_evolution_service(
    settings_repo: EvolutionSettingsRepository = Depends(get_evolution_settings_repository),
    instance_repo: EvolutionInstanceRepository = Depends(get_evolution_instance_repository),
) -> EvolutionService:
    return EvolutionService(settings_repo, instance_repo)
