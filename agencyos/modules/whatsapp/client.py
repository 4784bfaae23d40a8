# agencyos/modules/whatsapp/client.py

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from agencyos.core.logging_config import trace_id_var


class EvolutionApiError(Exception):
    """Network-level failure talking to the Evolution API (timeout, refused, DNS...)."""


@dataclass
class EvolutionResponse:
    ok: bool
    status_code: int
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def error_message(self) -> str:
        for key in ("message", "error", "raw"):
            value = self.data.get(key)
            if value:
                return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        return f"Evolution API returned status {self.status_code}"


class EvolutionClient:
    """Thin async wrapper over the Evolution API REST endpoints."""

    def __init__(
        self,
        server_url: str,
        api_key: str,
        timeout: float = 25.0,
    ):
        self.server_url = server_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> EvolutionResponse:
        url = f"{self.server_url}{path}"
        headers = {"Content-Type": "application/json", "apikey": self.api_key}
        log = logger.bind(trace_id=trace_id_var.get(), service="EvolutionClient", method=method, path=path)
        log.debug(f"Evolution request: {method} {url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            log.error(f"Timeout calling Evolution API: {method} {path}")
            raise EvolutionApiError(f"Timeout calling Evolution API: {path}") from e
        except httpx.RequestError as e:
            log.error(f"HTTP request error calling Evolution API: {e}")
            raise EvolutionApiError(f"Evolution API request failed: {e}") from e

        try:
            body = response.json()
        except json.JSONDecodeError:
            body = {"raw": response.text[:500]}
        # fetchInstances answers with a bare list
        if isinstance(body, list):
            body = {"items": body}
        elif not isinstance(body, dict):
            body = {"value": body}

        ok = 200 <= response.status_code < 300
        if not ok:
            log.warning(f"Evolution API error status {response.status_code}: {str(body)[:300]}")
        return EvolutionResponse(ok=ok, status_code=response.status_code, data=body)

    # --- Instances ---

    async def fetch_instances(self) -> EvolutionResponse:
        return await self._request("GET", "/instance/fetchInstances")

    async def create_instance(
        self,
        instance_name: str,
        webhook_url: Optional[str] = None,
        events: Optional[List[str]] = None,
    ) -> EvolutionResponse:
        payload: Dict[str, Any] = {
            "instanceName": instance_name,
            "qrcode": True,
            "webhookByEvents": False,
            "webhookBase64": True,
            "webhookEvents": events or [],
        }
        if webhook_url:
            payload["webhookUrl"] = webhook_url
        return await self._request("POST", "/instance/create", payload)

    async def connect(self, instance_name: str) -> EvolutionResponse:
        return await self._request("GET", f"/instance/{instance_name}/connect")

    async def connection_state(self, instance_name: str) -> EvolutionResponse:
        return await self._request("GET", f"/instance/{instance_name}/connectionState")

    async def restart(self, instance_name: str) -> EvolutionResponse:
        return await self._request("POST", f"/instance/{instance_name}/restart")

    async def logout(self, instance_name: str) -> EvolutionResponse:
        return await self._request("DELETE", f"/instance/{instance_name}/logout")

    async def delete(self, instance_name: str) -> EvolutionResponse:
        return await self._request("DELETE", f"/instance/{instance_name}/delete")

    # --- Messages ---

    async def send_text(self, instance_name: str, number: str, text: str) -> EvolutionResponse:
        return await self._request("POST", f"/message/sendText/{instance_name}", {"number": number, "text": text})

    async def send_media(
        self,
        instance_name: str,
        number: str,
        mediatype: str,
        media: str,
        caption: str = "",
        file_name: Optional[str] = None,
    ) -> EvolutionResponse:
        payload: Dict[str, Any] = {"number": number, "mediatype": mediatype, "media": media, "caption": caption}
        if file_name:
            payload["fileName"] = file_name
        return await self._request("POST", f"/message/sendMedia/{instance_name}", payload)

    async def send_audio(self, instance_name: str, number: str, audio: str) -> EvolutionResponse:
        return await self._request(
            "POST", f"/message/sendWhatsAppAudio/{instance_name}", {"number": number, "audio": audio}
        )
