# agencyos/modules/clients/services.py
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.core.repository import utcnow
from agencyos.modules.automation.engine import AutomationEngine, get_automation_engine
from .models import ClientCreateAPI, ClientInDB, ClientUpdateAPI
from .repository import ClientRepository, get_client_repository


def client_context(client: ClientInDB) -> Dict[str, Any]:
    """Variables exposed to automation rules about a client."""
    return {
        "client_id": client.id,
        "client_name": client.name,
        "client_company": client.company,
        "client_phone": client.phone,
        "client_email": client.email,
        "status": client.status,
        "budget": client.budget,
        "source": client.source,
        "manager_id": client.manager_id,
    }


class ClientService:
    def __init__(self, client_repo: ClientRepository, automation: Optional[AutomationEngine] = None):
        self.client_repo = client_repo
        self.automation = automation

    async def list(
        self,
        organization_id: str,
        status_filter: Optional[str] = None,
        include_archived: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ClientInDB]:
        query: Dict[str, Any] = {}
        if status_filter:
            query["status"] = status_filter
        if not include_archived:
            query["is_archived"] = {"$ne": True}
        return await self.client_repo.list_for_org(organization_id, query, skip=skip, limit=limit)

    async def get(self, organization_id: str, client_id: str) -> ClientInDB:
        client = await self.client_repo.get_for_org(organization_id, client_id)
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found.")
        return client

    async def create(self, organization_id: str, client_in: ClientCreateAPI) -> ClientInDB:
        data = client_in.model_dump()
        data["organization_id"] = organization_id
        data["status_changed_at"] = utcnow()
        client = await self.client_repo.create(data)
        logger.bind(service="ClientService", organization_id=organization_id).info(f"Client created: {client.id}")
        if self.automation:
            await self.automation.trigger_rules(organization_id, "client_created", client_context(client))
        return client

    async def update(self, organization_id: str, client_id: str, client_in: ClientUpdateAPI) -> ClientInDB:
        """Partial update. A status change stamps `status_changed_at` and fires rules."""
        existing = await self.get(organization_id, client_id)
        changes = client_in.model_dump(exclude_unset=True)
        status_changed = "status" in changes and changes["status"] is not None and changes["status"] != existing.status
        if status_changed:
            changes["status_changed_at"] = utcnow()

        client = await self.client_repo.update_for_org(organization_id, client_id, changes)
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found.")

        if status_changed and self.automation:
            context = client_context(client)
            context["old_status"] = existing.status
            await self.automation.trigger_rules(organization_id, "client_status_changed", context)
        return client

    async def delete(self, organization_id: str, client_id: str) -> None:
        if not await self.client_repo.delete_for_org(organization_id, client_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found.")

    async def find_by_phone(self, organization_id: str, phone: str) -> Optional[ClientInDB]:
        return await self.client_repo.find_by_phone(organization_id, phone)

    async def find_or_create_by_phone(self, organization_id: str, phone: str, name: Optional[str] = None) -> ClientInDB:
        client = await self.client_repo.find_by_phone(organization_id, phone)
        if client:
            return client
        return await self.create(
            organization_id,
            ClientCreateAPI(name=name or phone, phone=phone, status="New Lead", source="WhatsApp"),
        )


async def get_client_service(
    client_repo: ClientRepository = Depends(get_client_repository),
    automation: AutomationEngine = Depends(get_automation_engine),
) -> ClientService:
    return ClientService(client_repo, automation)
