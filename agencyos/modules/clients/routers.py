# agencyos/modules/clients/routers.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from agencyos.core.security import CurrentUser, require_role
from .models import CLIENT_STATUSES, ClientAPI, ClientCreateAPI, ClientUpdateAPI
from .services import ClientService, get_client_service

clients_router = APIRouter()


@clients_router.get("/", response_model=List[ClientAPI])
async def list_clients(
    current_user: CurrentUser,
    status_filter: Optional[CLIENT_STATUSES] = Query(None, alias="status"),
    include_archived: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: ClientService = Depends(get_client_service),
):
    clients = await service.list(current_user.organization_id, status_filter, include_archived, skip, limit)
    return [ClientAPI.model_validate(c) for c in clients]


@clients_router.get("/{client_id}", response_model=ClientAPI)
async def get_client(client_id: str, current_user: CurrentUser, service: ClientService = Depends(get_client_service)):
    return ClientAPI.model_validate(await service.get(current_user.organization_id, client_id))


@clients_router.post("/", response_model=ClientAPI, status_code=status.HTTP_201_CREATED)
async def create_client(client_in: ClientCreateAPI, current_user: CurrentUser, service: ClientService = Depends(get_client_service)):
    return ClientAPI.model_validate(await service.create(current_user.organization_id, client_in))


@clients_router.patch("/{client_id}", response_model=ClientAPI)
async def update_client(
    client_id: str,
    client_in: ClientUpdateAPI,
    current_user: CurrentUser,
    service: ClientService = Depends(get_client_service),
):
    return ClientAPI.model_validate(await service.update(current_user.organization_id, client_id, client_in))


@clients_router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: ClientService = Depends(get_client_service),
):
    await service.delete(current_user.organization_id, client_id)
