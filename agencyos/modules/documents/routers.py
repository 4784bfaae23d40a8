# agencyos/modules/documents/routers.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import HTMLResponse

from agencyos.core.security import CurrentUser, require_role
from agencyos.models.api_common import StatusResponse
from .models import (
    DOCUMENT_STATUSES,
    DocumentStatusUpdateAPI,
    DocumentTemplateAPI,
    DocumentTemplateCreateAPI,
    DocumentTemplateUpdateAPI,
    GenerateDocumentAPI,
    GeneratedDocumentAPI,
    GeneratedDocumentUpdateAPI,
    TemplateCacheStatsAPI,
)
from .services import DocumentService, DocumentTemplateService, get_document_service, get_document_template_service

documents_router = APIRouter()


# --- Templates ---

@documents_router.get("/templates", response_model=List[DocumentTemplateAPI])
async def list_templates(
    current_user: CurrentUser,
    category: Optional[str] = None,
    service: DocumentTemplateService = Depends(get_document_template_service),
):
    return [DocumentTemplateAPI.model_validate(t) for t in await service.list(current_user.organization_id, category)]


@documents_router.post("/templates", response_model=DocumentTemplateAPI, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_in: DocumentTemplateCreateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: DocumentTemplateService = Depends(get_document_template_service),
):
    template = await service.create(current_user.organization_id, template_in, created_by=current_user.id)
    return DocumentTemplateAPI.model_validate(template)


@documents_router.get("/templates/cache", response_model=TemplateCacheStatsAPI)
async def template_cache_stats(current_user: CurrentUser, service: DocumentTemplateService = Depends(get_document_template_service)):
    return service.cache_stats()


@documents_router.post("/templates/cache/preload", response_model=StatusResponse)
async def preload_templates(current_user: CurrentUser, service: DocumentTemplateService = Depends(get_document_template_service)):
    loaded = await service.preload_popular(current_user.organization_id)
    return StatusResponse(status="ok", message=f"{loaded} template(s) preloaded.")


@documents_router.delete("/templates/cache", response_model=StatusResponse)
async def clear_template_cache(
    current_user=Depends(require_role(["admin"])),
    service: DocumentTemplateService = Depends(get_document_template_service),
):
    service.clear_cache()
    return StatusResponse(status="ok", message="Template cache cleared.")


@documents_router.get("/templates/{template_id}", response_model=DocumentTemplateAPI)
async def get_template(template_id: str, current_user: CurrentUser, service: DocumentTemplateService = Depends(get_document_template_service)):
    return DocumentTemplateAPI.model_validate(await service.get(current_user.organization_id, template_id))


@documents_router.patch("/templates/{template_id}", response_model=DocumentTemplateAPI)
async def update_template(
    template_id: str,
    template_in: DocumentTemplateUpdateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: DocumentTemplateService = Depends(get_document_template_service),
):
    return DocumentTemplateAPI.model_validate(await service.update(current_user.organization_id, template_id, template_in))


@documents_router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: DocumentTemplateService = Depends(get_document_template_service),
):
    await service.delete(current_user.organization_id, template_id)


# --- Generated documents ---

@documents_router.get("/", response_model=List[GeneratedDocumentAPI])
async def list_documents(
    current_user: CurrentUser,
    status_filter: Optional[DOCUMENT_STATUSES] = Query(None, alias="status"),
    client_id: Optional[str] = None,
    service: DocumentService = Depends(get_document_service),
):
    org_id = current_user.organization_id
    if client_id:
        documents = await service.get_by_client(org_id, client_id)
    elif status_filter:
        documents = await service.get_by_status(org_id, status_filter)
    else:
        documents = await service.get_all(org_id)
    return [GeneratedDocumentAPI.model_validate(d) for d in documents]


@documents_router.post("/generate", response_model=GeneratedDocumentAPI, status_code=status.HTTP_201_CREATED)
async def generate_document(payload: GenerateDocumentAPI, current_user: CurrentUser, service: DocumentService = Depends(get_document_service)):
    document = await service.generate_document(
        current_user.organization_id,
        payload.template_id,
        payload.name,
        payload.variables,
        client_id=payload.client_id,
        project_id=payload.project_id,
        amount=payload.amount,
        created_by=current_user.id,
    )
    return GeneratedDocumentAPI.model_validate(document)


@documents_router.get("/{document_id}", response_model=GeneratedDocumentAPI)
async def get_document(document_id: str, current_user: CurrentUser, service: DocumentService = Depends(get_document_service)):
    return GeneratedDocumentAPI.model_validate(await service.get_by_id(current_user.organization_id, document_id))


@documents_router.get("/{document_id}/content", response_class=HTMLResponse)
async def get_document_content(document_id: str, current_user: CurrentUser, service: DocumentService = Depends(get_document_service)):
    return HTMLResponse(await service.get_content(current_user.organization_id, document_id))


@documents_router.post("/{document_id}/status", response_model=GeneratedDocumentAPI)
async def update_document_status(
    document_id: str,
    payload: DocumentStatusUpdateAPI,
    current_user: CurrentUser,
    service: DocumentService = Depends(get_document_service),
):
    return GeneratedDocumentAPI.model_validate(await service.update_status(current_user.organization_id, document_id, payload.status))


@documents_router.patch("/{document_id}", response_model=GeneratedDocumentAPI)
async def update_document(
    document_id: str,
    document_in: GeneratedDocumentUpdateAPI,
    current_user: CurrentUser,
    service: DocumentService = Depends(get_document_service),
):
    return GeneratedDocumentAPI.model_validate(await service.update(current_user.organization_id, document_id, document_in))


@documents_router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: DocumentService = Depends(get_document_service),
):
    await service.delete(current_user.organization_id, document_id)
