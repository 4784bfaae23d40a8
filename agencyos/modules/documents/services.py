# agencyos/modules/documents/services.py
import asyncio
import time
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.core.config import settings
from agencyos.core.counters import CounterService, get_counter_service
from agencyos.core.repository import utcnow
from .cache import TemplateCache, template_cache
from .filler import TemplateRenderError, parse_variables, prepare_variables, render
from .models import (
    DocumentTemplateCreateAPI,
    DocumentTemplateInDB,
    DocumentTemplateUpdateAPI,
    GeneratedDocumentInDB,
    GeneratedDocumentUpdateAPI,
)
from .repository import (
    DocumentTemplateRepository,
    GeneratedDocumentRepository,
    get_document_template_repository,
    get_generated_document_repository,
)
from .storage import DocumentStorage, get_document_storage, sanitize_file_name


def get_template_cache() -> TemplateCache:
    return template_cache


def _parse_or_400(content: str) -> List[str]:
    try:
        return parse_variables(content)
    except TemplateRenderError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


class DocumentTemplateService:
    def __init__(self, template_repo: DocumentTemplateRepository, cache: TemplateCache):
        self.template_repo = template_repo
        self.cache = cache

    async def list(self, organization_id: str, category: Optional[str] = None) -> List[DocumentTemplateInDB]:
        query = {"category": category} if category else None
        return await self.template_repo.list_for_org(organization_id, query, limit=0)

    async def get(self, organization_id: str, template_id: str) -> DocumentTemplateInDB:
        template = await self.template_repo.get_for_org(organization_id, template_id)
        if not template:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found.")
        return template

    async def get_cached(self, organization_id: str, template_id: str) -> DocumentTemplateInDB:
        cached: Optional[DocumentTemplateInDB] = self.cache.get(template_id)
        if cached is not None and cached.organization_id == organization_id:
            return cached
        template = await self.get(organization_id, template_id)
        self.cache.put(template_id, template)
        return template

    async def create(self, organization_id: str, template_in: DocumentTemplateCreateAPI, created_by: Optional[str] = None) -> DocumentTemplateInDB:
        data = template_in.model_dump()
        data.update({
            "organization_id": organization_id,
            "parsed_variables": _parse_or_400(template_in.content),
            "usage_count": 0,
            "created_by": created_by,
        })
        template = await self.template_repo.create(data)
        logger.bind(service="DocumentTemplateService", organization_id=organization_id).info(
            f"Template '{template.name}' created with {len(template.parsed_variables)} variable(s)."
        )
        return template

    async def update(self, organization_id: str, template_id: str, template_in: DocumentTemplateUpdateAPI) -> DocumentTemplateInDB:
        changes = {k: v for k, v in template_in.model_dump(exclude_unset=True).items() if v is not None}
        if "content" in changes:
            changes["parsed_variables"] = _parse_or_400(changes["content"])
        template = await self.template_repo.update_for_org(organization_id, template_id, changes)
        if not template:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found.")
        self.cache.invalidate(template_id)
        return template

    async def delete(self, organization_id: str, template_id: str) -> None:
        if not await self.template_repo.delete_for_org(organization_id, template_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found.")
        self.cache.invalidate(template_id)

    async def preload_popular(self, organization_id: str, limit: int = 3) -> int:
        """Warms the cache with the most used templates. Returns how many were loaded."""
        templates = await self.template_repo.list_most_used(organization_id, limit=limit)
        for template in templates:
            self.cache.put(template.id, template)
        return len(templates)

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()


class DocumentService:
    """Generates documents from templates and tracks their lifecycle."""

    def __init__(
        self,
        document_repo: GeneratedDocumentRepository,
        template_service: DocumentTemplateService,
        storage: DocumentStorage,
        counter_service: CounterService,
    ):
        self.document_repo = document_repo
        self.template_service = template_service
        self.storage = storage
        self.counter_service = counter_service

    async def get_all(self, organization_id: str) -> List[GeneratedDocumentInDB]:
        return await self.document_repo.list_for_org(organization_id, limit=0)

    async def get_by_id(self, organization_id: str, document_id: str) -> GeneratedDocumentInDB:
        document = await self.document_repo.get_for_org(organization_id, document_id)
        if not document:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found.")
        return document

    async def get_by_status(self, organization_id: str, document_status: str) -> List[GeneratedDocumentInDB]:
        return await self.document_repo.list_for_org(organization_id, {"status": document_status}, limit=0)

    async def get_by_client(self, organization_id: str, client_id: str) -> List[GeneratedDocumentInDB]:
        return await self.document_repo.list_for_org(organization_id, {"client_id": client_id}, limit=0)

    async def generate_document(
        self,
        organization_id: str,
        template_id: str,
        name: str,
        variables: Dict[str, Any],
        client_id: Optional[str] = None,
        project_id: Optional[str] = None,
        amount: Optional[float] = None,
        created_by: Optional[str] = None,
    ) -> GeneratedDocumentInDB:
        log = logger.bind(service="DocumentService", organization_id=organization_id, template_id=template_id)
        started = time.perf_counter()

        template = await self.template_service.get_cached(organization_id, template_id)
        if not template.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Template is inactive.")

        prepared = prepare_variables(variables, template.parsed_variables, amount)
        try:
            html = render(template.content, prepared)
        except TemplateRenderError as e:
            log.warning(f"Template rendering failed: {e}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        file_name = f"{sanitize_file_name(name)}_{int(time.time() * 1000)}.html"
        file_path, file_size = await self.storage.write(organization_id, file_name, html)

        try:
            document_number, _ = await asyncio.gather(
                self.counter_service.generate_reference("DOC", scope=organization_id),
                self.template_service.template_repo.increment(template_id, {"usage_count": 1}),
            )
            document = await self.document_repo.create({
                "organization_id": organization_id,
                "template_id": template_id,
                "client_id": client_id,
                "project_id": project_id,
                "created_by": created_by,
                "document_number": document_number,
                "name": name,
                "file_path": file_path,
                "file_name": file_name,
                "file_size": file_size,
                "status": "generated",
                "amount": amount,
                "currency": settings.DEFAULT_CURRENCY,
                "variables_used": variables,
            })
        except Exception:
            await self.storage.delete(file_path)
            raise

        log.info(f"Document {document.document_number} generated in {(time.perf_counter() - started) * 1000:.0f}ms")
        return document

    async def update_status(self, organization_id: str, document_id: str, document_status: str) -> GeneratedDocumentInDB:
        changes: Dict[str, Any] = {"status": document_status}
        if document_status == "sent":
            changes["sent_at"] = utcnow()
        elif document_status == "signed":
            changes["signed_at"] = utcnow()
        document = await self.document_repo.update_for_org(organization_id, document_id, changes)
        if not document:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found.")
        return document

    async def update(self, organization_id: str, document_id: str, document_in: GeneratedDocumentUpdateAPI) -> GeneratedDocumentInDB:
        document = await self.document_repo.update_for_org(
            organization_id, document_id, document_in.model_dump(exclude_unset=True)
        )
        if not document:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found.")
        return document

    async def delete(self, organization_id: str, document_id: str) -> None:
        document = await self.get_by_id(organization_id, document_id)
        await self.storage.delete(document.file_path)
        await self.document_repo.delete_for_org(organization_id, document_id)

    async def get_content(self, organization_id: str, document_id: str) -> str:
        document = await self.get_by_id(organization_id, document_id)
        try:
            return await self.storage.read(document.file_path)
        except FileNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document file is missing.")


async def get_document_template_service(
    template_repo: DocumentTemplateRepository = Depends(get_document_template_repository),
    cache: TemplateCache = Depends(get_template_cache),
) -> DocumentTemplateService:
    return DocumentTemplateService(template_repo, cache)


async def get_document_service(
    document_repo: GeneratedDocumentRepository = Depends(get_generated_document_repository),
    template_service: DocumentTemplateService = Depends(get_document_template_service),
    storage: DocumentStorage = Depends(get_document_storage),
    counter_service: CounterService = Depends(get_counter_service),
) -> DocumentService:
    return DocumentService(document_repo, template_service, storage, counter_service)
