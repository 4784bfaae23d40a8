# agencyos/modules/documents/repository.py
from typing import List

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository
from .models import DocumentTemplateInDB, GeneratedDocumentInDB


class DocumentTemplateRepository(TenantRepository[DocumentTemplateInDB]):
    model = DocumentTemplateInDB
    collection_name = "document_templates"

    async def list_most_used(self, organization_id: str, limit: int = 3) -> List[DocumentTemplateInDB]:
        return await self.list_for_org(organization_id, limit=limit, sort=[("usage_count", DESCENDING)])


class GeneratedDocumentRepository(TenantRepository[GeneratedDocumentInDB]):
    model = GeneratedDocumentInDB
    collection_name = "generated_documents"


async def get_document_template_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> DocumentTemplateRepository:
    return DocumentTemplateRepository(db)


async def get_generated_document_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> GeneratedDocumentRepository:
    return GeneratedDocumentRepository(db)
