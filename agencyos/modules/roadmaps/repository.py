# agencyos/modules/roadmaps/repository.py
from typing import List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository
from .models import ProjectRoadmapStageInDB, RoadmapTemplateInDB


class RoadmapTemplateRepository(TenantRepository[RoadmapTemplateInDB]):
    model = RoadmapTemplateInDB
    collection_name = "roadmap_templates"


class ProjectRoadmapStageRepository(TenantRepository[ProjectRoadmapStageInDB]):
    model = ProjectRoadmapStageInDB
    collection_name = "project_roadmap_stages"

    async def list_for_project(self, organization_id: str, project_id: str) -> List[ProjectRoadmapStageInDB]:
        return await self.list_for_org(
            organization_id, {"project_id": project_id}, limit=0, sort=[("order_index", ASCENDING)]
        )

    async def has_active_stage(self, organization_id: str, project_id: str) -> bool:
        return await self.count_for_org(organization_id, {"project_id": project_id, "status": "active"}) > 0

    async def next_locked_stage(self, organization_id: str, project_id: str, after_order_index: int) -> Optional[ProjectRoadmapStageInDB]:
        return await self.get_by(
            {
                "organization_id": organization_id,
                "project_id": project_id,
                "status": "locked",
                "order_index": {"$gt": after_order_index},
            },
            sort=[("order_index", ASCENDING)],
        )

    async def delete_for_project(self, organization_id: str, project_id: str) -> int:
        return await self.delete_many({"organization_id": organization_id, "project_id": project_id})


async def get_roadmap_template_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> RoadmapTemplateRepository:
    return RoadmapTemplateRepository(db)


async def get_project_roadmap_stage_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ProjectRoadmapStageRepository:
    return ProjectRoadmapStageRepository(db)
