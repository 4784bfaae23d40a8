# agencyos/modules/projects/repository.py
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from agencyos.core.database import get_database
from agencyos.core.repository import TenantRepository
from .models import ProjectInDB


class ProjectRepository(TenantRepository[ProjectInDB]):
    model = ProjectInDB
    collection_name = "projects"


async def get_project_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> ProjectRepository:
    return ProjectRepository(db)
