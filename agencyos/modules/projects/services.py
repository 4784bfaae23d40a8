# agencyos/modules/projects/services.py
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.modules.automation.engine import AutomationEngine, get_automation_engine
from .models import ProjectCreateAPI, ProjectInDB, ProjectUpdateAPI
from .repository import ProjectRepository, get_project_repository


def project_context(project: ProjectInDB) -> Dict[str, Any]:
    return {
        "project_id": project.id,
        "project_name": project.name,
        "client_id": project.client_id,
        "status": project.status,
        "budget": project.budget,
    }


class ProjectService:
    def __init__(self, project_repo: ProjectRepository, automation: Optional[AutomationEngine] = None):
        self.project_repo = project_repo
        self.automation = automation

    async def list(
        self,
        organization_id: str,
        client_id: Optional[str] = None,
        status_filter: Optional[str] = None,
        include_archived: bool = False,
    ) -> List[ProjectInDB]:
        query: Dict[str, Any] = {}
        if client_id:
            query["client_id"] = client_id
        if status_filter:
            query["status"] = status_filter
        if not include_archived:
            query["is_archived"] = {"$ne": True}
        return await self.project_repo.list_for_org(organization_id, query, limit=0)

    async def get(self, organization_id: str, project_id: str) -> ProjectInDB:
        project = await self.project_repo.get_for_org(organization_id, project_id)
        if not project:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    async def create(self, organization_id: str, project_in: ProjectCreateAPI) -> ProjectInDB:
        data = project_in.model_dump()
        data["organization_id"] = organization_id
        if not data.get("total_ltv"):
            data["total_ltv"] = data.get("budget") or 0.0
        if data.get("start_date") and data.get("end_date") and not data.get("duration"):
            data["duration"] = max((data["end_date"] - data["start_date"]).days, 0)
        project = await self.project_repo.create(data)
        logger.bind(service="ProjectService", organization_id=organization_id).info(f"Project created: {project.id}")
        if self.automation:
            await self.automation.trigger_rules(organization_id, "project_created", project_context(project))
        return project

    async def update(self, organization_id: str, project_id: str, project_in: ProjectUpdateAPI) -> ProjectInDB:
        existing = await self.get(organization_id, project_id)
        changes = project_in.model_dump(exclude_unset=True)
        project = await self.project_repo.update_for_org(organization_id, project_id, changes)
        if not project:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")

        if self.automation and changes.get("status") and changes["status"] != existing.status:
            context = project_context(project)
            context["old_status"] = existing.status
            await self.automation.trigger_rules(organization_id, "project_status_changed", context)
        return project

    async def delete(self, organization_id: str, project_id: str) -> None:
        if not await self.project_repo.delete_for_org(organization_id, project_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")


async def get_project_service(
    project_repo: ProjectRepository = Depends(get_project_repository),
    automation: AutomationEngine = Depends(get_automation_engine),
) -> ProjectService:
    return ProjectService(project_repo, automation)
