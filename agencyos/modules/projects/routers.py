# agencyos/modules/projects/routers.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from agencyos.core.security import CurrentUser, require_role
from .models import PROJECT_STATUSES, ProjectAPI, ProjectCreateAPI, ProjectUpdateAPI
from .services import ProjectService, get_project_service

projects_router = APIRouter()


@projects_router.get("/", response_model=List[ProjectAPI])
async def list_projects(
    current_user: CurrentUser,
    client_id: Optional[str] = None,
    status_filter: Optional[PROJECT_STATUSES] = Query(None, alias="status"),
    include_archived: bool = False,
    service: ProjectService = Depends(get_project_service),
):
    projects = await service.list(current_user.organization_id, client_id, status_filter, include_archived)
    return [ProjectAPI.model_validate(p) for p in projects]


@projects_router.get("/{project_id}", response_model=ProjectAPI)
async def get_project(project_id: str, current_user: CurrentUser, service: ProjectService = Depends(get_project_service)):
    return ProjectAPI.model_validate(await service.get(current_user.organization_id, project_id))


@projects_router.post("/", response_model=ProjectAPI, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: ProjectService = Depends(get_project_service),
):
    return ProjectAPI.model_validate(await service.create(current_user.organization_id, project_in))


@projects_router.patch("/{project_id}", response_model=ProjectAPI)
async def update_project(
    project_id: str,
    project_in: ProjectUpdateAPI,
    current_user: CurrentUser,
    service: ProjectService = Depends(get_project_service),
):
    return ProjectAPI.model_validate(await service.update(current_user.organization_id, project_id, project_in))


@projects_router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: ProjectService = Depends(get_project_service),
):
    await service.delete(current_user.organization_id, project_id)
