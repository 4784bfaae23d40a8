# agencyos/modules/roadmaps/routers.py
from typing import List

from fastapi import APIRouter, Depends, status

from agencyos.core.security import CurrentUser, require_role
from agencyos.models.api_common import StatusResponse
from .models import (
    ApplyTemplateAPI,
    ApplyTemplateResultAPI,
    CompleteStageResultAPI,
    DeleteRoadmapResultAPI,
    ProjectRoadmapStageAPI,
    RoadmapTemplateAPI,
    RoadmapTemplateCreateAPI,
    RoadmapTemplateUpdateAPI,
)
from .services import RoadmapService, get_roadmap_service

roadmaps_router = APIRouter()


# --- Templates ---

@roadmaps_router.get("/templates", response_model=List[RoadmapTemplateAPI])
async def list_templates(current_user: CurrentUser, only_active: bool = False, service: RoadmapService = Depends(get_roadmap_service)):
    templates = await service.list_templates(current_user.organization_id, only_active)
    return [RoadmapTemplateAPI.model_validate(t) for t in templates]


@roadmaps_router.get("/templates/{template_id}", response_model=RoadmapTemplateAPI)
async def get_template(template_id: str, current_user: CurrentUser, service: RoadmapService = Depends(get_roadmap_service)):
    return RoadmapTemplateAPI.model_validate(await service.get_template(current_user.organization_id, template_id))


@roadmaps_router.post("/templates", response_model=RoadmapTemplateAPI, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_in: RoadmapTemplateCreateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: RoadmapService = Depends(get_roadmap_service),
):
    template = await service.create_template(current_user.organization_id, template_in, created_by=current_user.id)
    return RoadmapTemplateAPI.model_validate(template)


@roadmaps_router.patch("/templates/{template_id}", response_model=RoadmapTemplateAPI)
async def update_template(
    template_id: str,
    template_in: RoadmapTemplateUpdateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: RoadmapService = Depends(get_roadmap_service),
):
    return RoadmapTemplateAPI.model_validate(
        await service.update_template(current_user.organization_id, template_id, template_in)
    )


@roadmaps_router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: RoadmapService = Depends(get_roadmap_service),
):
    await service.delete_template(current_user.organization_id, template_id)


# --- Project roadmap ---

@roadmaps_router.post("/projects/{project_id}/apply", response_model=ApplyTemplateResultAPI, status_code=status.HTTP_201_CREATED)
async def apply_template(
    project_id: str,
    payload: ApplyTemplateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: RoadmapService = Depends(get_roadmap_service),
):
    return await service.apply_template_to_project(
        current_user.organization_id, project_id, payload.template_id, creator_id=current_user.id
    )


@roadmaps_router.get("/projects/{project_id}/stages", response_model=List[ProjectRoadmapStageAPI])
async def list_project_stages(project_id: str, current_user: CurrentUser, service: RoadmapService = Depends(get_roadmap_service)):
    stages = await service.list_project_stages(current_user.organization_id, project_id)
    return [ProjectRoadmapStageAPI.model_validate(s) for s in stages]


@roadmaps_router.delete("/projects/{project_id}", response_model=DeleteRoadmapResultAPI)
async def delete_project_roadmap(
    project_id: str,
    current_user=Depends(require_role(["admin", "manager"])),
    service: RoadmapService = Depends(get_roadmap_service),
):
    return await service.delete_project_roadmap(current_user.organization_id, project_id)


@roadmaps_router.post("/stages/{stage_id}/complete", response_model=CompleteStageResultAPI)
async def complete_stage(stage_id: str, current_user: CurrentUser, service: RoadmapService = Depends(get_roadmap_service)):
    return await service.complete_stage(current_user.organization_id, stage_id)


@roadmaps_router.delete("/stages/{stage_id}", response_model=StatusResponse)
async def delete_stage(
    stage_id: str,
    cascade: bool = True,
    current_user=Depends(require_role(["admin", "manager"])),
    service: RoadmapService = Depends(get_roadmap_service),
):
    affected = await service.delete_stage(current_user.organization_id, stage_id, cascade)
    verb = "deleted" if cascade else "detached"
    return StatusResponse(status="ok", message=f"Stage deleted, {affected} task(s) {verb}.")
