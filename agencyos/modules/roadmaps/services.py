# agencyos/modules/roadmaps/services.py
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.core.repository import utcnow
from agencyos.modules.people.repository import UserRepository, get_user_repository
from agencyos.modules.projects.models import ProjectInDB
from agencyos.modules.projects.repository import ProjectRepository, get_project_repository
from agencyos.modules.tasks.repository import TaskRepository, get_task_repository
from .models import (
    ApplyTemplateResultAPI,
    CompleteStageResultAPI,
    DeleteRoadmapResultAPI,
    ProjectRoadmapStageInDB,
    RoadmapTemplateCreateAPI,
    RoadmapTemplateInDB,
    RoadmapTemplateUpdateAPI,
)
from .repository import (
    ProjectRoadmapStageRepository,
    RoadmapTemplateRepository,
    get_project_roadmap_stage_repository,
    get_roadmap_template_repository,
)


class RoadmapService:
    """Roadmap templates and the stages/tasks they produce on a project."""

    def __init__(
        self,
        template_repo: RoadmapTemplateRepository,
        stage_repo: ProjectRoadmapStageRepository,
        project_repo: ProjectRepository,
        task_repo: TaskRepository,
        user_repo: UserRepository,
    ):
        self.template_repo = template_repo
        self.stage_repo = stage_repo
        self.project_repo = project_repo
        self.task_repo = task_repo
        self.user_repo = user_repo

    # --- Templates ---

    async def list_templates(self, organization_id: str, only_active: bool = False) -> List[RoadmapTemplateInDB]:
        query = {"is_active": True} if only_active else {}
        return await self.template_repo.list_for_org(organization_id, query, limit=0)

    async def get_template(self, organization_id: str, template_id: str) -> RoadmapTemplateInDB:
        template = await self.template_repo.get_for_org(organization_id, template_id)
        if not template:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Roadmap template not found.")
        return template

    async def create_template(
        self, organization_id: str, template_in: RoadmapTemplateCreateAPI, created_by: Optional[str] = None
    ) -> RoadmapTemplateInDB:
        data = template_in.model_dump()
        data.update({"organization_id": organization_id, "created_by": created_by})
        template = await self.template_repo.create(data)
        logger.bind(service="RoadmapService", organization_id=organization_id).info(
            f"Roadmap template created: {template.id} ({template.total_stages} stages, {template.total_tasks} tasks)"
        )
        return template

    async def update_template(
        self, organization_id: str, template_id: str, template_in: RoadmapTemplateUpdateAPI
    ) -> RoadmapTemplateInDB:
        template = await self.template_repo.update_for_org(
            organization_id, template_id, template_in.model_dump(exclude_unset=True)
        )
        if not template:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Roadmap template not found.")
        return template

    async def delete_template(self, organization_id: str, template_id: str) -> None:
        if not await self.template_repo.delete_for_org(organization_id, template_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Roadmap template not found.")

    # --- Project roadmap ---

    async def _get_project(self, organization_id: str, project_id: str) -> ProjectInDB:
        project = await self.project_repo.get_for_org(organization_id, project_id)
        if not project:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    async def _get_stage(self, organization_id: str, stage_id: str) -> ProjectRoadmapStageInDB:
        stage = await self.stage_repo.get_for_org(organization_id, stage_id)
        if not stage:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Roadmap stage not found.")
        return stage

    async def _find_assignee(self, organization_id: str, project: ProjectInDB, job_title: str) -> Optional[str]:
        user = None
        if project.team_ids:
            user = await self.user_repo.find_by_job_title(organization_id, job_title, user_ids=project.team_ids)
        if user is None:
            user = await self.user_repo.find_by_job_title(organization_id, job_title)
        return user.id if user else None

    async def apply_template_to_project(
        self,
        organization_id: str,
        project_id: str,
        template_id: str,
        creator_id: Optional[str] = None,
    ) -> ApplyTemplateResultAPI:
        """Creates the template's stages and tasks on the project.

        Stages are laid out back to back from the project start. The first
        new stage is activated only if the project has no active stage yet.
        """
        log = logger.bind(service="RoadmapService", organization_id=organization_id, project_id=project_id)
        project = await self._get_project(organization_id, project_id)
        template = await self.get_template(organization_id, template_id)

        existing = await self.stage_repo.list_for_project(organization_id, project_id)
        has_active = any(s.status == "active" for s in existing)
        next_index = max((s.order_index for s in existing), default=-1) + 1

        cursor: datetime = project.start_date or utcnow()
        assignees: Dict[str, Optional[str]] = {}
        stages_created = tasks_created = unassigned = 0

        for position, stage_tpl in enumerate(sorted(template.stages, key=lambda s: s.order_index)):
            stage_start = cursor
            stage_end = stage_start + timedelta(days=stage_tpl.duration_days)
            is_active = position == 0 and not has_active
            stage = await self.stage_repo.create({
                "organization_id": organization_id,
                "project_id": project_id,
                "template_id": template.id,
                "name": stage_tpl.name,
                "description": stage_tpl.description,
                "order_index": next_index + position,
                "color": stage_tpl.color,
                "status": "active" if is_active else "locked",
                "duration_days": stage_tpl.duration_days,
                "planned_start": stage_start,
                "planned_end": stage_end,
                "started_at": utcnow() if is_active else None,
            })
            stages_created += 1

            for task_tpl in stage_tpl.tasks:
                assignee_id = None
                if task_tpl.job_title_required:
                    key = task_tpl.job_title_required.lower()
                    if key not in assignees:
                        assignees[key] = await self._find_assignee(organization_id, project, task_tpl.job_title_required)
                    assignee_id = assignees[key]
                    if assignee_id is None:
                        unassigned += 1
                        log.warning(f"No user with job title '{task_tpl.job_title_required}' for task '{task_tpl.title}'.")

                if task_tpl.duration_days is not None:
                    deadline = stage_start + timedelta(days=task_tpl.duration_days)
                else:
                    deadline = stage_end
                await self.task_repo.create({
                    "organization_id": organization_id,
                    "project_id": project_id,
                    "client_id": project.client_id,
                    "stage_id": stage.id,
                    "title": task_tpl.title,
                    "description": task_tpl.description,
                    "tags": list(task_tpl.tags),
                    "estimated_hours": task_tpl.estimated_hours,
                    "assignee_id": assignee_id,
                    "creator_id": creator_id,
                    "deadline": deadline,
                    "status": "To Do",
                    "priority": "Medium",
                    "type": "Task",
                })
                tasks_created += 1

            cursor = stage_end

        log.info(f"Template {template.id} applied: {stages_created} stages, {tasks_created} tasks.")
        return ApplyTemplateResultAPI(stages_created=stages_created, tasks_created=tasks_created, unassigned_tasks=unassigned)

    async def list_project_stages(self, organization_id: str, project_id: str) -> List[ProjectRoadmapStageInDB]:
        await self._get_project(organization_id, project_id)
        return await self.stage_repo.list_for_project(organization_id, project_id)

    async def complete_stage(self, organization_id: str, stage_id: str) -> CompleteStageResultAPI:
        stage = await self._get_stage(organization_id, stage_id)
        if stage.status == "completed":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Stage is already completed.")

        now = utcnow()
        await self.stage_repo.update_for_org(organization_id, stage_id, {
            "status": "completed",
            "completed_at": now,
            "started_at": stage.started_at or now,
        })

        next_stage = await self.stage_repo.next_locked_stage(organization_id, stage.project_id, stage.order_index)
        if next_stage is None:
            return CompleteStageResultAPI(completed_stage_id=stage.id, message="Roadmap completed.")

        await self.stage_repo.update_for_org(organization_id, next_stage.id, {"status": "active", "started_at": now})
        logger.bind(service="RoadmapService", organization_id=organization_id).info(
            f"Stage {stage.id} completed, stage {next_stage.id} is now active."
        )
        return CompleteStageResultAPI(
            completed_stage_id=stage.id,
            next_stage_id=next_stage.id,
            message=f"Stage '{next_stage.name}' is now active.",
        )

    async def delete_stage(self, organization_id: str, stage_id: str, cascade: bool = True) -> int:
        """Deletes a stage. Returns how many tasks were deleted (cascade) or detached."""
        stage = await self._get_stage(organization_id, stage_id)
        if cascade:
            affected = await self.task_repo.delete_many({"organization_id": organization_id, "stage_id": stage.id})
        else:
            affected = await self.task_repo.detach_from_stage(stage.id)
        await self.stage_repo.delete_for_org(organization_id, stage.id)
        return affected

    async def delete_project_roadmap(self, organization_id: str, project_id: str) -> DeleteRoadmapResultAPI:
        await self._get_project(organization_id, project_id)
        stages = await self.stage_repo.list_for_project(organization_id, project_id)
        stage_ids = [s.id for s in stages]
        deleted_tasks = 0
        if stage_ids:
            deleted_tasks = await self.task_repo.delete_many(
                {"organization_id": organization_id, "stage_id": {"$in": stage_ids}}
            )
        deleted_stages = await self.stage_repo.delete_for_project(organization_id, project_id)
        logger.bind(service="RoadmapService", organization_id=organization_id).info(
            f"Roadmap of project {project_id} deleted: {deleted_stages} stages, {deleted_tasks} tasks."
        )
        return DeleteRoadmapResultAPI(deleted_stages=deleted_stages, deleted_tasks=deleted_tasks)


async def get_roadmap_service(
    template_repo: RoadmapTemplateRepository = Depends(get_roadmap_template_repository),
    stage_repo: ProjectRoadmapStageRepository = Depends(get_project_roadmap_stage_repository),
    project_repo: ProjectRepository = Depends(get_project_repository),
    task_repo: TaskRepository = Depends(get_task_repository),
    user_repo: UserRepository = Depends(get_user_repository),
) -> RoadmapService:
    return RoadmapService(template_repo, stage_repo, project_repo, task_repo, user_repo)
