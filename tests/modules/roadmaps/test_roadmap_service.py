# tests/modules/roadmaps/test_roadmap_service.py
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from fastapi import HTTPException

from agencyos.modules.people.repository import UserRepository
from agencyos.modules.projects.repository import ProjectRepository
from agencyos.modules.roadmaps.models import RoadmapTemplateCreateAPI
from agencyos.modules.roadmaps.repository import ProjectRoadmapStageRepository, RoadmapTemplateRepository
from agencyos.modules.roadmaps.services import RoadmapService
from agencyos.modules.tasks.repository import TaskRepository

pytestmark = pytest.mark.asyncio

START = datetime(2026, 3, 2, 9, 0)


@pytest.fixture
def service(db_client) -> RoadmapService:
    return RoadmapService(
        RoadmapTemplateRepository(db_client),
        ProjectRoadmapStageRepository(db_client),
        ProjectRepository(db_client),
        TaskRepository(db_client),
        UserRepository(db_client),
    )


@pytest_asyncio.fixture
async def project(db_client, organization):
    return await ProjectRepository(db_client).create({
        "organization_id": organization.id,
        "name": "Rebranding",
        "start_date": START,
    })


@pytest_asyncio.fixture
async def template(service, organization):
    return await service.create_template(organization.id, RoadmapTemplateCreateAPI(
        name="SMM launch",
        stages=[
            {
                "name": "Content",
                "order_index": 1,
                "duration_days": 10,
                "tasks": [{"title": "Posts", "job_title_required": "Copywriter"}],
            },
            {
                "name": "Brief",
                "order_index": 0,
                "duration_days": 5,
                "tasks": [
                    {"title": "Moodboard", "duration_days": 2, "job_title_required": "designer"},
                    {"title": "Kick-off call"},
                ],
            },
        ],
    ))


async def test_template_totals(template):
    assert template.total_stages == 2
    assert template.total_tasks == 3


async def test_apply_creates_stages_in_order(service, db_client, organization, project, template, member_user):
    result = await service.apply_template_to_project(organization.id, project.id, template.id)

    assert (result.stages_created, result.tasks_created, result.unassigned_tasks) == (2, 3, 1)

    stages = await service.list_project_stages(organization.id, project.id)
    assert [s.name for s in stages] == ["Brief", "Content"]
    assert [s.status for s in stages] == ["active", "locked"]
    assert stages[0].planned_start == START
    assert stages[0].planned_end == START + timedelta(days=5)
    assert stages[1].planned_end == START + timedelta(days=15)

    tasks = {t.title: t for t in await TaskRepository(db_client).list_for_org(organization.id, {"project_id": project.id})}
    assert tasks["Moodboard"].assignee_id == member_user.id
    assert tasks["Moodboard"].deadline == START + timedelta(days=2)
    assert tasks["Kick-off call"].deadline == START + timedelta(days=5)
    assert tasks["Posts"].assignee_id is None
    assert tasks["Posts"].stage_id == stages[1].id


async def test_second_apply_appends_locked_stages(service, organization, project, template):
    await service.apply_template_to_project(organization.id, project.id, template.id)
    await service.apply_template_to_project(organization.id, project.id, template.id)

    stages = await service.list_project_stages(organization.id, project.id)
    assert [s.order_index for s in stages] == [0, 1, 2, 3]
    assert [s.status for s in stages].count("active") == 1


async def test_complete_stage_activates_next(service, organization, project, template):
    await service.apply_template_to_project(organization.id, project.id, template.id)
    first, second = await service.list_project_stages(organization.id, project.id)

    result = await service.complete_stage(organization.id, first.id)
    assert result.next_stage_id == second.id

    stages = await service.list_project_stages(organization.id, project.id)
    assert [s.status for s in stages] == ["completed", "active"]
    assert stages[0].completed_at is not None

    final = await service.complete_stage(organization.id, second.id)
    assert final.next_stage_id is None

    with pytest.raises(HTTPException) as exc_info:
        await service.complete_stage(organization.id, second.id)
    assert exc_info.value.status_code == 400


async def test_delete_stage_can_keep_tasks(service, db_client, organization, project, template):
    await service.apply_template_to_project(organization.id, project.id, template.id)
    first, _ = await service.list_project_stages(organization.id, project.id)

    assert await service.delete_stage(organization.id, first.id, cascade=False) == 2

    tasks = await TaskRepository(db_client).list_for_org(organization.id, {"project_id": project.id})
    assert len(tasks) == 3
    assert sum(1 for t in tasks if t.stage_id is None) == 2


async def test_delete_project_roadmap_removes_stage_tasks(service, db_client, organization, project, template):
    await service.apply_template_to_project(organization.id, project.id, template.id)

    result = await service.delete_project_roadmap(organization.id, project.id)

    assert (result.deleted_stages, result.deleted_tasks) == (2, 3)
    assert await TaskRepository(db_client).count_for_org(organization.id) == 0


async def test_unknown_project_is_404(service, organization, template):
    with pytest.raises(HTTPException) as exc_info:
        await service.apply_template_to_project(organization.id, "65f1a2b3c4d5e6f7a8b9c0d1", template.id)
    assert exc_info.value.status_code == 404
