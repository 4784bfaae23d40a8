# tests/modules/ai_actions/test_ai_action_service.py
from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException

from agencyos.modules.ai_actions.models import AIActionCreateAPI
from agencyos.modules.ai_actions.repository import AIActionRepository, AILeadRepository
from agencyos.modules.ai_actions.services import AIActionService
from agencyos.modules.clients.repository import ClientRepository
from agencyos.modules.projects.repository import ProjectRepository
from agencyos.modules.tasks.repository import TaskRepository

pytestmark = pytest.mark.asyncio


@pytest.fixture
def evolution_service():
    evolution = AsyncMock()
    evolution.send_text_via_active_instance.return_value = True
    return evolution


@pytest.fixture
def service(db_client, evolution_service) -> AIActionService:
    return AIActionService(
        AIActionRepository(db_client),
        AILeadRepository(db_client),
        ClientRepository(db_client),
        TaskRepository(db_client),
        ProjectRepository(db_client),
        evolution_service,
    )


async def test_created_action_waits_for_review(service, organization):
    action = await service.create(organization.id, AIActionCreateAPI(action_type="create_lead", agent_name=""))

    assert action.status == "pending"
    assert action.agent_name == "Unknown Agent"
    assert [a.id for a in await service.get_pending(organization.id)] == [action.id]


async def test_approving_create_task_executes_it(service, db_client, organization, admin_user):
    action = await service.create(organization.id, AIActionCreateAPI(
        action_type="create_task",
        data={"title": "Prepare KP", "priority": "Critical", "type": "Call", "deadline": "2026-06-01T09:00:00Z"},
    ))

    approved = await service.approve(organization.id, action.id, admin_user.id)

    assert approved.status == "executed"
    assert approved.reviewed_by == admin_user.id
    task = (await TaskRepository(db_client).list_for_org(organization.id))[0]
    assert task.title == "Prepare KP"
    assert task.priority == "Medium"
    assert task.type == "Call"
    assert task.deadline == datetime(2026, 6, 1, 9, 0)


async def test_approving_create_lead_stores_ai_lead(service, db_client, organization, admin_user):
    action = await service.create(organization.id, AIActionCreateAPI(
        action_type="create_lead",
        data={"name": "Dana", "phone": "77015550000", "budget": "150000", "score": "8"},
    ))

    await service.approve(organization.id, action.id, admin_user.id)

    leads = await AILeadRepository(db_client).list_for_org(organization.id)
    assert len(leads) == 1
    assert leads[0].budget == 150000.0
    assert leads[0].score == 8
    assert leads[0].status == "qualified"


async def test_approving_create_project_uses_defaults(service, db_client, organization, admin_user):
    action = await service.create(organization.id, AIActionCreateAPI(
        action_type="create_project",
        data={"name": "Spring campaign", "start_date": "2026-04-01T00:00:00", "budget": 500000, "status": "Dreaming"},
    ))

    await service.approve(organization.id, action.id, admin_user.id)

    project = (await ProjectRepository(db_client).list_for_org(organization.id))[0]
    assert project.status == "Strategy/KP"
    assert project.end_date == datetime(2026, 5, 1)
    assert project.total_ltv == 500000
    assert project.services == ["SMM"]


async def test_approving_send_whatsapp_uses_active_instance(service, evolution_service, organization, admin_user):
    action = await service.create(organization.id, AIActionCreateAPI(
        action_type="send_whatsapp", data={"phone": "77015550000", "message": "Hello!"},
    ))

    await service.approve(organization.id, action.id, admin_user.id)

    evolution_service.send_text_via_active_instance.assert_awaited_once_with(organization.id, "77015550000", "Hello!")


async def test_approve_twice_is_rejected(service, organization, admin_user):
    action = await service.create(organization.id, AIActionCreateAPI(action_type="create_proposal"))
    await service.approve(organization.id, action.id, admin_user.id)

    with pytest.raises(HTTPException) as exc_info:
        await service.approve(organization.id, action.id, admin_user.id)
    assert exc_info.value.status_code == 400


async def test_reject_records_reason(service, db_client, organization, admin_user):
    action = await service.create(organization.id, AIActionCreateAPI(action_type="create_task", data={"title": "Nope"}))

    rejected = await service.reject(organization.id, action.id, admin_user.id, reason="duplicate")

    assert rejected.status == "rejected"
    assert rejected.data == {"rejection_reason": "duplicate"}
    assert await TaskRepository(db_client).count_for_org(organization.id) == 0
