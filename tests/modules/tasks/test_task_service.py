# tests/modules/tasks/test_task_service.py
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from fastapi import HTTPException

from agencyos.core.repository import utcnow
from agencyos.modules.notifications.repository import NotificationRepository
from agencyos.modules.notifications.services import NotificationService
from agencyos.modules.people.repository import UserRepository
from agencyos.modules.tasks.models import TaskCreateAPI, TaskUpdateAPI
from agencyos.modules.tasks.repository import TaskRepository
from agencyos.modules.tasks.services import TaskService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def automation():
    engine = AsyncMock()
    engine.trigger_rules.return_value = 0
    return engine


@pytest.fixture
def service(db_client, automation) -> TaskService:
    notifications = NotificationService(NotificationRepository(db_client), UserRepository(db_client))
    return TaskService(TaskRepository(db_client), notifications, automation)


async def test_create_notifies_assignee(service, db_client, organization, admin_user, member_user, automation):
    task = await service.create(organization.id, TaskCreateAPI(title="Shoot reels", assignee_id=member_user.id), admin_user)

    assert task.creator_id == admin_user.id
    notifications = await NotificationRepository(db_client).list_for_user(member_user.id)
    assert len(notifications) == 1
    assert notifications[0].type == "task_assigned"
    assert notifications[0].entity_id == task.id
    assert "Shoot reels" in notifications[0].message
    assert automation.trigger_rules.await_args.args[1] == "task_created"


async def test_self_assignment_is_not_notified(service, db_client, organization, admin_user):
    await service.create(organization.id, TaskCreateAPI(title="Plan week", assignee_id=admin_user.id), admin_user)

    assert await NotificationRepository(db_client).list_for_user(admin_user.id) == []


async def test_completing_a_task_stamps_and_triggers(service, organization, admin_user, automation):
    task = await service.create(organization.id, TaskCreateAPI(title="Post"), admin_user)
    automation.trigger_rules.reset_mock()

    done = await service.update(organization.id, task.id, TaskUpdateAPI(status="Done"), admin_user)

    assert done.completed_at is not None
    assert automation.trigger_rules.await_args.args[1] == "task_completed"

    reopened = await service.update(organization.id, task.id, TaskUpdateAPI(status="In Progress"), admin_user)
    assert reopened.completed_at is None


async def test_reassignment_notifies_both_assignees(service, db_client, organization, admin_user, member_user):
    other = await UserRepository(db_client).create({
        "organization_id": organization.id,
        "name": "Sanzhar SMM",
        "email": "smm@agency.kz",
        "job_title": "SMM",
        "hashed_password": "x",
    })
    task = await service.create(organization.id, TaskCreateAPI(title="Stories", assignee_id=member_user.id), admin_user)

    await service.update(
        organization.id, task.id, TaskUpdateAPI(assignee_id=other.id, reassign_reason="vacation"), admin_user
    )

    repo = NotificationRepository(db_client)
    new_assignee = await repo.list_for_user(other.id)
    previous = await repo.list_for_user(member_user.id)
    assert new_assignee[0].type == "task_reassigned"
    assert "vacation" in new_assignee[0].message
    assert {n.type for n in previous} == {"task_assigned", "task_reassigned"}


async def test_moving_the_deadline_resets_the_reminder(service, db_client, organization, admin_user):
    task = await service.create(
        organization.id, TaskCreateAPI(title="Report", deadline=utcnow() + timedelta(hours=5)), admin_user
    )
    await TaskRepository(db_client).update(task.id, {"deadline_notified_at": utcnow()})

    moved = await service.update(organization.id, task.id, TaskUpdateAPI(deadline=datetime(2031, 1, 10, 12, 0)), admin_user)

    assert moved.deadline == datetime(2031, 1, 10, 12, 0)
    assert moved.deadline_notified_at is None


async def test_list_filters_by_assignee(service, organization, admin_user, member_user):
    await service.create(organization.id, TaskCreateAPI(title="Mine", assignee_id=member_user.id), admin_user)
    await service.create(organization.id, TaskCreateAPI(title="Unassigned"), admin_user)

    tasks = await service.list(organization.id, assignee_id=member_user.id)
    assert [t.title for t in tasks] == ["Mine"]


async def test_unknown_assignee_is_rejected_before_saving(service, db_client, organization, admin_user, automation):
    with pytest.raises(HTTPException) as exc_info:
        await service.create(organization.id, TaskCreateAPI(title="Ghost", assignee_id=str(ObjectId())), admin_user)

    assert exc_info.value.status_code == 400
    assert await TaskRepository(db_client).count_for_org(organization.id) == 0
    automation.trigger_rules.assert_not_awaited()


async def test_assignee_from_another_organization_is_rejected(
    service, db_client, organization, admin_user, rival_organization, rival_admin
):
    with pytest.raises(HTTPException) as exc_info:
        await service.create(organization.id, TaskCreateAPI(title="Cross-tenant", assignee_id=rival_admin.id), admin_user)

    assert exc_info.value.status_code == 400
    assert await TaskRepository(db_client).count_for_org(organization.id) == 0
    assert await NotificationRepository(db_client).list_for_user(rival_admin.id) == []


async def test_reassigning_to_another_organization_leaves_task_untouched(
    service, db_client, organization, admin_user, member_user, rival_admin
):
    task = await service.create(organization.id, TaskCreateAPI(title="Stories", assignee_id=member_user.id), admin_user)

    with pytest.raises(HTTPException) as exc_info:
        await service.update(organization.id, task.id, TaskUpdateAPI(assignee_id=rival_admin.id), admin_user)

    assert exc_info.value.status_code == 400
    assert (await TaskRepository(db_client).get_by_id(task.id)).assignee_id == member_user.id
    assert await NotificationRepository(db_client).list_for_user(rival_admin.id) == []


async def test_reassignment_survives_a_deleted_previous_assignee(service, db_client, organization, admin_user, member_user):
    task = await service.create(organization.id, TaskCreateAPI(title="Banner", assignee_id=member_user.id), admin_user)
    await UserRepository(db_client).delete(member_user.id)

    updated = await service.update(organization.id, task.id, TaskUpdateAPI(assignee_id=admin_user.id), admin_user)

    assert updated.assignee_id == admin_user.id
    assert len(await NotificationRepository(db_client).list_for_user(admin_user.id)) == 1
