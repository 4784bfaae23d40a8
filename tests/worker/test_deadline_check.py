# tests/worker/test_deadline_check.py
from datetime import timedelta

import pytest
from bson import ObjectId

from agencyos.core.repository import utcnow
from agencyos.modules.automation.repository import AutomationRuleRepository
from agencyos.modules.notifications.repository import NotificationRepository
from agencyos.modules.tasks.repository import TaskRepository
from agencyos.worker.tasks_automation import check_deadlines_once

pytestmark = pytest.mark.asyncio


async def test_reminder_is_sent_once(db_client, organization, member_user):
    tasks = TaskRepository(db_client)
    due = await tasks.create({
        "organization_id": organization.id, "title": "Reels for Acme",
        "assignee_id": member_user.id, "deadline": utcnow() + timedelta(hours=5),
    })
    await tasks.create({
        "organization_id": organization.id, "title": "Next week",
        "assignee_id": member_user.id, "deadline": utcnow() + timedelta(days=7),
    })
    await tasks.create({
        "organization_id": organization.id, "title": "Already done", "status": "Done",
        "assignee_id": member_user.id, "deadline": utcnow() + timedelta(hours=2),
    })

    stats = await check_deadlines_once(db_client)

    assert stats == {"tasks": 1, "notified": 1, "rules_executed": 0, "failed": 0}
    notifications = await NotificationRepository(db_client).list_for_user(member_user.id)
    assert len(notifications) == 1
    assert notifications[0].type == "deadline_approaching"
    assert notifications[0].entity_id == due.id
    assert "5 h" in notifications[0].message
    assert (await tasks.get_by_id(due.id)).deadline_notified_at is not None

    assert (await check_deadlines_once(db_client))["tasks"] == 0


async def test_deadline_rules_receive_hours_left(db_client, organization, member_user):
    await AutomationRuleRepository(db_client).create({
        "organization_id": organization.id,
        "name": "Escalate",
        "trigger_type": "deadline_approaching",
        "condition_config": {"hours_left": {"operator": "less_than", "value": 3}},
        "action_type": "create_task",
        "action_config": {"title": "Escalate: {{task_title}}"},
        "is_active": True,
    })
    await TaskRepository(db_client).create({
        "organization_id": organization.id, "title": "Shooting", "deadline": utcnow() + timedelta(hours=2),
    })

    stats = await check_deadlines_once(db_client)

    assert stats["rules_executed"] == 1
    assert stats["notified"] == 0
    titles = {t.title for t in await TaskRepository(db_client).list_for_org(organization.id)}
    assert "Escalate: Shooting" in titles


async def test_failed_reminder_still_marks_the_task(db_client, organization):
    """A missing assignee fails the notification, but rules never run twice for the task."""
    await AutomationRuleRepository(db_client).create({
        "organization_id": organization.id,
        "name": "Chase",
        "trigger_type": "deadline_approaching",
        "action_type": "create_task",
        "action_config": {"title": "Chase: {{task_title}}"},
        "is_active": True,
    })
    tasks = TaskRepository(db_client)
    orphan = await tasks.create({
        "organization_id": organization.id, "title": "Logo", "assignee_id": str(ObjectId()),
        "deadline": utcnow() + timedelta(hours=4),
    })

    first = await check_deadlines_once(db_client)
    second = await check_deadlines_once(db_client)

    assert first == {"tasks": 1, "notified": 0, "rules_executed": 1, "failed": 1}
    assert second == {"tasks": 0, "notified": 0, "rules_executed": 0, "failed": 0}
    assert (await tasks.get_by_id(orphan.id)).deadline_notified_at is not None
    chase = [t for t in await tasks.list_for_org(organization.id) if t.title == "Chase: Logo"]
    assert len(chase) == 1
