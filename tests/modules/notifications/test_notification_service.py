# tests/modules/notifications/test_notification_service.py
import pytest
from bson import ObjectId
from fastapi import HTTPException

from agencyos.modules.notifications.models import NotificationCreate
from agencyos.modules.notifications.repository import NotificationRepository
from agencyos.modules.notifications.services import NotificationService
from agencyos.modules.people.repository import UserRepository

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service(db_client) -> NotificationService:
    return NotificationService(NotificationRepository(db_client), UserRepository(db_client))


async def test_notification_is_stored_under_recipient_organization(service, organization, member_user):
    created = await service.create(NotificationCreate(user_id=member_user.id, title="Hi", message="Welcome"))

    assert created.organization_id == organization.id
    assert created.is_read is False
    assert created.type == "info"


async def test_unknown_recipient_is_rejected(service):
    with pytest.raises(HTTPException) as exc_info:
        await service.create(NotificationCreate(user_id=str(ObjectId()), title="Hi", message="Nobody home"))
    assert exc_info.value.status_code == 400


async def test_scoped_create_refuses_recipient_of_another_organization(service, db_client, organization, rival_admin):
    with pytest.raises(HTTPException) as exc_info:
        await service.task_assigned(rival_admin.id, "t-1", "Spam", "Aigerim", organization_id=organization.id)

    assert exc_info.value.status_code == 400
    assert await NotificationRepository(db_client).list_for_user(rival_admin.id) == []


async def test_unread_count_and_mark_as_read(service, member_user, admin_user):
    first = await service.create(NotificationCreate(user_id=member_user.id, title="One", message="1"))
    await service.create(NotificationCreate(user_id=member_user.id, title="Two", message="2"))
    await service.create(NotificationCreate(user_id=admin_user.id, title="Other", message="3"))

    assert await service.unread_count(member_user.id) == 2

    await service.mark_as_read(member_user.id, first.id)
    assert await service.unread_count(member_user.id) == 1

    assert await service.mark_all_as_read(member_user.id) == 1
    assert await service.unread_count(member_user.id) == 0
    assert await service.unread_count(admin_user.id) == 1


async def test_cannot_mark_someone_elses_notification(service, member_user, admin_user):
    theirs = await service.create(NotificationCreate(user_id=admin_user.id, title="Private", message="x"))

    with pytest.raises(HTTPException) as exc_info:
        await service.mark_as_read(member_user.id, theirs.id)
    assert exc_info.value.status_code == 404
    assert await service.unread_count(admin_user.id) == 1

    with pytest.raises(HTTPException):
        await service.delete(member_user.id, theirs.id)


@pytest.mark.parametrize("hours_left, expected", [
    (0, "less than an hour left"),
    (1, "less than an hour left"),
    (7, "7 h left"),
])
async def test_deadline_text(service, member_user, hours_left, expected):
    notification = await service.deadline_approaching(member_user.id, "t-1", "Reels", hours_left)

    assert notification.message == f'{expected} until the deadline of "Reels"'
    assert notification.type == "deadline_approaching"
    assert notification.entity_type == "task"
