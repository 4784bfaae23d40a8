# tests/modules/dashboards/test_dashboard_service.py
from datetime import timedelta

import pytest

from agencyos.core.repository import utcnow
from agencyos.modules.analytics.repository import MonthlyAnalyticsRepository
from agencyos.modules.analytics.services import AnalyticsService
from agencyos.modules.clients.repository import ClientRepository
from agencyos.modules.dashboards.services import DashboardService
from agencyos.modules.finance.repository import TransactionRepository
from agencyos.modules.people.repository import UserRepository
from agencyos.modules.projects.repository import ProjectRepository
from agencyos.modules.tasks.repository import TaskRepository

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service(db_client) -> DashboardService:
    analytics = AnalyticsService(
        MonthlyAnalyticsRepository(db_client),
        ClientRepository(db_client),
        ProjectRepository(db_client),
        TaskRepository(db_client),
        TransactionRepository(db_client),
        UserRepository(db_client),
    )
    return DashboardService(
        ClientRepository(db_client),
        ProjectRepository(db_client),
        TaskRepository(db_client),
        TransactionRepository(db_client),
        analytics,
    )


async def test_designer_gets_personal_task_dashboard(service, db_client, organization, member_user):
    tasks = TaskRepository(db_client)
    yesterday = utcnow() - timedelta(days=1)
    await tasks.create({"organization_id": organization.id, "title": "Banner", "assignee_id": member_user.id, "deadline": yesterday})
    await tasks.create({"organization_id": organization.id, "title": "Logo", "assignee_id": member_user.id})
    await tasks.create({
        "organization_id": organization.id, "title": "Icons", "assignee_id": member_user.id,
        "status": "Done", "completed_at": utcnow(),
    })
    await tasks.create({"organization_id": organization.id, "title": "Someone else's", "status": "To Do"})

    dashboard = await service.get_dashboard(member_user)

    assert dashboard.type == "creative"
    assert dashboard.metrics == {"open_tasks": 2, "overdue_tasks": 1, "done_this_month": 1}


async def test_ceo_gets_director_dashboard(service, db_client, organization, admin_user):
    await ClientRepository(db_client).create({"organization_id": organization.id, "name": "Acme", "status": "In Work"})
    await ClientRepository(db_client).create({"organization_id": organization.id, "name": "Beta"})
    await TransactionRepository(db_client).create({"organization_id": organization.id, "amount": 200_000, "date": utcnow()})

    dashboard = await service.get_dashboard(admin_user)

    assert dashboard.type == "director"
    assert dashboard.title == "Операционная панель директора"
    assert dashboard.metrics["active_clients"] == 1
    assert dashboard.metrics["month"]["income"] == 200_000
    assert dashboard.metrics["open_tasks"] == 0
