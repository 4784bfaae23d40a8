# tests/modules/analytics/test_analytics_service.py
import pytest

from agencyos.core.repository import utcnow
from agencyos.modules.analytics.repository import MonthlyAnalyticsRepository
from agencyos.modules.analytics.services import AnalyticsService, month_start
from agencyos.modules.clients.repository import ClientRepository
from agencyos.modules.finance.repository import TransactionRepository
from agencyos.modules.people.repository import UserRepository
from agencyos.modules.projects.repository import ProjectRepository
from agencyos.modules.tasks.repository import TaskRepository

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service(db_client) -> AnalyticsService:
    return AnalyticsService(
        MonthlyAnalyticsRepository(db_client),
        ClientRepository(db_client),
        ProjectRepository(db_client),
        TaskRepository(db_client),
        TransactionRepository(db_client),
        UserRepository(db_client),
    )


async def _seed_current_month(db_client, organization_id: str) -> None:
    now = utcnow()
    await TransactionRepository(db_client).create({"organization_id": organization_id, "amount": 400_000, "date": now})
    await TransactionRepository(db_client).create({"organization_id": organization_id, "amount": -50_000, "date": now})
    await ClientRepository(db_client).create({"organization_id": organization_id, "name": "Acme"})


async def test_live_computation_when_nothing_is_materialized(service, db_client, organization, admin_user):
    await _seed_current_month(db_client, organization.id)

    rows = await service.get_monthly_analytics(organization.id)

    assert len(rows) == 25
    assert rows[-1].month == month_start(utcnow().date())
    assert rows[-1].income == 400_000
    assert rows[-1].expenses == 50_000
    assert rows[-1].new_clients == 1
    assert rows[-1].team_size == 1


async def test_materialized_rows_are_preferred(service, db_client, organization, admin_user):
    await _seed_current_month(db_client, organization.id)

    assert await service.refresh_monthly(organization.id, months=2) == 3

    rows = await service.get_monthly_analytics(organization.id)
    assert len(rows) == 3
    assert rows[-1].income == 400_000
    assert await MonthlyAnalyticsRepository(db_client).count_for_org(organization.id) == 3


async def test_month_and_overview(service, db_client, organization, admin_user):
    await _seed_current_month(db_client, organization.id)

    month = await service.get_analytics_for_month(organization.id, utcnow().date())
    assert month.profit == 350_000
    assert month.margin == pytest.approx(87.5)

    overview = await service.get_overview(organization.id, "3m")
    assert overview.period == "3m"
    assert len(overview.months) == 4
    assert {k.metric for k in overview.kpis} == {"income", "new_clients", "new_projects", "publications"}
    assert overview.totals.income == 400_000


async def test_comparison_growth(service, db_client, organization):
    await _seed_current_month(db_client, organization.id)
    this_month = month_start(utcnow().date())
    year_ago = this_month.replace(year=this_month.year - 1)

    comparison = await service.get_comparison_data(
        organization.id, current=(this_month, this_month), previous=(year_ago, year_ago),
    )

    assert comparison.current.income == 400_000
    assert comparison.previous.income == 0
    assert comparison.changes.income == 100.0
