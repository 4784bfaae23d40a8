# agencyos/modules/analytics/services.py
import asyncio
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta
from fastapi import Depends
from loguru import logger

from agencyos.core.repository import utcnow
from agencyos.modules.clients.models import WON_STATUSES, ClientInDB
from agencyos.modules.clients.repository import ClientRepository, get_client_repository
from agencyos.modules.finance.models import FinancialSummary, TransactionInDB
from agencyos.modules.finance.repository import TransactionRepository, get_transaction_repository
from agencyos.modules.finance.services import summarize
from agencyos.modules.people.models import UserInDB
from agencyos.modules.people.repository import UserRepository, get_user_repository
from agencyos.modules.projects.models import ProjectInDB
from agencyos.modules.projects.repository import ProjectRepository, get_project_repository
from agencyos.modules.tasks.models import CONTENT_TASK_TYPES, TaskInDB
from agencyos.modules.tasks.repository import TaskRepository, get_task_repository
from .correlation import calculate_change, get_correlations
from .models import (
    AggregatedAnalytics,
    AnalyticsOverviewAPI,
    ComparisonAPI,
    ComparisonChanges,
    EfficiencyPointAPI,
    KpiGrowthAPI,
    MonthlyAnalytics,
    MonthlyAnalyticsInDB,
)
from .repository import MonthlyAnalyticsRepository, get_monthly_analytics_repository

OVERVIEW_MONTHS = {"3m": 3, "6m": 6, "12m": 12, "all": 24}
DEFAULT_LOOKBACK_MONTHS = 24
MAX_RANGE_MONTHS = 120

_SUMMED_FIELDS = (
    "new_projects", "active_projects", "new_clients", "won_clients",
    "publications", "income", "expenses", "tasks_completed",
)


def month_start(value: date) -> date:
    return date(value.year, value.month, 1)


def get_months_list(start: date, end: date) -> List[date]:
    """First day of every month between `start` and `end`, inclusive."""
    months = []
    current = month_start(start)
    while current <= end:
        months.append(current)
        current += relativedelta(months=1)
    return months


def _in_month(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    return value is not None and start <= value < end


def _project_active_in(project: ProjectInDB, start: datetime, end: datetime) -> bool:
    if project.is_archived:
        return False
    began = project.start_date or project.created_at
    finished = project.end_date
    if finished is None and project.status in ("Completed", "Archived"):
        finished = project.updated_at
    return began < end and (finished is None or finished >= start)


def compute_monthly_rows(
    months: Sequence[date],
    clients: Iterable[ClientInDB],
    projects: Iterable[ProjectInDB],
    tasks: Iterable[TaskInDB],
    transactions: Iterable[TransactionInDB],
    users: Iterable[UserInDB],
) -> List[MonthlyAnalytics]:
    """Builds one MonthlyAnalytics row per month from raw records."""
    clients, projects, tasks = list(clients), list(projects), list(tasks)
    transactions, users = list(transactions), list(users)
    rows = []
    for month in months:
        start = datetime.combine(month, time.min)
        end = start + relativedelta(months=1)

        new_projects = [p for p in projects if _in_month(p.created_at, start, end)]
        done_tasks = [t for t in tasks if t.status == "Done" and _in_month(t.completed_at, start, end)]
        amounts = [t.amount for t in transactions if _in_month(t.date, start, end)]
        rows.append(MonthlyAnalytics(
            month=month,
            new_projects=len(new_projects),
            active_projects=sum(1 for p in projects if _project_active_in(p, start, end)),
            new_clients=sum(1 for c in clients if _in_month(c.created_at, start, end)),
            won_clients=sum(
                1 for c in clients
                if c.status in WON_STATUSES and _in_month(c.status_changed_at or c.created_at, start, end)
            ),
            publications=sum(1 for t in done_tasks if t.type in CONTENT_TASK_TYPES),
            income=round(sum(a for a in amounts if a > 0), 2),
            expenses=round(-sum(a for a in amounts if a < 0), 2),
            tasks_completed=len(done_tasks),
            team_size=sum(1 for u in users if u.is_active and u.created_at < end),
            avg_project_budget=round(sum(p.budget for p in new_projects) / len(new_projects), 2) if new_projects else 0.0,
        ))
    return rows


def aggregate_rows(rows: Sequence[MonthlyAnalytics], start: date, end: date) -> AggregatedAnalytics:
    """Totals of the rows whose month lies in [start, end] plus the derived KPIs."""
    selected = [r for r in rows if start <= r.month <= end]
    if not selected:
        return AggregatedAnalytics(month=start)

    totals: Dict[str, float] = {name: sum(getattr(r, name) for r in selected) for name in _SUMMED_FIELDS}
    team_size = max(r.team_size for r in selected)
    income, expenses, won = totals["income"], totals["expenses"], totals["won_clients"]
    profit = income - expenses
    return AggregatedAnalytics(
        month=start,
        **totals,
        team_size=team_size,
        avg_project_budget=sum(r.avg_project_budget for r in selected) / len(selected),
        profit=profit,
        margin=profit / income * 100 if income > 0 else 0.0,
        cac=expenses / won if won > 0 else 0.0,
        ltv=income / won if won > 0 else 0.0,
        revenue_per_employee=income / team_size if team_size > 0 else 0.0,
    )


def _as_plain_row(row: MonthlyAnalyticsInDB) -> MonthlyAnalytics:
    return MonthlyAnalytics(**row.model_dump(include=set(MonthlyAnalytics.model_fields)))


class AnalyticsService:
    """Unified analytics across clients, projects, tasks, money and team."""

    def __init__(
        self,
        monthly_repo: MonthlyAnalyticsRepository,
        client_repo: ClientRepository,
        project_repo: ProjectRepository,
        task_repo: TaskRepository,
        transaction_repo: TransactionRepository,
        user_repo: UserRepository,
    ):
        self.monthly_repo = monthly_repo
        self.client_repo = client_repo
        self.project_repo = project_repo
        self.task_repo = task_repo
        self.transaction_repo = transaction_repo
        self.user_repo = user_repo

    async def compute_live(self, organization_id: str, start: Optional[date] = None) -> List[MonthlyAnalytics]:
        today = utcnow().date()
        start = month_start(start or today - relativedelta(months=DEFAULT_LOOKBACK_MONTHS))
        since = datetime.combine(start, time.min)
        clients, projects, tasks, transactions, users = await asyncio.gather(
            self.client_repo.list_for_org(organization_id, limit=0),
            self.project_repo.list_for_org(organization_id, limit=0),
            self.task_repo.list_for_org(organization_id, {"status": "Done", "completed_at": {"$gte": since}}, limit=0),
            self.transaction_repo.list_between(organization_id, since, None),
            self.user_repo.list_for_org(organization_id, limit=0),
        )
        return compute_monthly_rows(get_months_list(start, today), clients, projects, tasks, transactions, users)

    async def get_monthly_analytics(self, organization_id: str, start: Optional[date] = None) -> List[MonthlyAnalytics]:
        """Materialized rows when present, otherwise a live computation. `[]` if both fail."""
        log = logger.bind(service="AnalyticsService", organization_id=organization_id)
        try:
            rows = await self.monthly_repo.list_since(organization_id, start)
            if rows:
                return [_as_plain_row(r) for r in rows]
            log.debug("No materialized analytics rows; computing live.")
        except Exception as e:
            log.warning(f"Materialized analytics unavailable, falling back to live computation: {e}")

        try:
            return await self.compute_live(organization_id, start)
        except Exception as e:
            log.exception(f"Live analytics computation failed: {e}")
            return []

    async def get_analytics_for_period(self, organization_id: str, start: date, end: date) -> AggregatedAnalytics:
        rows = await self.get_monthly_analytics(organization_id, start)
        return aggregate_rows(rows, start, end)

    async def get_analytics_for_month(self, organization_id: str, month: date) -> AggregatedAnalytics:
        first = month_start(month)
        last = first + relativedelta(months=1, days=-1)
        return await self.get_analytics_for_period(organization_id, first, last)

    async def get_comparison_data(
        self,
        organization_id: str,
        current: Tuple[date, date],
        previous: Tuple[date, date],
    ) -> ComparisonAPI:
        cur, prev = await asyncio.gather(
            self.get_analytics_for_period(organization_id, *current),
            self.get_analytics_for_period(organization_id, *previous),
        )
        return ComparisonAPI(
            current=cur,
            previous=prev,
            changes=ComparisonChanges(
                income=calculate_change(cur.income, prev.income),
                expenses=calculate_change(cur.expenses, prev.expenses),
                profit=calculate_change(cur.profit, prev.profit),
                margin=cur.margin - prev.margin,
                new_clients=calculate_change(cur.new_clients, prev.new_clients),
                won_clients=calculate_change(cur.won_clients, prev.won_clients),
                new_projects=calculate_change(cur.new_projects, prev.new_projects),
                publications=calculate_change(cur.publications, prev.publications),
                tasks_completed=calculate_change(cur.tasks_completed, prev.tasks_completed),
            ),
        )

    async def get_financial_summary(self, organization_id: str, start: date, end: date) -> FinancialSummary:
        transactions = await self.transaction_repo.list_between(
            organization_id, datetime.combine(start, time.min), datetime.combine(end, time.max)
        )
        return summarize(t.amount for t in transactions)

    async def get_overview(self, organization_id: str, period: str = "3m") -> AnalyticsOverviewAPI:
        today = utcnow().date()
        start = month_start(today - relativedelta(months=OVERVIEW_MONTHS[period]))
        rows = await self.get_monthly_analytics(organization_id, start)

        kpis: List[KpiGrowthAPI] = []
        if rows:
            latest = rows[-1]
            previous = rows[-2] if len(rows) > 1 else latest
            for metric in ("income", "new_clients", "new_projects", "publications"):
                value = float(getattr(latest, metric))
                kpis.append(KpiGrowthAPI(
                    metric=metric,
                    value=value,
                    growth=calculate_change(value, float(getattr(previous, metric))),
                ))

        efficiency = [
            EfficiencyPointAPI(
                month=r.month,
                projects_per_person=round(r.active_projects / r.team_size, 2) if r.team_size else 0.0,
                content_per_project=round(r.publications / r.active_projects, 1) if r.active_projects else 0.0,
                income_per_employee=round(r.income / r.team_size, 2) if r.team_size else 0.0,
            )
            for r in rows
        ]

        return AnalyticsOverviewAPI(
            period=period,
            months=rows,
            totals=aggregate_rows(rows, start, today),
            kpis=kpis,
            efficiency=efficiency,
            correlations=get_correlations(rows),
        )

    async def refresh_monthly(self, organization_id: str, months: int = DEFAULT_LOOKBACK_MONTHS) -> int:
        """Recomputes the materialized rows of the last `months` months."""
        start = month_start(utcnow().date() - relativedelta(months=months))
        rows = await self.compute_live(organization_id, start)
        for row in rows:
            await self.monthly_repo.upsert_month(organization_id, row.month, row.model_dump())
        logger.bind(service="AnalyticsService", organization_id=organization_id).info(
            f"Materialized analytics refreshed: {len(rows)} month(s)."
        )
        return len(rows)


async def get_analytics_service(
    monthly_repo: MonthlyAnalyticsRepository = Depends(get_monthly_analytics_repository),
    client_repo: ClientRepository = Depends(get_client_repository),
    project_repo: ProjectRepository = Depends(get_project_repository),
    task_repo: TaskRepository = Depends(get_task_repository),
    transaction_repo: TransactionRepository = Depends(get_transaction_repository),
    user_repo: UserRepository = Depends(get_user_repository),
) -> AnalyticsService:
    return AnalyticsService(monthly_repo, client_repo, project_repo, task_repo, transaction_repo, user_repo)
