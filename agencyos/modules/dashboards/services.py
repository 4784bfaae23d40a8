# agencyos/modules/dashboards/services.py
from collections import Counter
from datetime import datetime
from typing import Any, Dict

from fastapi import Depends
from loguru import logger

from agencyos.core.repository import utcnow
from agencyos.modules.analytics.services import AnalyticsService, get_analytics_service
from agencyos.modules.clients.models import WON_STATUSES
from agencyos.modules.clients.repository import ClientRepository, get_client_repository
from agencyos.modules.finance.repository import TransactionRepository, get_transaction_repository
from agencyos.modules.finance.services import summarize
from agencyos.modules.people.models import UserInDB
from agencyos.modules.projects.models import ACTIVE_PROJECT_STATUSES
from agencyos.modules.projects.repository import ProjectRepository, get_project_repository
from agencyos.modules.tasks.repository import TaskRepository, get_task_repository
from .config import get_dashboard_title, get_dashboard_type
from .models import DashboardAPI

_OPEN = {"$ne": "Done"}


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class DashboardService:
    """Role-specific dashboard chosen from the user's job title."""

    def __init__(
        self,
        client_repo: ClientRepository,
        project_repo: ProjectRepository,
        task_repo: TaskRepository,
        transaction_repo: TransactionRepository,
        analytics: AnalyticsService,
    ):
        self.client_repo = client_repo
        self.project_repo = project_repo
        self.task_repo = task_repo
        self.transaction_repo = transaction_repo
        self.analytics = analytics

    async def get_dashboard(self, user: UserInDB) -> DashboardAPI:
        dashboard_type = get_dashboard_type(user.job_title)
        builders = {
            "director": self._director_metrics,
            "sales": self._sales_metrics,
            "pm": self._pm_metrics,
            "accountant": self._accountant_metrics,
        }
        builder = builders.get(dashboard_type, self._personal_task_metrics)
        metrics = await builder(user)
        logger.bind(service="DashboardService", organization_id=user.organization_id).debug(
            f"Dashboard '{dashboard_type}' built for user {user.id}"
        )
        return DashboardAPI(type=dashboard_type, title=get_dashboard_title(dashboard_type), metrics=metrics)

    async def _director_metrics(self, user: UserInDB) -> Dict[str, Any]:
        org = user.organization_id
        now = utcnow()
        month = await self.analytics.get_analytics_for_month(org, now.date())
        return {
            "month": month.model_dump(mode="json"),
            "active_clients": await self.client_repo.count_for_org(org, {"status": {"$in": list(WON_STATUSES)}}),
            "active_projects": await self.project_repo.count_for_org(
                org, {"status": {"$in": list(ACTIVE_PROJECT_STATUSES)}, "is_archived": {"$ne": True}}
            ),
            "open_tasks": await self.task_repo.count_for_org(org, {"status": _OPEN}),
            "overdue_tasks": await self.task_repo.count_for_org(org, {"status": _OPEN, "deadline": {"$lt": now}}),
        }

    async def _sales_metrics(self, user: UserInDB) -> Dict[str, Any]:
        clients = await self.client_repo.list_for_org(user.organization_id, {"manager_id": user.id}, limit=0)
        month_start = _month_start(utcnow())
        won_this_month = [
            c for c in clients
            if c.status in WON_STATUSES and (c.status_changed_at or c.created_at) >= month_start
        ]
        return {
            "total_clients": len(clients),
            "clients_by_status": dict(Counter(c.status for c in clients)),
            "won_this_month": len(won_this_month),
            "won_budget_this_month": round(sum(c.budget for c in won_this_month), 2),
        }

    async def _pm_metrics(self, user: UserInDB) -> Dict[str, Any]:
        org = user.organization_id
        projects = await self.project_repo.list_for_org(
            org, {"team_ids": user.id, "is_archived": {"$ne": True}}, limit=0
        )
        project_ids = [p.id for p in projects]
        overdue = 0
        if project_ids:
            overdue = await self.task_repo.count_for_org(
                org, {"project_id": {"$in": project_ids}, "status": _OPEN, "deadline": {"$lt": utcnow()}}
            )
        return {
            "projects": len(projects),
            "projects_by_status": dict(Counter(p.status for p in projects)),
            "active_projects": sum(1 for p in projects if p.status in ACTIVE_PROJECT_STATUSES),
            "overdue_tasks": overdue,
        }

    async def _accountant_metrics(self, user: UserInDB) -> Dict[str, Any]:
        now = utcnow()
        transactions = await self.transaction_repo.list_between(user.organization_id, _month_start(now), now)
        summary = summarize(t.amount for t in transactions)
        return {
            "summary": summary.model_dump(),
            "transactions": len(transactions),
            "unverified": sum(1 for t in transactions if not t.is_verified),
        }

    async def _personal_task_metrics(self, user: UserInDB) -> Dict[str, Any]:
        org = user.organization_id
        now = utcnow()
        mine = {"assignee_id": user.id}
        return {
            "open_tasks": await self.task_repo.count_for_org(org, {**mine, "status": _OPEN}),
            "overdue_tasks": await self.task_repo.count_for_org(org, {**mine, "status": _OPEN, "deadline": {"$lt": now}}),
            "done_this_month": await self.task_repo.count_for_org(
                org, {**mine, "status": "Done", "completed_at": {"$gte": _month_start(now)}}
            ),
        }


async def get_dashboard_service(
    client_repo: ClientRepository = Depends(get_client_repository),
    project_repo: ProjectRepository = Depends(get_project_repository),
    task_repo: TaskRepository = Depends(get_task_repository),
    transaction_repo: TransactionRepository = Depends(get_transaction_repository),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> DashboardService:
    return DashboardService(client_repo, project_repo, task_repo, transaction_repo, analytics)
