# agencyos/modules/analytics/models.py
from datetime import date, datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId

OVERVIEW_PERIODS = Literal["3m", "6m", "12m", "all"]
CORRELATION_STRENGTHS = Literal["strong", "medium", "weak"]


class MonthlyAnalytics(BaseModel):
    month: date = Field(..., description="First day of the month.")
    new_projects: int = 0
    active_projects: int = 0
    new_clients: int = 0
    won_clients: int = 0
    publications: int = 0
    income: float = 0.0
    expenses: float = 0.0
    tasks_completed: int = 0
    team_size: int = 0
    avg_project_budget: float = 0.0

    model_config = ConfigDict(from_attributes=True)


class MonthlyAnalyticsInDB(MonthlyAnalytics):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class AggregatedAnalytics(MonthlyAnalytics):
    profit: float = 0.0
    margin: float = 0.0
    cac: float = 0.0
    ltv: float = 0.0
    revenue_per_employee: float = 0.0


class ComparisonChanges(BaseModel):
    income: float
    expenses: float
    profit: float
    margin: float
    new_clients: float
    won_clients: float
    new_projects: float
    publications: float
    tasks_completed: float


class ComparisonAPI(BaseModel):
    current: AggregatedAnalytics
    previous: AggregatedAnalytics
    changes: ComparisonChanges


class CorrelationAPI(BaseModel):
    metric1: str
    metric2: str
    correlation: float
    strength: CORRELATION_STRENGTHS
    insight: str


class KpiGrowthAPI(BaseModel):
    metric: str
    value: float
    growth: float


class EfficiencyPointAPI(BaseModel):
    month: date
    projects_per_person: float
    content_per_project: float
    income_per_employee: float


class AnalyticsOverviewAPI(BaseModel):
    period: OVERVIEW_PERIODS
    months: List[MonthlyAnalytics]
    totals: AggregatedAnalytics
    kpis: List[KpiGrowthAPI]
    efficiency: List[EfficiencyPointAPI]
    correlations: List[CorrelationAPI]


class RefreshResultAPI(BaseModel):
    months_refreshed: int
