# agencyos/modules/analytics/routers.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from agencyos.core.repository import utcnow
from agencyos.core.security import CurrentUser, require_role
from agencyos.modules.finance.models import FinancialSummary
from .correlation import get_correlations
from .models import (
    OVERVIEW_PERIODS,
    AggregatedAnalytics,
    AnalyticsOverviewAPI,
    ComparisonAPI,
    CorrelationAPI,
    MonthlyAnalytics,
    RefreshResultAPI,
)
from .services import MAX_RANGE_MONTHS, AnalyticsService, get_analytics_service, get_months_list

analytics_router = APIRouter()


def _check_range(start: date, end: date) -> None:
    if start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must not be after end.")
    if (end.year - start.year) * 12 + end.month - start.month + 1 > MAX_RANGE_MONTHS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Range must not span more than {MAX_RANGE_MONTHS} months.",
        )


@analytics_router.get("/monthly", response_model=List[MonthlyAnalytics])
async def monthly_analytics(
    current_user: CurrentUser,
    start: Optional[date] = None,
    service: AnalyticsService = Depends(get_analytics_service),
):
    if start:
        _check_range(start, max(start, utcnow().date()))
    return await service.get_monthly_analytics(current_user.organization_id, start)


@analytics_router.get("/period", response_model=AggregatedAnalytics)
async def analytics_for_period(
    current_user: CurrentUser,
    start: date,
    end: date,
    service: AnalyticsService = Depends(get_analytics_service),
):
    _check_range(start, end)
    return await service.get_analytics_for_period(current_user.organization_id, start, end)


@analytics_router.get("/month", response_model=AggregatedAnalytics)
async def analytics_for_month(current_user: CurrentUser, month: date, service: AnalyticsService = Depends(get_analytics_service)):
    return await service.get_analytics_for_month(current_user.organization_id, month)


@analytics_router.get("/comparison", response_model=ComparisonAPI)
async def comparison(
    current_user: CurrentUser,
    current_start: date,
    current_end: date,
    previous_start: date,
    previous_end: date,
    service: AnalyticsService = Depends(get_analytics_service),
):
    _check_range(current_start, current_end)
    _check_range(previous_start, previous_end)
    return await service.get_comparison_data(
        current_user.organization_id, (current_start, current_end), (previous_start, previous_end)
    )


@analytics_router.get("/months", response_model=List[date])
async def months_list(current_user: CurrentUser, start: date, end: date):
    _check_range(start, end)
    return get_months_list(start, end)


@analytics_router.get("/financial-summary", response_model=FinancialSummary)
async def financial_summary(
    current_user: CurrentUser,
    start: date,
    end: date,
    service: AnalyticsService = Depends(get_analytics_service),
):
    _check_range(start, end)
    return await service.get_financial_summary(current_user.organization_id, start, end)


@analytics_router.get("/correlations", response_model=List[CorrelationAPI])
async def correlations(
    current_user: CurrentUser,
    start: Optional[date] = None,
    service: AnalyticsService = Depends(get_analytics_service),
):
    return get_correlations(await service.get_monthly_analytics(current_user.organization_id, start))


@analytics_router.get("/overview", response_model=AnalyticsOverviewAPI)
async def overview(
    current_user: CurrentUser,
    period: OVERVIEW_PERIODS = Query("3m"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_overview(current_user.organization_id, period)


@analytics_router.post("/refresh", response_model=RefreshResultAPI)
async def refresh(
    current_user=Depends(require_role(["admin"])),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return RefreshResultAPI(months_refreshed=await service.refresh_monthly(current_user.organization_id))
