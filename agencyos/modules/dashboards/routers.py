# agencyos/modules/dashboards/routers.py
from fastapi import APIRouter, Depends

from agencyos.core.security import CurrentUser
from .models import DashboardAPI
from .services import DashboardService, get_dashboard_service

dashboards_router = APIRouter()


@dashboards_router.get("/me", response_model=DashboardAPI, summary="Dashboard matching the caller's job title")
async def my_dashboard(current_user: CurrentUser, service: DashboardService = Depends(get_dashboard_service)):
    return await service.get_dashboard(current_user)
