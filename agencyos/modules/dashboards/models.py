# agencyos/modules/dashboards/models.py
from typing import Any, Dict

from pydantic import BaseModel, Field

from .config import DASHBOARD_TYPES


class DashboardAPI(BaseModel):
    type: DASHBOARD_TYPES
    title: str
    metrics: Dict[str, Any] = Field(default_factory=dict)
