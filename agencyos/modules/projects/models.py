# agencyos/modules/projects/models.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId, UtcDatetime

PROJECT_STATUSES = Literal[
    "Strategy/KP",
    "Production",
    "Ads Start",
    "In Work",
    "Approval",
    "Completed",
    "Archived",
]
ACTIVE_PROJECT_STATUSES = ("Strategy/KP", "Production", "Ads Start", "In Work", "Approval")


class ProjectBase(BaseModel):
    client_id: Optional[str] = None
    name: str
    status: PROJECT_STATUSES = "Strategy/KP"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    duration: int = 0
    budget: float = 0.0
    total_ltv: float = 0.0
    media_budget: Optional[float] = None
    description: str = ""
    team_ids: List[str] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    is_archived: bool = False


class ProjectInDB(ProjectBase):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class ProjectAPI(ProjectBase):
    id: str
    organization_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectCreateAPI(ProjectBase):
    name: str = Field(..., min_length=1)
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None


class ProjectUpdateAPI(BaseModel):
    client_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1)
    status: Optional[PROJECT_STATUSES] = None
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    duration: Optional[int] = None
    budget: Optional[float] = None
    total_ltv: Optional[float] = None
    media_budget: Optional[float] = None
    description: Optional[str] = None
    team_ids: Optional[List[str]] = None
    services: Optional[List[str]] = None
    is_archived: Optional[bool] = None

    model_config = ConfigDict(extra="ignore")
