# agencyos/modules/roadmaps/models.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from agencyos.models.api_common import PyObjectId

STAGE_STATUSES = Literal["locked", "active", "completed"]


# --- Templates ---

class RoadmapTemplateTask(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    estimated_hours: Optional[float] = None
    # Days from the stage start; the stage end is used when missing
    duration_days: Optional[int] = Field(None, ge=0)
    job_title_required: Optional[str] = None


class RoadmapTemplateStage(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    order_index: int = 0
    color: str = "#6366f1"
    duration_days: int = Field(7, ge=0)
    tasks: List[RoadmapTemplateTask] = Field(default_factory=list)


class RoadmapTemplateBase(BaseModel):
    name: str
    description: str = ""
    icon: Optional[str] = None
    service_type: Optional[str] = None
    is_active: bool = True
    stages: List[RoadmapTemplateStage] = Field(default_factory=list)

    @computed_field
    @property
    def total_stages(self) -> int:
        return len(self.stages)

    @computed_field
    @property
    def total_tasks(self) -> int:
        return sum(len(stage.tasks) for stage in self.stages)


class RoadmapTemplateInDB(RoadmapTemplateBase):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class RoadmapTemplateAPI(RoadmapTemplateBase):
    id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoadmapTemplateCreateAPI(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    icon: Optional[str] = None
    service_type: Optional[str] = None
    is_active: bool = True
    stages: List[RoadmapTemplateStage] = Field(default_factory=list)


class RoadmapTemplateUpdateAPI(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    service_type: Optional[str] = None
    is_active: Optional[bool] = None
    stages: Optional[List[RoadmapTemplateStage]] = None


# --- Project stages ---

class ProjectRoadmapStageInDB(BaseModel):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    project_id: str
    template_id: Optional[str] = None
    name: str
    description: str = ""
    order_index: int
    color: str = "#6366f1"
    status: STAGE_STATUSES = "locked"
    duration_days: int = 7
    planned_start: Optional[datetime] = None
    planned_end: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class ProjectRoadmapStageAPI(BaseModel):
    id: str
    project_id: str
    template_id: Optional[str] = None
    name: str
    description: str
    order_index: int
    color: str
    status: STAGE_STATUSES
    duration_days: int
    planned_start: Optional[datetime] = None
    planned_end: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ApplyTemplateAPI(BaseModel):
    template_id: str


class ApplyTemplateResultAPI(BaseModel):
    stages_created: int
    tasks_created: int
    unassigned_tasks: int


class CompleteStageResultAPI(BaseModel):
    completed_stage_id: str
    next_stage_id: Optional[str] = None
    message: str


class DeleteRoadmapResultAPI(BaseModel):
    deleted_stages: int
    deleted_tasks: int
