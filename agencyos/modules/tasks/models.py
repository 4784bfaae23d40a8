# agencyos/modules/tasks/models.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId, UtcDatetime

TASK_STATUSES = Literal[
    "To Do",
    "In Progress",
    "Review",
    "Pending Client",
    "Approved",
    "Rejected",
    "Ready",
    "Done",
]
TASK_PRIORITIES = Literal["Low", "Medium", "High"]
TASK_TYPES = Literal[
    "Task", "Meeting", "Shooting", "Call", "Post", "Reels", "Stories",
    "content_post", "content_reel", "content_story",
]
# Task types counted as publications in analytics
CONTENT_TASK_TYPES = ("Post", "Reels", "Stories", "content_post", "content_reel", "content_story")


class TaskBase(BaseModel):
    project_id: Optional[str] = None
    client_id: Optional[str] = None
    assignee_id: Optional[str] = None
    title: str
    description: str = ""
    status: TASK_STATUSES = "To Do"
    priority: TASK_PRIORITIES = "Medium"
    type: TASK_TYPES = "Task"
    deadline: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    estimated_hours: Optional[float] = None
    stage_id: Optional[str] = None


class TaskInDB(TaskBase):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    creator_id: Optional[str] = None
    completed_at: Optional[datetime] = None
    # Set once the deadline reminder went out; cleared when the deadline moves
    deadline_notified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class TaskAPI(TaskBase):
    id: str
    organization_id: str
    creator_id: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TaskCreateAPI(TaskBase):
    title: str = Field(..., min_length=1)
    deadline: Optional[UtcDatetime] = None


class TaskUpdateAPI(BaseModel):
    project_id: Optional[str] = None
    client_id: Optional[str] = None
    assignee_id: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[TASK_STATUSES] = None
    priority: Optional[TASK_PRIORITIES] = None
    type: Optional[TASK_TYPES] = None
    deadline: Optional[UtcDatetime] = None
    tags: Optional[List[str]] = None
    estimated_hours: Optional[float] = None
    reassign_reason: Optional[str] = Field(None, description="Shown to both assignees on reassignment.")

    model_config = ConfigDict(extra="ignore")
