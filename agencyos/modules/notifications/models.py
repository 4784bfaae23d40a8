# agencyos/modules/notifications/models.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId

NOTIFICATION_TYPES = Literal[
    "task_assigned",
    "task_reassigned",
    "deadline_approaching",
    "task_overdue",
    "task_rejected",
    "task_completed",
    "info",
    "warning",
    "success",
]
ENTITY_TYPES = Literal["task", "project", "client"]


class NotificationCreate(BaseModel):
    user_id: str
    type: NOTIFICATION_TYPES = "info"
    title: str
    message: str
    entity_type: Optional[ENTITY_TYPES] = None
    entity_id: Optional[str] = None


class NotificationInDB(NotificationCreate):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    is_read: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class NotificationAPI(BaseModel):
    id: str
    user_id: str
    type: NOTIFICATION_TYPES
    title: str
    message: str
    entity_type: Optional[ENTITY_TYPES] = None
    entity_id: Optional[str] = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnreadCountAPI(BaseModel):
    unread: int
