# agencyos/modules/automation/models.py
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId

TRIGGER_TYPES = Literal[
    "client_created",
    "client_status_changed",
    "task_created",
    "task_completed",
    "payment_received",
    "deadline_approaching",
    "project_created",
    "project_status_changed",
]
ACTION_TYPES = Literal[
    "create_task",
    "send_whatsapp",
    "send_email",
    "change_status",
    "assign_manager",
    "webhook",
    "create_notification",
]
CONDITION_OPERATORS = Literal["equals", "not_equals", "greater_than", "less_than", "contains", "in"]


class Condition(BaseModel):
    operator: CONDITION_OPERATORS
    value: Any = None


class AutomationRuleBase(BaseModel):
    name: str
    description: str = ""
    trigger_type: TRIGGER_TYPES
    trigger_config: Dict[str, Any] = Field(default_factory=dict)
    # {context_field: {"operator": ..., "value": ...}}
    condition_config: Dict[str, Condition] = Field(default_factory=dict)
    action_type: ACTION_TYPES
    action_config: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class AutomationRuleInDB(AutomationRuleBase):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    execution_count: int = 0
    last_executed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class AutomationRuleAPI(AutomationRuleBase):
    id: str
    execution_count: int
    last_executed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AutomationRuleCreateAPI(AutomationRuleBase):
    name: str = Field(..., min_length=1)


class AutomationRuleUpdateAPI(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    trigger_type: Optional[TRIGGER_TYPES] = None
    trigger_config: Optional[Dict[str, Any]] = None
    condition_config: Optional[Dict[str, Condition]] = None
    action_type: Optional[ACTION_TYPES] = None
    action_config: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="ignore")


class RuleToggleAPI(BaseModel):
    is_active: bool
