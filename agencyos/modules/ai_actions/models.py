# agencyos/modules/ai_actions/models.py
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId

ACTION_TYPES = Literal[
    "create_lead",
    "create_task",
    "create_project",
    "update_client",
    "send_whatsapp",
    "create_proposal",
]
ACTION_STATUSES = Literal["pending", "approved", "rejected", "executed"]


class AIActionBase(BaseModel):
    agent_id: Optional[str] = None
    agent_name: str = "Unknown Agent"
    action_type: ACTION_TYPES
    description: str = ""
    reasoning: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)


class AIActionInDB(AIActionBase):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    status: ACTION_STATUSES = "pending"
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class AIActionAPI(AIActionBase):
    id: str
    status: ACTION_STATUSES
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AIActionCreateAPI(AIActionBase):
    status: ACTION_STATUSES = "pending"


class RejectActionAPI(BaseModel):
    reason: Optional[str] = None


class AILeadInDB(BaseModel):
    """Lead qualified by an AI agent, kept apart from the CRM clients."""
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    agent_id: Optional[str] = None
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    budget: float = 0.0
    status: str = "qualified"
    score: int = 5
    extracted_data: Dict[str, Any] = Field(default_factory=dict)
    source: str = "ai_agent"
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)
