# agencyos/modules/ai_agents/models.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId

AGENT_ROLES = Literal["seller", "project_writer", "tz_writer", "executor_controller", "finalizer", "review_collector"]
AGENT_STATUSES = Literal["active", "inactive"]
AGENT_TRIGGERS = Literal[
    "creatium_webhook",
    "whatsapp_incoming",
    "task_created",
    "project_finished",
    "payment_received",
    "cron_daily",
]
COMMUNICATION_STYLES = Literal["business", "scientific", "conversational", "custom"]


class AgentSettings(BaseModel):
    communication_style: COMMUNICATION_STYLES = "conversational"
    system_prompt: str = ""
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(2000, gt=0)
    use_knowledge_base: bool = True
    daily_cost_limit: float = Field(5.0, ge=0.0)
    auto_mode: bool = False


class AgentPermissions(BaseModel):
    create_tasks: bool = False
    update_client: bool = False
    send_whatsapp: bool = False
    read_docs: bool = True
    create_proposal: bool = False


class FAQItem(BaseModel):
    question: str
    answer: str
    category: str = "general"
    priority: Optional[int] = None


class DocumentItem(BaseModel):
    title: str
    file_url: str
    file_type: str = ""
    uploaded_at: Optional[datetime] = None


class KnowledgeBase(BaseModel):
    faqs: List[FAQItem] = Field(default_factory=list)
    documents: List[DocumentItem] = Field(default_factory=list)


class AIAgentBase(BaseModel):
    name: str
    model: str
    role: AGENT_ROLES
    status: AGENT_STATUSES = "inactive"
    triggers: List[AGENT_TRIGGERS] = Field(default_factory=list)
    settings: AgentSettings = Field(default_factory=AgentSettings)
    permissions: AgentPermissions = Field(default_factory=AgentPermissions)
    knowledge_base: KnowledgeBase = Field(default_factory=KnowledgeBase)


class AIAgentInDB(AIAgentBase):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class AIAgentAPI(AIAgentBase):
    id: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AIAgentCreateAPI(AIAgentBase):
    name: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)


class AIAgentUpdateAPI(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = None
    role: Optional[AGENT_ROLES] = None
    status: Optional[AGENT_STATUSES] = None
    triggers: Optional[List[AGENT_TRIGGERS]] = None
    settings: Optional[AgentSettings] = None
    permissions: Optional[AgentPermissions] = None
    knowledge_base: Optional[KnowledgeBase] = None

    model_config = ConfigDict(extra="ignore")
