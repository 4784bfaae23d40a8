# agencyos/modules/clients/models.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId

# --- Constants ---
CLIENT_STATUSES = Literal[
    "New Lead",
    "Contact Established",
    "Presentation",
    "Contract Signing",
    "In Work",
    "Won",
    "Lost",
    "Archived",
    "lead",  # raw status given to leads created from incoming WhatsApp messages
]
WON_STATUSES = ("Won", "In Work")
CLIENT_SOURCES = Literal[
    "Website", "Referral", "Cold Call", "Socials", "Creatium", "Other",
    "Manual", "WhatsApp", "Bank Import", "Repeat", "ai_agent",
]


class ClientBase(BaseModel):
    name: str
    company: str = ""
    status: CLIENT_STATUSES = "New Lead"
    email: str = ""
    phone: str = ""
    budget: float = 0.0
    prepayment: float = 0.0
    source: CLIENT_SOURCES = "Manual"
    manager_id: Optional[str] = None
    description: Optional[str] = None
    services: List[str] = Field(default_factory=list)
    is_archived: bool = False
    # Legal details used to fill contract templates
    bin: Optional[str] = None
    legal_name: Optional[str] = None
    director: Optional[str] = None
    address: Optional[str] = None
    bank: Optional[str] = None
    iban: Optional[str] = None
    bik: Optional[str] = None


class ClientInDB(ClientBase):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    status_changed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class ClientAPI(ClientBase):
    id: str
    organization_id: str
    status_changed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClientCreateAPI(ClientBase):
    name: str = Field(..., min_length=1)


class ClientUpdateAPI(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    company: Optional[str] = None
    status: Optional[CLIENT_STATUSES] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    budget: Optional[float] = None
    prepayment: Optional[float] = None
    source: Optional[CLIENT_SOURCES] = None
    manager_id: Optional[str] = None
    description: Optional[str] = None
    services: Optional[List[str]] = None
    is_archived: Optional[bool] = None
    bin: Optional[str] = None
    legal_name: Optional[str] = None
    director: Optional[str] = None
    address: Optional[str] = None
    bank: Optional[str] = None
    iban: Optional[str] = None
    bik: Optional[str] = None

    model_config = ConfigDict(extra="ignore")
