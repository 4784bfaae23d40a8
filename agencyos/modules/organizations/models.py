# agencyos/modules/organizations/models.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from agencyos.models.api_common import PyObjectId


class OrganizationBase(BaseModel):
    name: str
    slug: str
    owner_id: Optional[str] = None
    industry: Optional[str] = None
    timezone: str = "Asia/Almaty"
    logo_url: Optional[str] = None
    is_blocked: bool = False
    balance: float = 0.0
    ai_credit_balance: float = 0.0
    is_ai_enabled: bool = False
    ai_daily_limit: Optional[float] = None


class OrganizationInDB(OrganizationBase):
    id: PyObjectId = Field(..., alias="_id")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class OrganizationAPI(BaseModel):
    id: str
    name: str
    slug: str
    owner_id: Optional[str] = None
    industry: Optional[str] = None
    timezone: str
    logo_url: Optional[str] = None
    is_blocked: bool
    balance: float
    ai_credit_balance: float
    is_ai_enabled: bool
    ai_daily_limit: Optional[float] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrganizationUpdateAPI(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    industry: Optional[str] = None
    timezone: Optional[str] = None
    logo_url: Optional[str] = None


class RegistrationAPI(BaseModel):
    """Sign-up payload: a new organization plus its first admin."""
    organization_name: str = Field(..., min_length=1)
    industry: Optional[str] = None
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=8)
    job_title: str = "CEO"
