# agencyos/modules/people/models.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from agencyos.models.api_common import PyObjectId

# --- Constants ---
SYSTEM_ROLES = Literal["super_admin", "admin", "manager", "member"]


# --- Internal/DB Models ---
class UserBase(BaseModel):
    organization_id: Optional[str] = None
    name: str
    email: EmailStr
    system_role: SYSTEM_ROLES = "member"
    job_title: str = ""
    phone: Optional[str] = None
    salary: float = 0.0
    team_lead_id: Optional[str] = None
    is_active: bool = True


class UserCreateInternal(UserBase):
    hashed_password: str


class UserUpdateInternal(BaseModel):
    name: Optional[str] = None
    system_role: Optional[SYSTEM_ROLES] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
    salary: Optional[float] = None
    team_lead_id: Optional[str] = None
    is_active: Optional[bool] = None
    hashed_password: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class UserInDB(UserBase):
    id: PyObjectId = Field(..., alias="_id")
    hashed_password: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


# --- API Models ---
class UserAPI(BaseModel):
    id: str
    organization_id: Optional[str] = None
    name: str
    email: EmailStr
    system_role: SYSTEM_ROLES
    job_title: str
    phone: Optional[str] = None
    salary: float
    team_lead_id: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserCreateAPI(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=8)
    system_role: SYSTEM_ROLES = "member"
    job_title: str = ""
    phone: Optional[str] = None
    salary: float = 0.0
    team_lead_id: Optional[str] = None


class UserUpdateAPI(BaseModel):
    name: Optional[str] = None
    system_role: Optional[SYSTEM_ROLES] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
    salary: Optional[float] = None
    team_lead_id: Optional[str] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=8)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
