# agencyos/modules/documents/models.py
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId

DOCUMENT_STATUSES = Literal["draft", "generated", "sent", "signed", "cancelled"]


# --- Templates ---

class DocumentTemplateBase(BaseModel):
    name: str
    description: str = ""
    category: str = "contract"
    # Jinja2 body using {{ variable }} placeholders
    content: str
    is_active: bool = True


class DocumentTemplateInDB(DocumentTemplateBase):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    parsed_variables: List[str] = Field(default_factory=list)
    usage_count: int = 0
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class DocumentTemplateAPI(DocumentTemplateBase):
    id: str
    parsed_variables: List[str]
    usage_count: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentTemplateCreateAPI(DocumentTemplateBase):
    name: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class DocumentTemplateUpdateAPI(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    content: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None


# --- Generated documents ---

class GeneratedDocumentInDB(BaseModel):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    template_id: Optional[str] = None
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    created_by: Optional[str] = None
    document_number: Optional[str] = None
    name: str
    file_path: str
    file_name: str
    file_size: Optional[int] = None
    status: DOCUMENT_STATUSES = "generated"
    amount: Optional[float] = None
    currency: str = "KZT"
    variables_used: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None
    sent_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class GeneratedDocumentAPI(BaseModel):
    id: str
    template_id: Optional[str] = None
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    created_by: Optional[str] = None
    document_number: Optional[str] = None
    name: str
    file_name: str
    file_size: Optional[int] = None
    status: DOCUMENT_STATUSES
    amount: Optional[float] = None
    currency: str
    variables_used: Dict[str, Any]
    notes: Optional[str] = None
    sent_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GenerateDocumentAPI(BaseModel):
    template_id: str
    name: str = Field(..., min_length=1)
    variables: Dict[str, Any] = Field(default_factory=dict)
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    amount: Optional[float] = None


class DocumentStatusUpdateAPI(BaseModel):
    status: DOCUMENT_STATUSES


class GeneratedDocumentUpdateAPI(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = None
    notes: Optional[str] = None
    status: Optional[DOCUMENT_STATUSES] = None


class TemplateCacheStatsAPI(BaseModel):
    size: int
    max_size: int
    ttl_seconds: float
    templates: List[Dict[str, Any]]
