# agencyos/models/api_common.py

from datetime import datetime, timezone
from typing import Annotated, Any, List, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ObjectId values coming back from Mongo are exposed as plain hex strings
PyObjectId = Annotated[str, BeforeValidator(str)]

# Incoming datetimes are stored as naive UTC, like everything Mongo returns
UtcDatetime = Annotated[datetime, AfterValidator(_to_naive_utc)]


class StatusResponse(BaseModel):
    """Generic response describing the outcome of an operation."""
    status: str = Field(..., description="Overall status ('ok', 'error', 'success', 'accepted')")
    message: Optional[str] = Field(None, description="Optional descriptive message.")


class DetailResponse(BaseModel):
    detail: str


class AcceptedResponse(BaseModel):
    """Response for operations queued for background processing."""
    status: str = "accepted"
    message: str = "Request accepted for processing."
    job_id: Optional[str] = Field(None, description="Background job id (Celery task id).")


class PaginatedResponse(BaseModel):
    """Generic wrapper for paginated responses."""
    total_items: int = Field(..., description="Total number of items available.")
    items: List[Any]
    limit: int
    skip: int
