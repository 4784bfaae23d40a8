# agencyos/modules/finance/models.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agencyos.models.api_common import PyObjectId, UtcDatetime

# --- Constants ---
PAYMENT_TYPES = Literal[
    "Prepayment",
    "Full Payment",
    "Postpayment",
    "Monthly Retainer",
    "Refund",
]
TRANSACTION_CATEGORIES = Literal["Salary", "Marketing", "Office", "Other", "Income"]


# --- Internal/DB Models ---
class TransactionBase(BaseModel):
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    # Signed: income is positive, expenses are negative
    amount: float
    date: datetime
    type: PAYMENT_TYPES = "Full Payment"
    category: Optional[TRANSACTION_CATEGORIES] = None
    description: str = ""
    is_verified: bool = False

    @field_validator("amount")
    @classmethod
    def amount_must_be_non_zero(cls, v: float) -> float:
        if v == 0:
            raise ValueError("Transaction amount must be non-zero.")
        return round(v, 2)


class TransactionInDB(TransactionBase):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


# --- API Models ---
class TransactionAPI(TransactionBase):
    id: str
    organization_id: str
    created_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionCreateAPI(TransactionBase):
    date: UtcDatetime


class TransactionUpdateAPI(BaseModel):
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    amount: Optional[float] = None
    date: Optional[UtcDatetime] = None
    type: Optional[PAYMENT_TYPES] = None
    category: Optional[TRANSACTION_CATEGORIES] = None
    description: Optional[str] = None
    is_verified: Optional[bool] = None

    model_config = ConfigDict(extra="ignore")


class FinancialSummary(BaseModel):
    income: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0
    margin: float = 0.0
