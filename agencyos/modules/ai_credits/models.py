# agencyos/modules/ai_credits/models.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from agencyos.models.api_common import PyObjectId

# Transaction model slugs that are balance movements rather than model usage
PURCHASE_SLUG = "purchase"
ADMIN_TOPUP_SLUG = "admin_topup"
ADMIN_DEDUCT_SLUG = "admin_deduct"


class AIBalanceAPI(BaseModel):
    balance: float = 0.0
    is_ai_enabled: bool = False
    daily_limit: Optional[float] = None


class DailySpendAPI(BaseModel):
    spent_today: float
    daily_limit: Optional[float] = None


# --- Credit transactions ---

class CreditTransactionInDB(BaseModel):
    id: PyObjectId = Field(..., alias="_id")
    organization_id: str
    user_id: Optional[str] = None
    request_id: str
    model_slug: str
    input_tokens: int = 0
    output_tokens: int = 0
    base_cost: float = 0.0
    markup_cost: float = 0.0
    balance_before: float
    balance_after: float
    request_summary: str = ""
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())


class CreditTransactionAPI(BaseModel):
    id: str
    user_id: Optional[str] = None
    request_id: str
    model_slug: str
    input_tokens: int
    output_tokens: int
    base_cost: float
    markup_cost: float
    balance_before: float
    balance_after: float
    request_summary: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())


# --- Platform settings (one document for the whole platform) ---

class PlatformSettingsBase(BaseModel):
    default_daily_limit: float = 100.0
    low_balance_threshold_percent: float = 10.0
    global_ai_enabled: bool = True
    credit_price: float = Field(1.0, description="Wallet money charged per purchased credit.")
    min_topup_credits: float = 100.0


class PlatformSettingsInDB(PlatformSettingsBase):
    id: PyObjectId = Field(..., alias="_id")
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class PlatformSettingsAPI(PlatformSettingsBase):
    updated_by: Optional[str] = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PlatformSettingsUpdateAPI(BaseModel):
    default_daily_limit: Optional[float] = Field(None, ge=0)
    low_balance_threshold_percent: Optional[float] = Field(None, ge=0, le=100)
    global_ai_enabled: Optional[bool] = None
    credit_price: Optional[float] = Field(None, gt=0)
    min_topup_credits: Optional[float] = Field(None, ge=0)


# --- Model pricing ---

class ModelPricingBase(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_slug: str = Field(..., min_length=1)
    display_name: str
    input_price_per_1m: float = Field(..., ge=0)
    output_price_per_1m: float = Field(..., ge=0)
    markup_multiplier: float = Field(1.0, gt=0)
    is_active: bool = True
    sort_order: int = 0


class ModelPricingInDB(ModelPricingBase):
    id: PyObjectId = Field(..., alias="_id")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(populate_by_name=True)


class ModelPricingAPI(ModelPricingBase):
    id: str

    model_config = ConfigDict(from_attributes=True)


class ModelPricingCreateAPI(ModelPricingBase):
    pass


class ModelPricingUpdateAPI(BaseModel):
    display_name: Optional[str] = None
    input_price_per_1m: Optional[float] = Field(None, ge=0)
    output_price_per_1m: Optional[float] = Field(None, ge=0)
    markup_multiplier: Optional[float] = Field(None, gt=0)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


# --- Requests ---

class PurchaseCreditsAPI(BaseModel):
    amount: float = Field(..., gt=0)


class PurchaseResultAPI(BaseModel):
    credits: float
    cost: float
    wallet_balance_after: float
    balance_after: float


class ToggleAIAPI(BaseModel):
    enabled: bool


class AdminCreditAdjustmentAPI(BaseModel):
    amount: float = Field(..., gt=0)
    description: str = ""


class ChargeUsageAPI(BaseModel):
    model_slug: str
    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)
    request_summary: str = ""

    model_config = ConfigDict(protected_namespaces=())
