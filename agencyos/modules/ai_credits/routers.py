# agencyos/modules/ai_credits/routers.py
from typing import List

from fastapi import APIRouter, Depends, Query, status

from agencyos.core.security import CurrentUser, require_role
from .models import (
    AdminCreditAdjustmentAPI,
    AIBalanceAPI,
    ChargeUsageAPI,
    CreditTransactionAPI,
    DailySpendAPI,
    ModelPricingAPI,
    ModelPricingCreateAPI,
    ModelPricingUpdateAPI,
    PlatformSettingsAPI,
    PlatformSettingsUpdateAPI,
    PurchaseCreditsAPI,
    PurchaseResultAPI,
    ToggleAIAPI,
)
from .services import AICreditService, get_ai_credit_service

ai_credits_router = APIRouter()
require_super_admin = require_role(["super_admin"])


@ai_credits_router.get("/balance", response_model=AIBalanceAPI)
async def get_balance(current_user: CurrentUser, service: AICreditService = Depends(get_ai_credit_service)):
    return await service.get_balance(current_user.organization_id)


@ai_credits_router.get("/daily-spend", response_model=DailySpendAPI)
async def get_daily_spend(current_user: CurrentUser, service: AICreditService = Depends(get_ai_credit_service)):
    balance = await service.get_balance(current_user.organization_id)
    return DailySpendAPI(spent_today=await service.get_daily_spend(current_user.organization_id), daily_limit=balance.daily_limit)


@ai_credits_router.get("/transactions", response_model=List[CreditTransactionAPI])
async def transaction_history(
    current_user: CurrentUser,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: AICreditService = Depends(get_ai_credit_service),
):
    transactions = await service.get_transaction_history(current_user.organization_id, limit, offset)
    return [CreditTransactionAPI.model_validate(t) for t in transactions]


@ai_credits_router.post("/purchase", response_model=PurchaseResultAPI)
async def purchase_credits(
    payload: PurchaseCreditsAPI,
    current_user=Depends(require_role(["admin"])),
    service: AICreditService = Depends(get_ai_credit_service),
):
    return await service.purchase_credits(current_user.organization_id, current_user.id, payload.amount)


@ai_credits_router.post("/toggle", response_model=AIBalanceAPI)
async def toggle_ai(
    payload: ToggleAIAPI,
    current_user=Depends(require_role(["admin"])),
    service: AICreditService = Depends(get_ai_credit_service),
):
    return await service.toggle_ai(current_user.organization_id, payload.enabled)


@ai_credits_router.post("/charge", response_model=CreditTransactionAPI, summary="Debit the cost of one model request")
async def charge_usage(payload: ChargeUsageAPI, current_user: CurrentUser, service: AICreditService = Depends(get_ai_credit_service)):
    transaction = await service.charge_usage(
        current_user.organization_id, current_user.id, payload.model_slug,
        payload.input_tokens, payload.output_tokens, payload.request_summary,
    )
    return CreditTransactionAPI.model_validate(transaction)


@ai_credits_router.get("/pricing", response_model=List[ModelPricingAPI])
async def list_model_pricing(current_user: CurrentUser, service: AICreditService = Depends(get_ai_credit_service)):
    return [ModelPricingAPI.model_validate(p) for p in await service.get_model_pricing()]


# --- Platform administration ---

@ai_credits_router.get("/admin/settings", response_model=PlatformSettingsAPI)
async def get_platform_settings(current_user=Depends(require_super_admin), service: AICreditService = Depends(get_ai_credit_service)):
    return PlatformSettingsAPI.model_validate(await service.get_platform_settings())


@ai_credits_router.patch("/admin/settings", response_model=PlatformSettingsAPI)
async def update_platform_settings(
    payload: PlatformSettingsUpdateAPI,
    current_user=Depends(require_super_admin),
    service: AICreditService = Depends(get_ai_credit_service),
):
    return PlatformSettingsAPI.model_validate(await service.update_platform_settings(payload, current_user.id))


@ai_credits_router.post("/admin/pricing", response_model=ModelPricingAPI, status_code=status.HTTP_201_CREATED)
async def create_model_pricing(
    payload: ModelPricingCreateAPI,
    current_user=Depends(require_super_admin),
    service: AICreditService = Depends(get_ai_credit_service),
):
    return ModelPricingAPI.model_validate(await service.create_model_pricing(payload))


@ai_credits_router.patch("/admin/pricing/{pricing_id}", response_model=ModelPricingAPI)
async def update_model_pricing(
    pricing_id: str,
    payload: ModelPricingUpdateAPI,
    current_user=Depends(require_super_admin),
    service: AICreditService = Depends(get_ai_credit_service),
):
    return ModelPricingAPI.model_validate(await service.update_model_pricing(pricing_id, payload))


@ai_credits_router.post("/admin/organizations/{organization_id}/topup", response_model=CreditTransactionAPI)
async def admin_topup(
    organization_id: str,
    payload: AdminCreditAdjustmentAPI,
    current_user=Depends(require_super_admin),
    service: AICreditService = Depends(get_ai_credit_service),
):
    transaction = await service.admin_topup(organization_id, current_user.id, payload.amount, payload.description)
    return CreditTransactionAPI.model_validate(transaction)


@ai_credits_router.post("/admin/organizations/{organization_id}/deduct", response_model=CreditTransactionAPI)
async def admin_deduct(
    organization_id: str,
    payload: AdminCreditAdjustmentAPI,
    current_user=Depends(require_super_admin),
    service: AICreditService = Depends(get_ai_credit_service),
):
    transaction = await service.admin_deduct(organization_id, current_user.id, payload.amount, payload.description)
    return CreditTransactionAPI.model_validate(transaction)


@ai_credits_router.get("/admin/organizations/{organization_id}/transactions", response_model=List[CreditTransactionAPI])
async def admin_org_transactions(
    organization_id: str,
    limit: int = Query(50, ge=1, le=500),
    current_user=Depends(require_super_admin),
    service: AICreditService = Depends(get_ai_credit_service),
):
    transactions = await service.get_transaction_history(organization_id, limit)
    return [CreditTransactionAPI.model_validate(t) for t in transactions]
