# agencyos/modules/ai_credits/services.py
import uuid
from datetime import datetime, time
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.core.config import settings
from agencyos.core.repository import utcnow
from agencyos.modules.organizations.models import OrganizationInDB
from agencyos.modules.organizations.repository import OrganizationRepository, get_organization_repository
from .models import (
    ADMIN_DEDUCT_SLUG,
    ADMIN_TOPUP_SLUG,
    PURCHASE_SLUG,
    AIBalanceAPI,
    CreditTransactionInDB,
    ModelPricingCreateAPI,
    ModelPricingInDB,
    ModelPricingUpdateAPI,
    PlatformSettingsInDB,
    PlatformSettingsUpdateAPI,
    PurchaseResultAPI,
)
from .repository import (
    CreditTransactionRepository,
    ModelPricingRepository,
    PlatformSettingsRepository,
    get_credit_transaction_repository,
    get_model_pricing_repository,
    get_platform_settings_repository,
)


def usage_cost(pricing: ModelPricingInDB, input_tokens: int, output_tokens: int) -> tuple[float, float]:
    """(base, markup) cost of a request at per-million-token prices."""
    base = input_tokens / 1_000_000 * pricing.input_price_per_1m + output_tokens / 1_000_000 * pricing.output_price_per_1m
    return base, base * pricing.markup_multiplier


class AICreditService:
    """AI credit balance of an organization and the platform-wide pricing.

    Credits are bought from the organization's money wallet (`balance`)
    and spent by model usage (`ai_credit_balance`). Every movement is
    recorded in `ai_credit_transactions` with the balance before and after.
    """

    def __init__(
        self,
        org_repo: OrganizationRepository,
        transaction_repo: CreditTransactionRepository,
        settings_repo: PlatformSettingsRepository,
        pricing_repo: ModelPricingRepository,
    ):
        self.org_repo = org_repo
        self.transaction_repo = transaction_repo
        self.settings_repo = settings_repo
        self.pricing_repo = pricing_repo

    async def _get_org(self, organization_id: str) -> OrganizationInDB:
        org = await self.org_repo.get_by_id(organization_id)
        if not org:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found.")
        return org

    async def _record(
        self,
        organization_id: str,
        user_id: Optional[str],
        request_id: str,
        model_slug: str,
        balance_before: float,
        balance_after: float,
        summary: str,
        input_tokens: int = 0,
        output_tokens: int = 0,
        base_cost: float = 0.0,
        markup_cost: float = 0.0,
    ) -> CreditTransactionInDB:
        return await self.transaction_repo.create({
            "organization_id": organization_id,
            "user_id": user_id,
            "request_id": request_id,
            "model_slug": model_slug,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "base_cost": round(base_cost, 6),
            "markup_cost": round(markup_cost, 6),
            "balance_before": round(balance_before, 6),
            "balance_after": round(balance_after, 6),
            "request_summary": summary,
        })

    # --- Organization side ---

    async def get_balance(self, organization_id: str) -> AIBalanceAPI:
        org = await self.org_repo.get_by_id(organization_id)
        if not org:
            return AIBalanceAPI()
        return AIBalanceAPI(balance=org.ai_credit_balance, is_ai_enabled=org.is_ai_enabled, daily_limit=org.ai_daily_limit)

    async def get_daily_spend(self, organization_id: str) -> float:
        start_of_day = datetime.combine(utcnow().date(), time.min)
        return await self.transaction_repo.sum_markup_since(organization_id, start_of_day)

    async def get_transaction_history(self, organization_id: str, limit: int = 50, offset: int = 0) -> List[CreditTransactionInDB]:
        return await self.transaction_repo.list_for_org(organization_id, skip=offset, limit=limit)

    async def purchase_credits(self, organization_id: str, user_id: str, amount: float) -> PurchaseResultAPI:
        log = logger.bind(service="AICreditService", organization_id=organization_id)
        platform = await self.get_platform_settings()
        if amount < platform.min_topup_credits:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Minimum purchase is {platform.min_topup_credits:g} credits.",
            )
        await self._get_org(organization_id)

        cost = round(amount * platform.credit_price, 2)
        debited = await self.org_repo.try_debit(organization_id, "balance", cost)
        if not debited:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Insufficient wallet balance.")

        credited = await self.org_repo.increment(organization_id, {"ai_credit_balance": amount})
        await self._record(
            organization_id, user_id, f"purchase_{uuid.uuid4()}", PURCHASE_SLUG,
            credited.ai_credit_balance - amount, credited.ai_credit_balance,
            f"Purchase of {amount:g} credits", base_cost=cost,
        )
        log.info(f"Purchased {amount:g} credits for {cost:.2f}")
        return PurchaseResultAPI(
            credits=amount,
            cost=cost,
            wallet_balance_after=credited.balance,
            balance_after=credited.ai_credit_balance,
        )

    async def toggle_ai(self, organization_id: str, enabled: bool) -> AIBalanceAPI:
        org = await self.org_repo.update(organization_id, {"is_ai_enabled": enabled})
        if not org:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found.")
        return AIBalanceAPI(balance=org.ai_credit_balance, is_ai_enabled=org.is_ai_enabled, daily_limit=org.ai_daily_limit)

    async def charge_usage(
        self,
        organization_id: str,
        user_id: Optional[str],
        model_slug: str,
        input_tokens: int,
        output_tokens: int,
        summary: str = "",
    ) -> CreditTransactionInDB:
        """Debits the cost of one model request.

        Refused with 403 when AI is disabled for the platform or the
        organization, and with 409 when the balance or the daily limit
        would not cover it.
        """
        log = logger.bind(service="AICreditService", organization_id=organization_id, model=model_slug)
        platform = await self.get_platform_settings()
        org = await self._get_org(organization_id)
        if not platform.global_ai_enabled or not org.is_ai_enabled:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="AI is disabled for this organization.")

        pricing = await self.pricing_repo.get_active_by_slug(model_slug)
        if not pricing:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No active pricing for model '{model_slug}'.")
        base, markup = usage_cost(pricing, input_tokens, output_tokens)

        daily_limit = org.ai_daily_limit if org.ai_daily_limit is not None else platform.default_daily_limit
        if daily_limit is not None and await self.get_daily_spend(organization_id) + markup > daily_limit:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Daily AI spend limit reached.")

        debited = await self.org_repo.try_debit(organization_id, "ai_credit_balance", markup)
        if not debited:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Insufficient AI credit balance.")

        transaction = await self._record(
            organization_id, user_id, f"req_{uuid.uuid4()}", model_slug,
            debited.ai_credit_balance + markup, debited.ai_credit_balance, summary,
            input_tokens=input_tokens, output_tokens=output_tokens, base_cost=base, markup_cost=markup,
        )
        log.debug(f"Charged {markup:.6f} credits ({input_tokens} in / {output_tokens} out)")
        return transaction

    # --- Platform administration ---

    async def get_platform_settings(self) -> PlatformSettingsInDB:
        return await self.settings_repo.get_or_create({
            "default_daily_limit": settings.AI_DEFAULT_DAILY_LIMIT,
            "low_balance_threshold_percent": 10.0,
            "global_ai_enabled": True,
            "credit_price": 1.0,
            "min_topup_credits": 100.0,
        })

    async def update_platform_settings(self, updates: PlatformSettingsUpdateAPI, updated_by: str) -> PlatformSettingsInDB:
        current = await self.get_platform_settings()
        changes = {k: v for k, v in updates.model_dump(exclude_unset=True).items() if v is not None}
        changes["updated_by"] = updated_by
        return await self.settings_repo.update(current.id, changes)

    async def get_model_pricing(self) -> List[ModelPricingInDB]:
        return await self.pricing_repo.list_sorted()

    async def create_model_pricing(self, pricing_in: ModelPricingCreateAPI) -> ModelPricingInDB:
        if await self.pricing_repo.get_by({"model_slug": pricing_in.model_slug}):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Pricing for this model already exists.")
        return await self.pricing_repo.create(pricing_in)

    async def update_model_pricing(self, pricing_id: str, updates: ModelPricingUpdateAPI) -> ModelPricingInDB:
        pricing = await self.pricing_repo.update(pricing_id, updates)
        if not pricing:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model pricing not found.")
        return pricing

    async def admin_topup(self, organization_id: str, admin_id: str, amount: float, description: str) -> CreditTransactionInDB:
        await self._get_org(organization_id)
        org = await self.org_repo.increment(organization_id, {"ai_credit_balance": amount})
        logger.bind(service="AICreditService", organization_id=organization_id).info(f"Admin top-up of {amount:g} credits by {admin_id}")
        return await self._record(
            organization_id, admin_id, f"topup_{uuid.uuid4()}", ADMIN_TOPUP_SLUG,
            org.ai_credit_balance - amount, org.ai_credit_balance, description,
        )

    async def admin_deduct(self, organization_id: str, admin_id: str, amount: float, description: str) -> CreditTransactionInDB:
        await self._get_org(organization_id)
        org = await self.org_repo.try_debit(organization_id, "ai_credit_balance", amount)
        if not org:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Insufficient balance for deduction.")
        logger.bind(service="AICreditService", organization_id=organization_id).info(f"Admin deduction of {amount:g} credits by {admin_id}")
        return await self._record(
            organization_id, admin_id, f"deduct_{uuid.uuid4()}", ADMIN_DEDUCT_SLUG,
            org.ai_credit_balance + amount, org.ai_credit_balance, description, markup_cost=amount,
        )


async def get_ai_credit_service(
    org_repo: OrganizationRepository = Depends(get_organization_repository),
    transaction_repo: CreditTransactionRepository = Depends(get_credit_transaction_repository),
    settings_repo: PlatformSettingsRepository = Depends(get_platform_settings_repository),
    pricing_repo: ModelPricingRepository = Depends(get_model_pricing_repository),
) -> AICreditService:
    return AICreditService(org_repo, transaction_repo, settings_repo, pricing_repo)
