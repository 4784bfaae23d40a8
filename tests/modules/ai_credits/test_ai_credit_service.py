# tests/modules/ai_credits/test_ai_credit_service.py
import pytest
import pytest_asyncio
from fastapi import HTTPException

from agencyos.modules.ai_credits.models import ModelPricingCreateAPI, PlatformSettingsUpdateAPI
from agencyos.modules.ai_credits.repository import (
    CreditTransactionRepository,
    ModelPricingRepository,
    PlatformSettingsRepository,
)
from agencyos.modules.ai_credits.services import AICreditService
from agencyos.modules.organizations.repository import OrganizationRepository

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service(db_client) -> AICreditService:
    return AICreditService(
        OrganizationRepository(db_client),
        CreditTransactionRepository(db_client),
        PlatformSettingsRepository(db_client),
        ModelPricingRepository(db_client),
    )


@pytest_asyncio.fixture
async def pricing(service):
    return await service.create_model_pricing(ModelPricingCreateAPI(
        model_slug="gpt-4o",
        display_name="GPT-4o",
        input_price_per_1m=5.0,
        output_price_per_1m=15.0,
        markup_multiplier=2.0,
    ))


async def test_platform_settings_are_created_once(service):
    first = await service.get_platform_settings()
    second = await service.get_platform_settings()

    assert first.id == second.id
    assert first.min_topup_credits == 100.0
    assert first.credit_price == 1.0


async def test_purchase_moves_money_into_credits(service, db_client, organization, admin_user):
    result = await service.purchase_credits(organization.id, admin_user.id, 300)

    assert result.cost == 300
    assert result.wallet_balance_after == 700
    assert result.balance_after == 300
    history = await service.get_transaction_history(organization.id)
    assert history[0].model_slug == "purchase"
    assert (history[0].balance_before, history[0].balance_after) == (0, 300)


async def test_purchase_below_minimum_is_400(service, organization, admin_user):
    with pytest.raises(HTTPException) as exc_info:
        await service.purchase_credits(organization.id, admin_user.id, 50)
    assert exc_info.value.status_code == 400


async def test_purchase_beyond_wallet_is_409(service, organization, admin_user):
    await service.update_platform_settings(PlatformSettingsUpdateAPI(credit_price=2.0), admin_user.id)

    with pytest.raises(HTTPException) as exc_info:
        await service.purchase_credits(organization.id, admin_user.id, 600)
    assert exc_info.value.status_code == 409
    assert (await service.get_balance(organization.id)).balance == 0


async def test_charge_usage_debits_marked_up_cost(service, organization, admin_user, pricing):
    await service.admin_topup(organization.id, admin_user.id, 10, "trial credits")

    transaction = await service.charge_usage(organization.id, admin_user.id, "gpt-4o", 100_000, 20_000, "summary")

    assert transaction.base_cost == pytest.approx(0.8)
    assert transaction.markup_cost == pytest.approx(1.6)
    assert transaction.balance_after == pytest.approx(8.4)
    assert (await service.get_balance(organization.id)).balance == pytest.approx(8.4)
    assert await service.get_daily_spend(organization.id) == pytest.approx(1.6)


async def test_charge_refused_when_ai_disabled(service, organization, admin_user, pricing):
    await service.admin_topup(organization.id, admin_user.id, 10, "")
    await service.toggle_ai(organization.id, False)

    with pytest.raises(HTTPException) as exc_info:
        await service.charge_usage(organization.id, admin_user.id, "gpt-4o", 1000, 1000)
    assert exc_info.value.status_code == 403


async def test_charge_refused_over_daily_limit(service, db_client, organization, admin_user, pricing):
    await service.admin_topup(organization.id, admin_user.id, 10, "")
    await OrganizationRepository(db_client).update(organization.id, {"ai_daily_limit": 1.0})

    with pytest.raises(HTTPException) as exc_info:
        await service.charge_usage(organization.id, admin_user.id, "gpt-4o", 100_000, 20_000)
    assert exc_info.value.status_code == 409
    assert (await service.get_balance(organization.id)).balance == 10


async def test_charge_refused_without_credits(service, organization, admin_user, pricing):
    with pytest.raises(HTTPException) as exc_info:
        await service.charge_usage(organization.id, admin_user.id, "gpt-4o", 1000, 1000)
    assert exc_info.value.status_code == 409


async def test_charge_for_unknown_model_is_404(service, organization, admin_user):
    with pytest.raises(HTTPException) as exc_info:
        await service.charge_usage(organization.id, admin_user.id, "mystery-model", 10, 10)
    assert exc_info.value.status_code == 404


async def test_duplicate_pricing_is_409(service, pricing):
    with pytest.raises(HTTPException) as exc_info:
        await service.create_model_pricing(ModelPricingCreateAPI(
            model_slug="gpt-4o", display_name="Again", input_price_per_1m=1, output_price_per_1m=1,
        ))
    assert exc_info.value.status_code == 409


async def test_admin_deduct_cannot_go_negative(service, organization, admin_user):
    await service.admin_topup(organization.id, admin_user.id, 20, "")

    with pytest.raises(HTTPException) as exc_info:
        await service.admin_deduct(organization.id, admin_user.id, 25, "too much")
    assert exc_info.value.status_code == 400

    transaction = await service.admin_deduct(organization.id, admin_user.id, 5, "correction")
    assert transaction.model_slug == "admin_deduct"
    assert (transaction.balance_before, transaction.balance_after) == (20, 15)
