# agencyos/modules/finance/routers.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from agencyos.core.security import CurrentUser, require_role
from agencyos.models.api_common import UtcDatetime
from .models import FinancialSummary, TransactionAPI, TransactionCreateAPI, TransactionUpdateAPI
from .services import FinanceService, get_finance_service

finance_router = APIRouter()


@finance_router.get("/transactions", response_model=List[TransactionAPI])
async def list_transactions(
    current_user: CurrentUser,
    start_date: Optional[UtcDatetime] = None,
    end_date: Optional[UtcDatetime] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(0, ge=0, description="0 returns every matching transaction."),
    service: FinanceService = Depends(get_finance_service),
):
    transactions = await service.list(current_user.organization_id, start_date, end_date, skip, limit)
    return [TransactionAPI.model_validate(t) for t in transactions]


@finance_router.get("/summary", response_model=FinancialSummary)
async def financial_summary(
    current_user: CurrentUser,
    start_date: Optional[UtcDatetime] = None,
    end_date: Optional[UtcDatetime] = None,
    service: FinanceService = Depends(get_finance_service),
):
    return await service.financial_summary(current_user.organization_id, start_date, end_date)


@finance_router.get("/transactions/{transaction_id}", response_model=TransactionAPI)
async def get_transaction(transaction_id: str, current_user: CurrentUser, service: FinanceService = Depends(get_finance_service)):
    return TransactionAPI.model_validate(await service.get(current_user.organization_id, transaction_id))


@finance_router.post("/transactions", response_model=TransactionAPI, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction_in: TransactionCreateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: FinanceService = Depends(get_finance_service),
):
    transaction = await service.create(current_user.organization_id, transaction_in, created_by=current_user.id)
    return TransactionAPI.model_validate(transaction)


@finance_router.patch("/transactions/{transaction_id}", response_model=TransactionAPI)
async def update_transaction(
    transaction_id: str,
    transaction_in: TransactionUpdateAPI,
    current_user=Depends(require_role(["admin", "manager"])),
    service: FinanceService = Depends(get_finance_service),
):
    return TransactionAPI.model_validate(await service.update(current_user.organization_id, transaction_id, transaction_in))


@finance_router.delete("/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: str,
    current_user=Depends(require_role(["admin"])),
    service: FinanceService = Depends(get_finance_service),
):
    await service.delete(current_user.organization_id, transaction_id)
