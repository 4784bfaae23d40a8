# agencyos/modules/finance/services.py
from datetime import datetime
from typing import Iterable, List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.modules.automation.engine import AutomationEngine, get_automation_engine
from .models import FinancialSummary, TransactionCreateAPI, TransactionInDB, TransactionUpdateAPI
from .repository import TransactionRepository, get_transaction_repository


def summarize(amounts: Iterable[float]) -> FinancialSummary:
    """Income, expenses, profit and margin (%) of signed amounts."""
    income = 0.0
    expenses = 0.0
    for amount in amounts:
        if amount > 0:
            income += amount
        elif amount < 0:
            expenses += -amount
    profit = income - expenses
    margin = profit / income * 100 if income > 0 else 0.0
    return FinancialSummary(
        income=round(income, 2),
        expenses=round(expenses, 2),
        profit=round(profit, 2),
        margin=round(margin, 2),
    )


class FinanceService:
    def __init__(self, transaction_repo: TransactionRepository, automation: Optional[AutomationEngine] = None):
        self.transaction_repo = transaction_repo
        self.automation = automation

    async def list(
        self,
        organization_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[TransactionInDB]:
        return await self.transaction_repo.list_between(organization_id, start_date, end_date, skip=skip, limit=limit)

    async def get(self, organization_id: str, transaction_id: str) -> TransactionInDB:
        transaction = await self.transaction_repo.get_for_org(organization_id, transaction_id)
        if not transaction:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found.")
        return transaction

    async def create(self, organization_id: str, transaction_in: TransactionCreateAPI, created_by: Optional[str] = None) -> TransactionInDB:
        data = transaction_in.model_dump()
        data["organization_id"] = organization_id
        data["created_by"] = created_by
        transaction = await self.transaction_repo.create(data)
        logger.bind(service="FinanceService", organization_id=organization_id).info(
            f"Transaction {transaction.id} recorded: {transaction.amount:+.2f}"
        )
        if transaction.amount > 0 and self.automation:
            await self.automation.trigger_rules(organization_id, "payment_received", {
                "transaction_id": transaction.id,
                "client_id": transaction.client_id,
                "project_id": transaction.project_id,
                "amount": transaction.amount,
                "payment_type": transaction.type,
                "description": transaction.description,
            })
        return transaction

    async def update(self, organization_id: str, transaction_id: str, transaction_in: TransactionUpdateAPI) -> TransactionInDB:
        changes = transaction_in.model_dump(exclude_unset=True)
        if changes.get("amount") == 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Transaction amount must be non-zero.")
        transaction = await self.transaction_repo.update_for_org(organization_id, transaction_id, changes)
        if not transaction:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found.")
        return transaction

    async def delete(self, organization_id: str, transaction_id: str) -> None:
        if not await self.transaction_repo.delete_for_org(organization_id, transaction_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found.")

    async def financial_summary(
        self,
        organization_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> FinancialSummary:
        transactions = await self.transaction_repo.list_between(organization_id, start_date, end_date)
        return summarize(t.amount for t in transactions)


async def get_finance_service(
    transaction_repo: TransactionRepository = Depends(get_transaction_repository),
    automation: AutomationEngine = Depends(get_automation_engine),
) -> FinanceService:
    return FinanceService(transaction_repo, automation)
