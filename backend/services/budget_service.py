"""Per-category spending budgets."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from uuid import UUID, uuid4

from backend.repositories.budgets_repository import BudgetsRepository
from backend.repositories.transactions_repository import TransactionsRepository
from backend.services.errors import not_found
from backend.services.summary import summarize
from backend.services.transaction_filters import build_transaction_filter
from shared.models import (
    BudgetCreateRequest,
    BudgetOut,
    BudgetPeriod,
    BudgetRecord,
    MessageResult,
    ServiceError,
    TransactionType,
)
from shared.text_utils import to_display_form


logger = logging.getLogger(__name__)

_NOT_FOUND_MESSAGE = "Budget not found"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def period_bounds(period: BudgetPeriod, now: datetime) -> tuple[datetime, datetime]:
    """Return the inclusive UTC bounds of the period containing `now`.

    Weeks start on Monday.
    """

    today = now.astimezone(timezone.utc).date()
    if period is BudgetPeriod.WEEKLY:
        first_day = today - timedelta(days=today.weekday())
        last_day = first_day + timedelta(days=6)
    elif period is BudgetPeriod.MONTHLY:
        first_day = today.replace(day=1)
        next_month = (first_day + timedelta(days=32)).replace(day=1)
        last_day = next_month - timedelta(days=1)
    else:
        first_day = today.replace(month=1, day=1)
        last_day = today.replace(month=12, day=31)
    return (
        datetime.combine(first_day, time.min, tzinfo=timezone.utc),
        datetime.combine(last_day, time.max, tzinfo=timezone.utc),
    )


@dataclass(slots=True)
class BudgetService:
    budgets_repository: BudgetsRepository
    transactions_repository: TransactionsRepository
    now: Callable[[], datetime] = _utcnow

    def _to_out(self, record: BudgetRecord) -> BudgetOut:
        start, end = period_bounds(record.period, self.now())
        filters = build_transaction_filter(
            record.user_id,
            type=TransactionType.EXPENSE,
            category=record.category,
            start_date=start,
            end_date=end,
        )
        spent = summarize(self.transactions_repository, filters).total_expense
        return BudgetOut(
            id=record.id,
            user_id=record.user_id,
            category=to_display_form(record.category.value),
            amount=record.amount,
            period=to_display_form(record.period.value),
            created_at=record.created_at,
            spent=spent,
            remaining=record.amount - spent,
            over_budget=spent > record.amount,
        )

    def list_budgets(self, owner_id: UUID) -> list[BudgetOut]:
        return [self._to_out(record) for record in self.budgets_repository.list_budgets(owner_id)]

    def create_budget(self, owner_id: UUID, request: BudgetCreateRequest) -> BudgetOut:
        record = BudgetRecord(
            id=uuid4(),
            user_id=owner_id,
            category=request.category,
            amount=request.amount,
            period=request.period,
            created_at=self.now(),
        )
        stored = self.budgets_repository.insert_budget(record)
        logger.info("budget_created budget_id=%s owner_id=%s", stored.id, owner_id)
        return self._to_out(stored)

    def delete_budget(self, owner_id: UUID, budget_id: str | UUID) -> MessageResult | ServiceError:
        try:
            parsed_id = budget_id if isinstance(budget_id, UUID) else UUID(str(budget_id))
        except ValueError:
            return not_found(_NOT_FOUND_MESSAGE)

        if not self.budgets_repository.delete_budget(budget_id=parsed_id, owner_id=owner_id):
            return not_found(_NOT_FOUND_MESSAGE)
        logger.info("budget_deleted budget_id=%s owner_id=%s", parsed_id, owner_id)
        return MessageResult(message="Budget deleted successfully")
