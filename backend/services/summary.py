"""Income/expense totals over filtered transactions."""

from __future__ import annotations

from decimal import Decimal

from backend.repositories.transactions_repository import TransactionsRepository
from shared.models import TransactionFilter, TransactionSummary, TransactionType


_EMPTY_GROUP: tuple[Decimal, int] = (Decimal("0"), 0)


def summarize(repository: TransactionsRepository, filters: TransactionFilter) -> TransactionSummary:
    """Return totals per type, the balance and the number of matching records.

    A type with no matching records contributes zero.
    """

    aggregate = repository.aggregate_by_type(filters)
    total_income, income_count = aggregate.get(TransactionType.INCOME, _EMPTY_GROUP)
    total_expense, expense_count = aggregate.get(TransactionType.EXPENSE, _EMPTY_GROUP)
    return TransactionSummary(
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
        transaction_count=income_count + expense_count,
    )
