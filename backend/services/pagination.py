"""Page slicing over filtered transactions."""

from __future__ import annotations

from backend.repositories.transactions_repository import TransactionsRepository
from shared.models import TransactionFilter, TransactionPage


def page_count(total: int, limit: int) -> int:
    """Return ceil(total / limit)."""
    return -(-total // limit)


def paginate(
    repository: TransactionsRepository,
    filters: TransactionFilter,
    *,
    page: int = 1,
    limit: int = 50,
) -> TransactionPage:
    """Return one page of matching transactions, newest first.

    `total` counts every matching record regardless of the page requested.
    """

    if page < 1:
        raise ValueError("page must be >= 1")
    if limit < 1:
        raise ValueError("limit must be >= 1")

    items = repository.find_transactions(filters, offset=(page - 1) * limit, limit=limit)
    total = repository.count_transactions(filters)
    return TransactionPage(
        items=items,
        page=page,
        limit=limit,
        total=total,
        pages=page_count(total, limit),
    )
