"""Builds owner-scoped transaction predicates from request parameters."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from shared.models import TransactionFilter
from shared.text_utils import to_storage_form


def _storage_value(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return to_storage_form(value.strip()) or None
    return value


def build_transaction_filter(
    owner_id: UUID,
    *,
    type: object = None,
    category: object = None,
    start_date: str | datetime | None = None,
    end_date: str | datetime | None = None,
) -> TransactionFilter:
    """Return the predicate selecting `owner_id`'s transactions.

    `type` and `category` accept display text ("Credit Card") or storage
    tokens. Date bounds are inclusive; a date-only `end_date` covers the
    whole day. Unset criteria stay None and impose no constraint. Raises
    `pydantic.ValidationError` for unknown tokens or unparseable dates.
    """

    return TransactionFilter(
        owner_id=owner_id,
        type=_storage_value(type),
        category=_storage_value(category),
        date_from=start_date,
        date_to=end_date,
    )
