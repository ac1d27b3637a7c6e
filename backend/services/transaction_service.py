"""Transaction lifecycle and query service.

Every operation receives the authenticated owner id from the API layer and
scopes its repository calls with it. Records are stored with lowercase
tokens and rendered in display form on the way out.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from pydantic import ValidationError

from backend.repositories.transactions_repository import TransactionsRepository
from backend.services.errors import invalid, not_found, validation_error
from backend.services.pagination import paginate
from backend.services.summary import summarize
from backend.services.transaction_filters import build_transaction_filter
from shared import config
from shared.models import (
    CategorySpentResult,
    DateRangeQuery,
    MessageResult,
    Pagination,
    ServiceError,
    TransactionCreateRequest,
    TransactionListQuery,
    TransactionListResult,
    TransactionOut,
    TransactionRecord,
    TransactionSummary,
    TransactionType,
    TransactionUpdateRequest,
)
from shared.text_utils import to_display_form, to_proper_case


logger = logging.getLogger(__name__)

_NOT_FOUND_MESSAGE = "Transaction not found"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_display(record: TransactionRecord) -> TransactionOut:
    """Render a stored transaction for clients."""

    return TransactionOut(
        id=record.id,
        user_id=record.user_id,
        amount=record.amount,
        type=to_display_form(record.type.value),
        category=to_display_form(record.category.value),
        description=to_proper_case(record.description),
        date=record.date,
        payment_method=to_display_form(record.payment_method.value),
        tags=list(record.tags),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _parse_id(raw_id: str | UUID) -> UUID | None:
    if isinstance(raw_id, UUID):
        return raw_id
    try:
        return UUID(str(raw_id))
    except ValueError:
        return None


@dataclass(slots=True)
class TransactionService:
    transactions_repository: TransactionsRepository
    now: Callable[[], datetime] = _utcnow
    default_limit: int = field(default_factory=config.default_page_limit)
    max_limit: int = field(default_factory=config.max_page_limit)

    def list_transactions(
        self, owner_id: UUID, params: Mapping[str, object]
    ) -> TransactionListResult | ServiceError:
        try:
            query = TransactionListQuery.model_validate(dict(params))
        except ValidationError as exc:
            return validation_error(exc)

        # A default above the cap is clamped, an explicit limit above it is rejected.
        limit = query.limit if query.limit is not None else min(self.default_limit, self.max_limit)
        if limit > self.max_limit:
            return invalid(f"limit must be less than or equal to {self.max_limit}")

        filters = build_transaction_filter(
            owner_id,
            type=query.type,
            category=query.category,
            start_date=query.start_date,
            end_date=query.end_date,
        )
        page = paginate(self.transactions_repository, filters, page=query.page, limit=limit)
        return TransactionListResult(
            transactions=[to_display(record) for record in page.items],
            pagination=Pagination(
                page=page.page,
                limit=page.limit,
                total=page.total,
                pages=page.pages,
            ),
        )

    def export_transactions(
        self, owner_id: UUID, params: Mapping[str, object]
    ) -> list[TransactionOut] | ServiceError:
        """Return every matching transaction in display form, without pagination."""

        try:
            query = TransactionListQuery.model_validate(dict(params))
        except ValidationError as exc:
            return validation_error(exc)

        filters = build_transaction_filter(
            owner_id,
            type=query.type,
            category=query.category,
            start_date=query.start_date,
            end_date=query.end_date,
        )
        return [to_display(record) for record in self.transactions_repository.find_transactions(filters)]

    def get_transaction(self, owner_id: UUID, transaction_id: str | UUID) -> TransactionOut | ServiceError:
        parsed_id = _parse_id(transaction_id)
        if parsed_id is None:
            return not_found(_NOT_FOUND_MESSAGE)

        record = self.transactions_repository.get_transaction(transaction_id=parsed_id, owner_id=owner_id)
        if record is None:
            return not_found(_NOT_FOUND_MESSAGE)
        return to_display(record)

    def create_transaction(
        self, owner_id: UUID, request: TransactionCreateRequest
    ) -> TransactionOut | ServiceError:
        now = self.now()
        try:
            record = TransactionRecord(
                id=uuid4(),
                user_id=owner_id,
                amount=request.amount,
                type=request.type,
                category=request.category,
                description=request.description,
                date=request.date or now,
                payment_method=request.payment_method,
                tags=request.tags,
                created_at=now,
                updated_at=now,
            )
        except ValidationError as exc:
            return validation_error(exc)

        stored = self.transactions_repository.insert_transaction(record)
        logger.info("transaction_created transaction_id=%s owner_id=%s", stored.id, owner_id)
        return to_display(stored)

    def update_transaction(
        self,
        owner_id: UUID,
        transaction_id: str | UUID,
        request: TransactionUpdateRequest,
    ) -> TransactionOut | ServiceError:
        parsed_id = _parse_id(transaction_id)
        if parsed_id is None:
            return not_found(_NOT_FOUND_MESSAGE)

        current = self.transactions_repository.get_transaction(transaction_id=parsed_id, owner_id=owner_id)
        if current is None:
            return not_found(_NOT_FOUND_MESSAGE)

        changes = request.model_dump(exclude_unset=True)
        if not changes:
            return to_display(current)

        try:
            merged = TransactionRecord.model_validate(
                {**current.model_dump(), **changes, "updated_at": self.now()}
            )
        except ValidationError as exc:
            return validation_error(exc)

        updated = self.transactions_repository.update_transaction(merged)
        if updated is None:
            return not_found(_NOT_FOUND_MESSAGE)
        logger.info(
            "transaction_updated transaction_id=%s owner_id=%s fields=%s",
            parsed_id,
            owner_id,
            ",".join(sorted(changes)),
        )
        return to_display(updated)

    def delete_transaction(self, owner_id: UUID, transaction_id: str | UUID) -> MessageResult | ServiceError:
        parsed_id = _parse_id(transaction_id)
        if parsed_id is None:
            return not_found(_NOT_FOUND_MESSAGE)

        if not self.transactions_repository.delete_transaction(transaction_id=parsed_id, owner_id=owner_id):
            return not_found(_NOT_FOUND_MESSAGE)
        logger.info("transaction_deleted transaction_id=%s owner_id=%s", parsed_id, owner_id)
        return MessageResult(message="Transaction deleted successfully")

    def summarize_transactions(
        self, owner_id: UUID, params: Mapping[str, object]
    ) -> TransactionSummary | ServiceError:
        try:
            query = DateRangeQuery.model_validate(dict(params))
        except ValidationError as exc:
            return validation_error(exc)

        filters = build_transaction_filter(owner_id, start_date=query.start_date, end_date=query.end_date)
        return summarize(self.transactions_repository, filters)

    def category_spent(
        self, owner_id: UUID, category: str, params: Mapping[str, object]
    ) -> CategorySpentResult | ServiceError:
        """Return the total expense amount recorded against one category."""

        try:
            query = DateRangeQuery.model_validate(dict(params))
            filters = build_transaction_filter(
                owner_id,
                type=TransactionType.EXPENSE,
                category=category,
                start_date=query.start_date,
                end_date=query.end_date,
            )
        except ValidationError as exc:
            return validation_error(exc)

        summary = summarize(self.transactions_repository, filters)
        return CategorySpentResult(
            category=to_display_form(filters.category.value) if filters.category else category,
            spent=summary.total_expense,
            count=summary.transaction_count,
        )
