"""Transactions repository adapters.

Every method takes the owner id, either directly or through a
`TransactionFilter`, and never touches another owner's rows.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from threading import Lock
from typing import Protocol
from uuid import UUID

from backend.db.supabase_client import SupabaseClient
from shared.models import TransactionFilter, TransactionRecord, TransactionType


TransactionAggregate = dict[TransactionType, tuple[Decimal, int]]


class TransactionsRepository(Protocol):
    def insert_transaction(self, record: TransactionRecord) -> TransactionRecord:
        """Persist a new transaction and return the stored record."""

    def get_transaction(self, *, transaction_id: UUID, owner_id: UUID) -> TransactionRecord | None:
        """Return one transaction when it exists and belongs to `owner_id`."""

    def update_transaction(self, record: TransactionRecord) -> TransactionRecord | None:
        """Replace a stored transaction matched by id and owner; None when absent."""

    def delete_transaction(self, *, transaction_id: UUID, owner_id: UUID) -> bool:
        """Delete one owned transaction and return whether a row was removed."""

    def delete_transactions_for_owner(self, owner_id: UUID) -> int:
        """Delete every transaction of one owner and return the removed count."""

    def find_transactions(
        self,
        filters: TransactionFilter,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TransactionRecord]:
        """Return matching transactions, newest first (ties broken by id, descending)."""

    def count_transactions(self, filters: TransactionFilter) -> int:
        """Return the number of matching transactions."""

    def aggregate_by_type(self, filters: TransactionFilter) -> TransactionAggregate:
        """Return exact amount totals and record counts grouped by transaction type."""


def _newest_first(record: TransactionRecord) -> tuple[datetime, UUID]:
    return record.date, record.id


def _accumulate(aggregate: TransactionAggregate, transaction_type: TransactionType, amount: Decimal) -> None:
    total, count = aggregate.get(transaction_type, (Decimal("0"), 0))
    aggregate[transaction_type] = (total + amount, count + 1)


class InMemoryTransactionsRepository:
    """In-memory repository used for local dev/tests when Supabase is not configured."""

    def __init__(self) -> None:
        self._rows: dict[UUID, TransactionRecord] = {}
        self._lock = Lock()

    def insert_transaction(self, record: TransactionRecord) -> TransactionRecord:
        with self._lock:
            if record.id in self._rows:
                raise ValueError(f"Transaction {record.id} already exists")
            self._rows[record.id] = record
        return record

    def get_transaction(self, *, transaction_id: UUID, owner_id: UUID) -> TransactionRecord | None:
        with self._lock:
            record = self._rows.get(transaction_id)
        if record is None or record.user_id != owner_id:
            return None
        return record

    def update_transaction(self, record: TransactionRecord) -> TransactionRecord | None:
        with self._lock:
            current = self._rows.get(record.id)
            if current is None or current.user_id != record.user_id:
                return None
            self._rows[record.id] = record
        return record

    def delete_transaction(self, *, transaction_id: UUID, owner_id: UUID) -> bool:
        with self._lock:
            current = self._rows.get(transaction_id)
            if current is None or current.user_id != owner_id:
                return False
            del self._rows[transaction_id]
        return True

    def delete_transactions_for_owner(self, owner_id: UUID) -> int:
        with self._lock:
            owned_ids = [row_id for row_id, row in self._rows.items() if row.user_id == owner_id]
            for row_id in owned_ids:
                del self._rows[row_id]
        return len(owned_ids)

    def _filter_rows(self, filters: TransactionFilter) -> list[TransactionRecord]:
        with self._lock:
            rows = list(self._rows.values())
        return [row for row in rows if filters.matches(row)]

    def find_transactions(
        self,
        filters: TransactionFilter,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TransactionRecord]:
        rows = sorted(self._filter_rows(filters), key=_newest_first, reverse=True)
        if limit is None:
            return rows[offset:]
        return rows[offset : offset + limit]

    def count_transactions(self, filters: TransactionFilter) -> int:
        return len(self._filter_rows(filters))

    def aggregate_by_type(self, filters: TransactionFilter) -> TransactionAggregate:
        aggregate: TransactionAggregate = {}
        for row in self._filter_rows(filters):
            _accumulate(aggregate, row.type, row.amount)
        return aggregate


_TABLE = "transactions"
_COLUMNS = "id,user_id,amount,type,category,description,date,payment_method,tags,created_at,updated_at"

# Must not exceed the PostgREST `db-max-rows` setting (1000 on Supabase).
DEFAULT_SCAN_PAGE_SIZE = 1000


class SupabaseTransactionsRepository:
    """Supabase repository over the `public.transactions` table."""

    def __init__(self, client: SupabaseClient, *, scan_page_size: int = DEFAULT_SCAN_PAGE_SIZE) -> None:
        self._client = client
        self._scan_page_size = scan_page_size

    @staticmethod
    def _build_query(filters: TransactionFilter) -> list[tuple[str, str | int]]:
        query: list[tuple[str, str | int]] = [("user_id", f"eq.{filters.owner_id}")]

        if filters.type is not None:
            query.append(("type", f"eq.{filters.type.value}"))

        if filters.category is not None:
            query.append(("category", f"eq.{filters.category.value}"))

        if filters.date_from is not None:
            query.append(("date", f"gte.{filters.date_from.isoformat()}"))

        if filters.date_to is not None:
            query.append(("date", f"lte.{filters.date_to.isoformat()}"))

        return query

    def _scan_rows(self, query: list[tuple[str, str | int]], *, offset: int = 0) -> list[dict[str, object]]:
        """Read every matching row one bounded page at a time.

        PostgREST truncates a single response at `db-max-rows` without
        reporting it, so unbounded reads stop only on a short page.
        """

        rows: list[dict[str, object]] = []
        while True:
            page, _ = self._client.get_rows(
                table=_TABLE,
                query=[*query, ("offset", offset), ("limit", self._scan_page_size)],
                with_count=False,
            )
            rows.extend(page)
            if len(page) < self._scan_page_size:
                return rows
            offset += self._scan_page_size

    @staticmethod
    def _owned_row_query(*, transaction_id: UUID, owner_id: UUID) -> list[tuple[str, str | int]]:
        return [("id", f"eq.{transaction_id}"), ("user_id", f"eq.{owner_id}")]

    @staticmethod
    def _to_row(record: TransactionRecord) -> dict[str, object]:
        row = record.model_dump(mode="json")
        row["amount"] = str(record.amount)
        return row

    @staticmethod
    def _parse_row(row: dict[str, object]) -> TransactionRecord:
        for required_field in ("id", "user_id", "amount", "date"):
            if row.get(required_field) is None:
                raise ValueError(f"Missing required field '{required_field}' in transactions row")
        values = dict(row)
        values["amount"] = Decimal(str(row["amount"]))
        values["tags"] = row.get("tags") or []
        return TransactionRecord.model_validate(values)

    def insert_transaction(self, record: TransactionRecord) -> TransactionRecord:
        rows = self._client.post_rows(table=_TABLE, payload=self._to_row(record))
        if not rows:
            raise RuntimeError("Supabase did not return created transaction")
        return self._parse_row(rows[0])

    def get_transaction(self, *, transaction_id: UUID, owner_id: UUID) -> TransactionRecord | None:
        rows, _ = self._client.get_rows(
            table=_TABLE,
            query=[
                *self._owned_row_query(transaction_id=transaction_id, owner_id=owner_id),
                ("select", _COLUMNS),
                ("limit", 1),
            ],
            with_count=False,
        )
        if not rows:
            return None
        return self._parse_row(rows[0])

    def update_transaction(self, record: TransactionRecord) -> TransactionRecord | None:
        payload = self._to_row(record)
        for immutable_field in ("id", "user_id", "created_at"):
            payload.pop(immutable_field, None)

        rows = self._client.patch_rows(
            table=_TABLE,
            query=[
                *self._owned_row_query(transaction_id=record.id, owner_id=record.user_id),
                ("select", _COLUMNS),
            ],
            payload=payload,
        )
        if not rows:
            return None
        return self._parse_row(rows[0])

    def delete_transaction(self, *, transaction_id: UUID, owner_id: UUID) -> bool:
        rows = self._client.delete_rows(
            table=_TABLE,
            query=[
                *self._owned_row_query(transaction_id=transaction_id, owner_id=owner_id),
                ("select", "id"),
            ],
        )
        return bool(rows)

    def delete_transactions_for_owner(self, owner_id: UUID) -> int:
        rows = self._client.delete_rows(
            table=_TABLE,
            query=[("user_id", f"eq.{owner_id}"), ("select", "id")],
        )
        return len(rows)

    def find_transactions(
        self,
        filters: TransactionFilter,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TransactionRecord]:
        query = [
            *self._build_query(filters),
            ("select", _COLUMNS),
            ("order", "date.desc,id.desc"),
        ]
        if limit is None:
            rows = self._scan_rows(query, offset=offset)
        else:
            rows, _ = self._client.get_rows(
                table=_TABLE,
                query=[*query, ("offset", offset), ("limit", limit)],
                with_count=False,
            )
        return [self._parse_row(row) for row in rows]

    def count_transactions(self, filters: TransactionFilter) -> int:
        query = [*self._build_query(filters), ("select", "id"), ("limit", 0)]
        _, total = self._client.get_rows(table=_TABLE, query=query, with_count=True)
        if total is None:
            raise RuntimeError("Supabase did not return an exact row count")
        return total

    def aggregate_by_type(self, filters: TransactionFilter) -> TransactionAggregate:
        query = [*self._build_query(filters), ("select", "type,amount"), ("order", "id.asc")]
        rows = self._scan_rows(query)

        aggregate: TransactionAggregate = {}
        for row in rows:
            _accumulate(aggregate, TransactionType(str(row.get("type"))), Decimal(str(row.get("amount"))))
        return aggregate
