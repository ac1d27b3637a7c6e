"""Repository adapters for per-category budgets."""

from __future__ import annotations

from decimal import Decimal
from threading import Lock
from typing import Protocol
from uuid import UUID

from backend.db.supabase_client import SupabaseClient
from shared.models import BudgetRecord


class BudgetsRepository(Protocol):
    def list_budgets(self, owner_id: UUID) -> list[BudgetRecord]:
        """Return budgets of one owner, oldest first."""

    def insert_budget(self, record: BudgetRecord) -> BudgetRecord:
        """Persist one budget."""

    def delete_budget(self, *, budget_id: UUID, owner_id: UUID) -> bool:
        """Delete one owned budget and return whether a row was removed."""

    def delete_budgets_for_owner(self, owner_id: UUID) -> int:
        """Delete every budget of one owner and return the removed count."""


class InMemoryBudgetsRepository:
    """In-memory budgets repository used by tests/dev."""

    def __init__(self) -> None:
        self._budgets: list[BudgetRecord] = []
        self._lock = Lock()

    def list_budgets(self, owner_id: UUID) -> list[BudgetRecord]:
        with self._lock:
            return [budget for budget in self._budgets if budget.user_id == owner_id]

    def insert_budget(self, record: BudgetRecord) -> BudgetRecord:
        with self._lock:
            self._budgets.append(record)
        return record

    def delete_budget(self, *, budget_id: UUID, owner_id: UUID) -> bool:
        with self._lock:
            kept = [
                budget
                for budget in self._budgets
                if not (budget.id == budget_id and budget.user_id == owner_id)
            ]
            removed = len(kept) != len(self._budgets)
            self._budgets = kept
        return removed

    def delete_budgets_for_owner(self, owner_id: UUID) -> int:
        with self._lock:
            kept = [budget for budget in self._budgets if budget.user_id != owner_id]
            removed_count = len(self._budgets) - len(kept)
            self._budgets = kept
        return removed_count


_TABLE = "budgets"
_COLUMNS = "id,user_id,category,amount,period,created_at"


class SupabaseBudgetsRepository:
    """Supabase repository over the `public.budgets` table."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    @staticmethod
    def _parse_row(row: dict[str, object]) -> BudgetRecord:
        return BudgetRecord.model_validate({**row, "amount": Decimal(str(row.get("amount")))})

    def list_budgets(self, owner_id: UUID) -> list[BudgetRecord]:
        rows, _ = self._client.get_rows(
            table=_TABLE,
            query=[
                ("user_id", f"eq.{owner_id}"),
                ("select", _COLUMNS),
                ("order", "created_at.asc"),
            ],
            with_count=False,
        )
        return [self._parse_row(row) for row in rows]

    def insert_budget(self, record: BudgetRecord) -> BudgetRecord:
        payload = record.model_dump(mode="json")
        payload["amount"] = str(record.amount)
        rows = self._client.post_rows(table=_TABLE, payload=payload)
        if not rows:
            raise RuntimeError("Supabase did not return created budget")
        return self._parse_row(rows[0])

    def delete_budget(self, *, budget_id: UUID, owner_id: UUID) -> bool:
        rows = self._client.delete_rows(
            table=_TABLE,
            query={"id": f"eq.{budget_id}", "user_id": f"eq.{owner_id}", "select": "id"},
        )
        return bool(rows)

    def delete_budgets_for_owner(self, owner_id: UUID) -> int:
        rows = self._client.delete_rows(
            table=_TABLE,
            query={"user_id": f"eq.{owner_id}", "select": "id"},
        )
        return len(rows)
