"""Deterministic in-memory wiring for service and API tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from backend.auth.passwords import PasswordHasher
from backend.auth.tokens import TokenService, TokenSettings
from backend.factory import BackendServices, assemble_backend_services
from backend.repositories.budgets_repository import InMemoryBudgetsRepository
from backend.repositories.transactions_repository import InMemoryTransactionsRepository
from backend.repositories.users_repository import InMemoryUsersRepository
from shared.models import (
    PaymentMethod,
    TransactionCategory,
    TransactionRecord,
    TransactionType,
)


TEST_JWT_SECRET = "test-secret"
OWNER_A = UUID("aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa")
OWNER_B = UUID("bbbbbbbb-bbbb-4bbb-8bbb-bbbbbbbbbbbb")


def fast_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


def token_service(now: Callable[[], datetime] | None = None) -> TokenService:
    settings = TokenSettings(secret=TEST_JWT_SECRET, algorithm="HS256", expires_minutes=60)
    if now is None:
        return TokenService(settings)
    return TokenService(settings, now=now)


def build_in_memory_services() -> BackendServices:
    """Wire every service over fresh in-memory repositories."""

    return assemble_backend_services(
        users_repository=InMemoryUsersRepository(),
        transactions_repository=InMemoryTransactionsRepository(),
        budgets_repository=InMemoryBudgetsRepository(),
        password_hasher=fast_password_hasher(),
        token_service=token_service(),
    )


def make_record(
    *,
    record_id: str,
    owner_id: UUID = OWNER_A,
    amount: str = "10.00",
    type: TransactionType = TransactionType.EXPENSE,
    category: TransactionCategory = TransactionCategory.FOOD,
    description: str = "groceries",
    date: datetime = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc),
    payment_method: PaymentMethod = PaymentMethod.CASH,
    tags: list[str] | None = None,
) -> TransactionRecord:
    return TransactionRecord(
        id=UUID(record_id),
        user_id=owner_id,
        amount=Decimal(amount),
        type=type,
        category=category,
        description=description,
        date=date,
        payment_method=payment_method,
        tags=tags or [],
        created_at=date,
        updated_at=date,
    )


def record_id(index: int) -> str:
    """Return a stable UUID string whose ordering follows `index`."""

    return f"00000000-0000-4000-8000-{index:012d}"
