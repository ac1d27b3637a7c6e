"""Composition root for backend services."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from backend.auth.passwords import PasswordHasher
from backend.auth.tokens import CredentialVerifier, TokenService, TokenSettings
from backend.db.supabase_client import SupabaseClient, SupabaseSettings
from backend.repositories.budgets_repository import (
    BudgetsRepository,
    InMemoryBudgetsRepository,
    SupabaseBudgetsRepository,
)
from backend.repositories.transactions_repository import (
    InMemoryTransactionsRepository,
    SupabaseTransactionsRepository,
    TransactionsRepository,
)
from backend.repositories.users_repository import (
    InMemoryUsersRepository,
    SupabaseUsersRepository,
    UsersRepository,
)
from backend.services.budget_service import BudgetService
from backend.services.transaction_service import TransactionService
from backend.services.user_service import UserService
from shared import config


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BackendServices:
    transaction_service: TransactionService
    user_service: UserService
    budget_service: BudgetService
    credential_verifier: CredentialVerifier
    supabase_client: SupabaseClient | None = None

    def close(self) -> None:
        """Release the store handle, if any. Safe to call twice."""

        if self.supabase_client is not None and not self.supabase_client.closed:
            self.supabase_client.close()
            logger.info("supabase_client_closed")


def assemble_backend_services(
    *,
    users_repository: UsersRepository,
    transactions_repository: TransactionsRepository,
    budgets_repository: BudgetsRepository,
    password_hasher: PasswordHasher,
    token_service: TokenService,
    supabase_client: SupabaseClient | None = None,
) -> BackendServices:
    """Wire services over already-built repositories and auth helpers."""

    return BackendServices(
        transaction_service=TransactionService(transactions_repository=transactions_repository),
        user_service=UserService(
            users_repository=users_repository,
            transactions_repository=transactions_repository,
            budgets_repository=budgets_repository,
            password_hasher=password_hasher,
            token_service=token_service,
        ),
        budget_service=BudgetService(
            budgets_repository=budgets_repository,
            transactions_repository=transactions_repository,
        ),
        credential_verifier=CredentialVerifier(
            token_service=token_service,
            users_repository=users_repository,
        ),
        supabase_client=supabase_client,
    )


def build_backend_services() -> BackendServices:
    """Build backend services with repository adapters.

    Supabase adapters are used when `SUPABASE_URL` and
    `SUPABASE_SERVICE_ROLE_KEY` are set; otherwise everything lives in
    process memory and is lost on restart.
    """

    supabase_url = config.supabase_url()
    supabase_key = config.supabase_service_role_key()
    supabase_client: SupabaseClient | None = None
    if supabase_url and supabase_key:
        supabase_client = SupabaseClient(
            settings=SupabaseSettings(url=supabase_url, service_role_key=supabase_key)
        )
        users_repository: UsersRepository = SupabaseUsersRepository(client=supabase_client)
        transactions_repository: TransactionsRepository = SupabaseTransactionsRepository(client=supabase_client)
        budgets_repository: BudgetsRepository = SupabaseBudgetsRepository(client=supabase_client)
        logger.info("backend_store=supabase")
    else:
        users_repository = InMemoryUsersRepository()
        transactions_repository = InMemoryTransactionsRepository()
        budgets_repository = InMemoryBudgetsRepository()
        logger.info("backend_store=in_memory")

    token_service = TokenService(
        TokenSettings(
            secret=config.jwt_secret(),
            algorithm=config.jwt_algorithm(),
            expires_minutes=config.jwt_expires_minutes(),
        )
    )
    return assemble_backend_services(
        users_repository=users_repository,
        transactions_repository=transactions_repository,
        budgets_repository=budgets_repository,
        password_hasher=PasswordHasher(rounds=config.bcrypt_rounds()),
        token_service=token_service,
        supabase_client=supabase_client,
    )
