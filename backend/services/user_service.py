"""Registration, login and profile management."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from backend.auth.passwords import PasswordHasher
from backend.auth.tokens import TokenService
from backend.repositories.budgets_repository import BudgetsRepository
from backend.repositories.transactions_repository import TransactionsRepository
from backend.repositories.users_repository import DuplicateEmailError, UsersRepository
from backend.services.errors import conflict, invalid, not_found, unauthorized
from shared.models import (
    AccountDeleteRequest,
    AuthResult,
    DashboardResult,
    DashboardUser,
    LoginRequest,
    MessageResult,
    Principal,
    ProfileUpdateRequest,
    ProfileUpdateResult,
    RegisterRequest,
    ServiceError,
    UserOut,
    UserRecord,
)


logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS = "Invalid email or password"
_USER_NOT_FOUND = "User not found"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_user_out(record: UserRecord) -> UserOut:
    return UserOut(
        id=record.id,
        name=record.name,
        email=record.email,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


@dataclass(slots=True)
class UserService:
    users_repository: UsersRepository
    transactions_repository: TransactionsRepository
    budgets_repository: BudgetsRepository
    password_hasher: PasswordHasher
    token_service: TokenService
    now: Callable[[], datetime] = _utcnow

    def _auth_result(self, user: UserRecord) -> AuthResult:
        return AuthResult(token=self.token_service.issue_token(user.id), user=to_user_out(user))

    def register(self, request: RegisterRequest) -> AuthResult | ServiceError:
        if self.users_repository.get_user_by_email(request.email) is not None:
            return conflict("User already exists")

        now = self.now()
        record = UserRecord(
            id=uuid4(),
            name=request.name,
            email=request.email,
            password_hash=self.password_hasher.hash(request.password),
            created_at=now,
            updated_at=now,
        )
        try:
            stored = self.users_repository.insert_user(record)
        except DuplicateEmailError:
            return conflict("User already exists")

        logger.info("user_registered user_id=%s", stored.id)
        return self._auth_result(stored)

    def login(self, request: LoginRequest) -> AuthResult | ServiceError:
        """Authenticate by email and password.

        An unknown email and a wrong password produce the same error so callers
        cannot tell which addresses are registered.
        """

        user = self.users_repository.get_user_by_email(request.email)
        if user is None or not self.password_hasher.verify(request.password, user.password_hash):
            logger.info("login_rejected")
            return unauthorized(_INVALID_CREDENTIALS)
        return self._auth_result(user)

    def get_profile(self, principal: Principal) -> UserOut | ServiceError:
        user = self.users_repository.get_user(principal.id)
        if user is None:
            return not_found(_USER_NOT_FOUND)
        return to_user_out(user)

    def update_profile(
        self, principal: Principal, request: ProfileUpdateRequest
    ) -> ProfileUpdateResult | ServiceError:
        user = self.users_repository.get_user(principal.id)
        if user is None:
            return not_found(_USER_NOT_FOUND)

        changes: dict[str, Any] = {}
        if request.name is not None:
            changes["name"] = request.name

        if request.email is not None and request.email != user.email:
            existing = self.users_repository.get_user_by_email(request.email)
            if existing is not None and existing.id != user.id:
                return conflict("Email already in use")
            changes["email"] = request.email

        if request.new_password is not None:
            if not request.current_password:
                return invalid("Current password is required to set new password")
            if not self.password_hasher.verify(request.current_password, user.password_hash):
                return invalid("Current password is incorrect")
            changes["password_hash"] = self.password_hasher.hash(request.new_password)

        if changes:
            changes["updated_at"] = self.now()
            try:
                updated = self.users_repository.update_user(user.id, changes)
            except DuplicateEmailError:
                return conflict("Email already in use")
            if updated is None:
                return not_found(_USER_NOT_FOUND)
            user = updated
            logger.info("user_profile_updated user_id=%s fields=%s", user.id, ",".join(sorted(changes)))

        return ProfileUpdateResult(message="Profile updated successfully", user=to_user_out(user))

    def delete_account(
        self, principal: Principal, request: AccountDeleteRequest
    ) -> MessageResult | ServiceError:
        if not request.password:
            return invalid("Password is required to delete account")

        user = self.users_repository.get_user(principal.id)
        if user is None:
            return not_found(_USER_NOT_FOUND)
        if not self.password_hasher.verify(request.password, user.password_hash):
            return invalid("Invalid password")

        deleted_transactions = self.transactions_repository.delete_transactions_for_owner(user.id)
        deleted_budgets = self.budgets_repository.delete_budgets_for_owner(user.id)
        self.users_repository.delete_user(user.id)
        logger.info(
            "user_account_deleted user_id=%s transactions=%s budgets=%s",
            user.id,
            deleted_transactions,
            deleted_budgets,
        )
        return MessageResult(message="Account deleted successfully")

    def dashboard(self, principal: Principal) -> DashboardResult:
        return DashboardResult(
            msg="Welcome to your dashboard!",
            user=DashboardUser(id=principal.id, username=principal.name, email=principal.email),
        )
