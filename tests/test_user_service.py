"""Tests for registration, login and profile management."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from backend.services.user_service import UserService
from shared.models import (
    AccountDeleteRequest,
    AuthResult,
    BudgetCreateRequest,
    DashboardResult,
    ErrorCode,
    LoginRequest,
    MessageResult,
    Principal,
    ProfileUpdateRequest,
    ProfileUpdateResult,
    RegisterRequest,
    ServiceError,
    TransactionCreateRequest,
    UserOut,
)
from tests.fakes import build_in_memory_services


def _register(services, name="Ada", email="Ada@Example.com", password="secret1") -> AuthResult:
    result = services.user_service.register(
        RegisterRequest.model_validate({"name": name, "email": email, "password": password})
    )
    assert isinstance(result, AuthResult)
    return result


def _principal(result: AuthResult) -> Principal:
    return Principal(id=result.user.id, name=result.user.name, email=result.user.email)


def test_register_lowercases_email_and_issues_token() -> None:
    services = build_in_memory_services()

    result = _register(services)

    assert result.user.email == "ada@example.com"
    assert services.credential_verifier.verify(f"Bearer {result.token}").id == result.user.id


def test_register_rejects_duplicate_email_case_insensitively() -> None:
    services = build_in_memory_services()
    _register(services)

    result = services.user_service.register(
        RegisterRequest.model_validate({"name": "Other", "email": "ADA@example.com", "password": "secret2"})
    )

    assert isinstance(result, ServiceError)
    assert result.code == ErrorCode.CONFLICT
    assert result.message == "User already exists"


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "", "email": "a@example.com", "password": "secret1"},
        {"name": "Ada", "email": "not-an-email", "password": "secret1"},
        {"name": "Ada", "email": "a@example.com", "password": "short"},
        {"name": "Ada", "email": "a@example.com", "password": "x" * 73},
    ],
)
def test_register_request_validation(payload: dict[str, str]) -> None:
    with pytest.raises(ValidationError):
        RegisterRequest.model_validate(payload)


def test_login_succeeds_with_any_email_case() -> None:
    services = build_in_memory_services()
    registered = _register(services)

    result = services.user_service.login(
        LoginRequest.model_validate({"email": "ADA@EXAMPLE.COM", "password": "secret1"})
    )

    assert isinstance(result, AuthResult)
    assert result.user.id == registered.user.id


@pytest.mark.parametrize(
    ("email", "password"),
    [("ada@example.com", "wrong-password"), ("nobody@example.com", "secret1")],
)
def test_login_failures_are_indistinguishable(email: str, password: str) -> None:
    services = build_in_memory_services()
    _register(services)

    result = services.user_service.login(LoginRequest.model_validate({"email": email, "password": password}))

    assert isinstance(result, ServiceError)
    assert result.code == ErrorCode.UNAUTHORIZED
    assert result.message == "Invalid email or password"


def test_profile_update_changes_name_and_email() -> None:
    services = build_in_memory_services()
    principal = _principal(_register(services))

    result = services.user_service.update_profile(
        principal, ProfileUpdateRequest.model_validate({"name": "Ada L.", "email": "ada.l@example.com"})
    )

    assert isinstance(result, ProfileUpdateResult)
    assert result.message == "Profile updated successfully"
    assert result.user.name == "Ada L."
    assert result.user.email == "ada.l@example.com"
    profile = services.user_service.get_profile(principal)
    assert isinstance(profile, UserOut)
    assert profile.email == "ada.l@example.com"


def test_profile_update_rejects_email_of_other_user() -> None:
    services = build_in_memory_services()
    _register(services, email="taken@example.com")
    principal = _principal(_register(services))

    result = services.user_service.update_profile(
        principal, ProfileUpdateRequest.model_validate({"email": "TAKEN@example.com"})
    )

    assert isinstance(result, ServiceError)
    assert result.code == ErrorCode.CONFLICT
    assert result.message == "Email already in use"


def test_password_change_requires_correct_current_password() -> None:
    services = build_in_memory_services()
    principal = _principal(_register(services))
    user_service: UserService = services.user_service

    missing = user_service.update_profile(principal, ProfileUpdateRequest.model_validate({"newPassword": "brandnew"}))
    wrong = user_service.update_profile(
        principal,
        ProfileUpdateRequest.model_validate({"currentPassword": "nope", "newPassword": "brandnew"}),
    )
    changed = user_service.update_profile(
        principal,
        ProfileUpdateRequest.model_validate({"currentPassword": "secret1", "newPassword": "brandnew"}),
    )

    assert missing.message == "Current password is required to set new password"
    assert wrong.message == "Current password is incorrect"
    assert isinstance(changed, ProfileUpdateResult)
    login = user_service.login(LoginRequest.model_validate({"email": "ada@example.com", "password": "brandnew"}))
    assert isinstance(login, AuthResult)


def test_delete_account_requires_password_and_cascades() -> None:
    services = build_in_memory_services()
    registered = _register(services)
    principal = _principal(registered)
    services.transaction_service.create_transaction(
        principal.id,
        TransactionCreateRequest.model_validate(
            {"amount": 5, "type": "Expense", "category": "Food", "description": "Snack"}
        ),
    )
    services.budget_service.create_budget(
        principal.id, BudgetCreateRequest.model_validate({"category": "Food", "amount": 100})
    )

    missing = services.user_service.delete_account(principal, AccountDeleteRequest())
    wrong = services.user_service.delete_account(principal, AccountDeleteRequest(password="nope"))
    deleted = services.user_service.delete_account(principal, AccountDeleteRequest(password="secret1"))

    assert missing.message == "Password is required to delete account"
    assert wrong.message == "Invalid password"
    assert isinstance(deleted, MessageResult)
    assert deleted.message == "Account deleted successfully"
    assert services.transaction_service.export_transactions(principal.id, {}) == []
    assert services.budget_service.list_budgets(principal.id) == []
    assert isinstance(services.user_service.get_profile(principal), ServiceError)


def test_dashboard_greets_principal() -> None:
    services = build_in_memory_services()
    principal = _principal(_register(services))

    result = services.user_service.dashboard(principal)

    assert isinstance(result, DashboardResult)
    assert result.msg == "Welcome to your dashboard!"
    assert result.user.username == "Ada"


def test_timestamps_are_set_on_register() -> None:
    services = build_in_memory_services()
    services.user_service.now = lambda: datetime(2024, 5, 1, tzinfo=timezone.utc)

    result = _register(services)

    assert result.user.created_at == datetime(2024, 5, 1, tzinfo=timezone.utc)
