"""Pydantic contracts shared across the API, services and repositories."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from shared.text_utils import to_storage_form


class ErrorCode(str, Enum):
    """Stable error codes returned by services."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"


class ServiceError(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: ErrorCode
    message: str
    details: dict[str, object] | None = None


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionCategory(str, Enum):
    # Income
    SALARY = "salary"
    FREELANCE = "freelance"
    INVESTMENT = "investment"
    BUSINESS = "business"
    GIFT = "gift"
    OTHER_INCOME = "other-income"
    # Expense
    FOOD = "food"
    TRANSPORTATION = "transportation"
    HOUSING = "housing"
    UTILITIES = "utilities"
    HEALTHCARE = "healthcare"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    EDUCATION = "education"
    TRAVEL = "travel"
    OTHER_EXPENSE = "other-expense"


INCOME_CATEGORIES: frozenset[TransactionCategory] = frozenset(
    {
        TransactionCategory.SALARY,
        TransactionCategory.FREELANCE,
        TransactionCategory.INVESTMENT,
        TransactionCategory.BUSINESS,
        TransactionCategory.GIFT,
        TransactionCategory.OTHER_INCOME,
    }
)
EXPENSE_CATEGORIES: frozenset[TransactionCategory] = frozenset(TransactionCategory) - INCOME_CATEGORIES
CATEGORIES_BY_TYPE: dict[TransactionType, frozenset[TransactionCategory]] = {
    TransactionType.INCOME: INCOME_CATEGORIES,
    TransactionType.EXPENSE: EXPENSE_CATEGORIES,
}


class PaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT_CARD = "credit-card"
    DEBIT_CARD = "debit-card"
    BANK_TRANSFER = "bank-transfer"
    DIGITAL_WALLET = "digital-wallet"
    CHECK = "check"


class BudgetPeriod(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# Exact Decimal internally, plain JSON number on the wire.
JsonDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

_API_CONFIG = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)
_OUTPUT_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def ensure_aware(value: datetime) -> datetime:
    """Return `value` with UTC attached when it carries no timezone."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: object, *, end_of_day: bool = False) -> object:
    """Parse an ISO date or datetime string into an aware datetime.

    Date-only strings map to midnight UTC, or to the last microsecond of
    that day when `end_of_day` is set. Non-string values are returned as-is
    for pydantic to validate.
    """

    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return datetime.combine(value, time.max if end_of_day else time.min, tzinfo=timezone.utc)
    if not isinstance(value, str):
        return value

    raw = value.strip()
    if not raw:
        return None
    if len(raw) == 10:
        parsed_date = date.fromisoformat(raw)
        return datetime.combine(parsed_date, time.max if end_of_day else time.min, tzinfo=timezone.utc)
    return ensure_aware(datetime.fromisoformat(raw.replace("Z", "+00:00")))


def _storage_token(value: object) -> object:
    if isinstance(value, str):
        return to_storage_form(value.strip())
    return value


def _clean_tags(value: object) -> object:
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, list):
        stripped = (tag.strip() if isinstance(tag, str) else tag for tag in value)
        return [tag for tag in stripped if tag != "" and tag is not None]
    return value


def _check_category_matches_type(
    transaction_type: TransactionType, category: TransactionCategory
) -> None:
    if category not in CATEGORIES_BY_TYPE[transaction_type]:
        raise ValueError(
            f"Category '{category.value}' does not belong to type '{transaction_type.value}'"
        )


class Principal(BaseModel):
    """Authenticated caller resolved from a bearer token."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: UUID
    name: str
    email: str


# ---------------------------------------------------------------- transactions


class TransactionCreateRequest(BaseModel):
    model_config = _API_CONFIG

    amount: Decimal = Field(gt=0)
    type: TransactionType
    category: TransactionCategory
    description: str = Field(min_length=1)
    date: datetime | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    tags: list[str] = Field(default_factory=list)

    @field_validator("type", "category", mode="before")
    @classmethod
    def normalize_tokens(cls, value: object) -> object:
        return _storage_token(value)

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_payment_method(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return PaymentMethod.CASH
        return _storage_token(value)

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("description")
    @classmethod
    def lowercase_description(cls, value: str) -> str:
        return value.lower()

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value: object) -> object:
        return parse_timestamp(value)

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, value: object) -> object:
        return _clean_tags(value)

    @model_validator(mode="after")
    def check_category_for_type(self) -> TransactionCreateRequest:
        _check_category_matches_type(self.type, self.category)
        return self


class TransactionUpdateRequest(BaseModel):
    """Partial update: only the fields present in the payload are applied."""

    model_config = _API_CONFIG

    amount: Decimal | None = Field(default=None, gt=0)
    type: TransactionType | None = None
    category: TransactionCategory | None = None
    description: str | None = Field(default=None, min_length=1)
    date: datetime | None = None
    payment_method: PaymentMethod | None = None
    tags: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def reject_explicit_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            null_fields = sorted(str(key) for key, value in data.items() if value is None)
            if null_fields:
                raise ValueError(f"Fields cannot be null: {', '.join(null_fields)}")
        return data

    @field_validator("type", "category", "payment_method", mode="before")
    @classmethod
    def normalize_tokens(cls, value: object) -> object:
        return _storage_token(value)

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("description")
    @classmethod
    def lowercase_description(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else value

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value: object) -> object:
        return parse_timestamp(value)

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, value: object) -> object:
        return _clean_tags(value)


class TransactionRecord(BaseModel):
    """A transaction as persisted: enum fields hold storage tokens."""

    model_config = ConfigDict(extra="forbid")

    id: UUID
    user_id: UUID
    amount: Decimal = Field(gt=0)
    type: TransactionType
    category: TransactionCategory
    description: str = Field(min_length=1)
    date: datetime
    payment_method: PaymentMethod = PaymentMethod.CASH
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("date", "created_at", "updated_at")
    @classmethod
    def attach_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else value

    @model_validator(mode="after")
    def check_category_for_type(self) -> TransactionRecord:
        _check_category_matches_type(self.type, self.category)
        return self


class TransactionOut(BaseModel):
    """A transaction rendered for clients: enum fields in display form."""

    model_config = _OUTPUT_CONFIG

    id: UUID
    user_id: UUID
    amount: JsonDecimal
    type: str
    category: str
    description: str
    date: datetime
    payment_method: str
    tags: list[str]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TransactionListQuery(BaseModel):
    model_config = _API_CONFIG

    type: TransactionType | None = None
    category: TransactionCategory | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)

    @field_validator("type", "category", mode="before")
    @classmethod
    def normalize_tokens(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return _storage_token(value)

    @field_validator("start_date", mode="before")
    @classmethod
    def parse_start_date(cls, value: object) -> object:
        return parse_timestamp(value)

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end_date(cls, value: object) -> object:
        return parse_timestamp(value, end_of_day=True)

    @model_validator(mode="after")
    def check_date_order(self) -> TransactionListQuery:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must be before or equal to endDate")
        return self


class DateRangeQuery(BaseModel):
    model_config = _API_CONFIG

    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("start_date", mode="before")
    @classmethod
    def parse_start_date(cls, value: object) -> object:
        return parse_timestamp(value)

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end_date(cls, value: object) -> object:
        return parse_timestamp(value, end_of_day=True)

    @model_validator(mode="after")
    def check_date_order(self) -> DateRangeQuery:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must be before or equal to endDate")
        return self


class TransactionFilter(BaseModel):
    """Owner-scoped predicate handed to transaction repositories.

    Optional criteria left as None impose no constraint and are omitted from
    `criteria()`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    owner_id: UUID
    type: TransactionType | None = None
    category: TransactionCategory | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    @field_validator("date_from", mode="before")
    @classmethod
    def parse_date_from(cls, value: object) -> object:
        return parse_timestamp(value)

    @field_validator("date_to", mode="before")
    @classmethod
    def parse_date_to(cls, value: object) -> object:
        return parse_timestamp(value, end_of_day=True)

    def criteria(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)

    def matches(self, record: TransactionRecord) -> bool:
        if record.user_id != self.owner_id:
            return False
        if self.type is not None and record.type != self.type:
            return False
        if self.category is not None and record.category != self.category:
            return False
        if self.date_from is not None and record.date < self.date_from:
            return False
        if self.date_to is not None and record.date > self.date_to:
            return False
        return True


class TransactionPage(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[TransactionRecord]
    page: int
    limit: int
    total: int
    pages: int


class Pagination(BaseModel):
    model_config = _OUTPUT_CONFIG

    page: int
    limit: int
    total: int
    pages: int


class TransactionListResult(BaseModel):
    model_config = _OUTPUT_CONFIG

    transactions: list[TransactionOut]
    pagination: Pagination


class TransactionSummary(BaseModel):
    model_config = _OUTPUT_CONFIG

    total_income: JsonDecimal
    total_expense: JsonDecimal
    balance: JsonDecimal
    transaction_count: int


class CategorySpentResult(BaseModel):
    model_config = _OUTPUT_CONFIG

    category: str
    spent: JsonDecimal
    count: int


class MessageResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message: str


# ----------------------------------------------------------------------- users


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > 72:
        raise ValueError("Password must be at most 72 bytes")
    return value


class RegisterRequest(BaseModel):
    model_config = _API_CONFIG

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    model_config = _API_CONFIG

    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class ProfileUpdateRequest(BaseModel):
    model_config = _API_CONFIG

    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    current_password: str | None = None
    new_password: str | None = Field(default=None, min_length=6)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else value

    @field_validator("new_password")
    @classmethod
    def check_password_bytes(cls, value: str | None) -> str | None:
        return _check_password_bytes(value) if value is not None else value


class AccountDeleteRequest(BaseModel):
    model_config = _API_CONFIG

    password: str | None = None


class UserRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID
    name: str
    email: str
    password_hash: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class UserOut(BaseModel):
    model_config = _OUTPUT_CONFIG

    id: UUID
    name: str
    email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuthResult(BaseModel):
    model_config = _OUTPUT_CONFIG

    token: str
    user: UserOut


class ProfileUpdateResult(BaseModel):
    model_config = _OUTPUT_CONFIG

    message: str
    user: UserOut


class DashboardUser(BaseModel):
    model_config = _OUTPUT_CONFIG

    id: UUID
    username: str
    email: str


class DashboardResult(BaseModel):
    model_config = _OUTPUT_CONFIG

    msg: str
    user: DashboardUser


# --------------------------------------------------------------------- budgets


class BudgetCreateRequest(BaseModel):
    model_config = _API_CONFIG

    category: TransactionCategory
    amount: Decimal = Field(gt=0)
    period: BudgetPeriod = BudgetPeriod.MONTHLY

    @field_validator("category", "period", mode="before")
    @classmethod
    def normalize_tokens(cls, value: object) -> object:
        return _storage_token(value)

    @field_validator("category")
    @classmethod
    def require_expense_category(cls, value: TransactionCategory) -> TransactionCategory:
        if value not in EXPENSE_CATEGORIES:
            raise ValueError(f"Budgets can only target expense categories, got '{value.value}'")
        return value


class BudgetRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID
    user_id: UUID
    category: TransactionCategory
    amount: Decimal = Field(gt=0)
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    created_at: datetime | None = None


class BudgetOut(BaseModel):
    model_config = _OUTPUT_CONFIG

    id: UUID
    user_id: UUID
    category: str
    amount: JsonDecimal
    period: str
    created_at: datetime | None = None
    spent: JsonDecimal
    remaining: JsonDecimal
    over_budget: bool
