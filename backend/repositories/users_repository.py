"""Repository adapters for user accounts."""

from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any, Protocol
from uuid import UUID

from backend.db.supabase_client import SupabaseClient
from shared.models import UserRecord


class DuplicateEmailError(ValueError):
    """Raised when an email is already registered to another user."""


class UsersRepository(Protocol):
    def get_user(self, user_id: UUID) -> UserRecord | None:
        """Return one user by id."""

    def get_user_by_email(self, email: str) -> UserRecord | None:
        """Return one user by lowercase email."""

    def insert_user(self, record: UserRecord) -> UserRecord:
        """Create a user; raises DuplicateEmailError when the email is taken."""

    def update_user(self, user_id: UUID, changes: dict[str, Any]) -> UserRecord | None:
        """Apply column changes to one user; None when the user is gone."""

    def delete_user(self, user_id: UUID) -> bool:
        """Delete one user and return whether a row was removed."""


class InMemoryUsersRepository:
    """In-memory users repository used by tests/dev."""

    def __init__(self) -> None:
        self._users: dict[UUID, UserRecord] = {}
        self._lock = Lock()

    def _email_taken(self, email: str, *, except_id: UUID | None = None) -> bool:
        return any(
            user.email == email.lower() and user.id != except_id for user in self._users.values()
        )

    def get_user(self, user_id: UUID) -> UserRecord | None:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> UserRecord | None:
        normalized_email = email.lower()
        with self._lock:
            for user in self._users.values():
                if user.email == normalized_email:
                    return user
        return None

    def insert_user(self, record: UserRecord) -> UserRecord:
        with self._lock:
            if self._email_taken(record.email):
                raise DuplicateEmailError("Email already registered")
            self._users[record.id] = record
        return record

    def update_user(self, user_id: UUID, changes: dict[str, Any]) -> UserRecord | None:
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                return None
            email = changes.get("email")
            if isinstance(email, str) and self._email_taken(email, except_id=user_id):
                raise DuplicateEmailError("Email already registered")
            updated = UserRecord.model_validate({**current.model_dump(), **changes})
            self._users[user_id] = updated
        return updated

    def delete_user(self, user_id: UUID) -> bool:
        with self._lock:
            return self._users.pop(user_id, None) is not None


_TABLE = "users"
_COLUMNS = "id,name,email,password_hash,created_at,updated_at"


def _is_unique_violation(exc: RuntimeError) -> bool:
    message = str(exc)
    return "status 409" in message or "23505" in message


class SupabaseUsersRepository:
    """Supabase repository over the `public.users` table."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def _get_one(self, column: str, value: str) -> UserRecord | None:
        rows, _ = self._client.get_rows(
            table=_TABLE,
            query={"select": _COLUMNS, column: f"eq.{value}", "limit": 1},
            with_count=False,
        )
        if not rows:
            return None
        return UserRecord.model_validate(rows[0])

    def get_user(self, user_id: UUID) -> UserRecord | None:
        return self._get_one("id", str(user_id))

    def get_user_by_email(self, email: str) -> UserRecord | None:
        return self._get_one("email", email.lower())

    def insert_user(self, record: UserRecord) -> UserRecord:
        try:
            rows = self._client.post_rows(table=_TABLE, payload=record.model_dump(mode="json"))
        except RuntimeError as exc:
            if _is_unique_violation(exc):
                raise DuplicateEmailError("Email already registered") from exc
            raise
        if not rows:
            raise RuntimeError("Supabase did not return created user")
        return UserRecord.model_validate(rows[0])

    def update_user(self, user_id: UUID, changes: dict[str, Any]) -> UserRecord | None:
        payload = {
            key: value.isoformat() if isinstance(value, datetime) else value
            for key, value in changes.items()
        }
        try:
            rows = self._client.patch_rows(
                table=_TABLE,
                query={"id": f"eq.{user_id}", "select": _COLUMNS},
                payload=payload,
            )
        except RuntimeError as exc:
            if _is_unique_violation(exc):
                raise DuplicateEmailError("Email already registered") from exc
            raise
        if not rows:
            return None
        return UserRecord.model_validate(rows[0])

    def delete_user(self, user_id: UUID) -> bool:
        rows = self._client.delete_rows(
            table=_TABLE,
            query={"id": f"eq.{user_id}", "select": "id"},
        )
        return bool(rows)
