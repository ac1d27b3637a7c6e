"""Bearer token issuing and verification for API endpoints."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from uuid import UUID

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from backend.repositories.users_repository import UsersRepository
from shared.models import Principal


logger = logging.getLogger(__name__)


class AuthFailure(str, Enum):
    MISSING_TOKEN = "missing_token"
    MALFORMED_TOKEN = "malformed_token"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    PRINCIPAL_NOT_FOUND = "principal_not_found"


_FAILURE_MESSAGES: dict[AuthFailure, str] = {
    AuthFailure.MISSING_TOKEN: "No token, authorization denied",
    AuthFailure.MALFORMED_TOKEN: "Invalid token format",
    AuthFailure.INVALID_SIGNATURE: "Invalid token",
    AuthFailure.EXPIRED: "Token expired",
    AuthFailure.PRINCIPAL_NOT_FOUND: "User not found",
}


class UnauthorizedError(Exception):
    """Raised when a bearer token cannot be turned into a principal."""

    def __init__(self, reason: AuthFailure) -> None:
        super().__init__(_FAILURE_MESSAGES[reason])
        self.reason = reason

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self.reason]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class TokenSettings:
    secret: str
    algorithm: str = "HS256"
    expires_minutes: int = 7 * 24 * 60


class TokenService:
    """Issues signed access tokens and resolves them back to a user id."""

    def __init__(self, settings: TokenSettings, *, now: Callable[[], datetime] = _utcnow) -> None:
        self._settings = settings
        self._now = now

    def issue_token(self, user_id: UUID) -> str:
        issued_at = self._now()
        claims = {
            "sub": str(user_id),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(minutes=self._settings.expires_minutes)).timestamp()),
        }
        return jwt.encode(claims, self._settings.secret, algorithm=self._settings.algorithm)

    def decode_subject(self, token: str) -> UUID:
        try:
            jwt.get_unverified_header(token)
        except JWTError as exc:
            raise UnauthorizedError(AuthFailure.MALFORMED_TOKEN) from exc

        try:
            claims = jwt.decode(token, self._settings.secret, algorithms=[self._settings.algorithm])
        except ExpiredSignatureError as exc:
            raise UnauthorizedError(AuthFailure.EXPIRED) from exc
        except JWTError as exc:
            raise UnauthorizedError(AuthFailure.INVALID_SIGNATURE) from exc

        subject = claims.get("sub")
        try:
            return UUID(str(subject))
        except ValueError as exc:
            raise UnauthorizedError(AuthFailure.MALFORMED_TOKEN) from exc


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise UnauthorizedError(AuthFailure.MISSING_TOKEN)
    prefix = "Bearer "
    if not authorization.startswith(prefix):
        raise UnauthorizedError(AuthFailure.MALFORMED_TOKEN)
    token = authorization[len(prefix) :].strip()
    if not token:
        raise UnauthorizedError(AuthFailure.MALFORMED_TOKEN)
    return token


class CredentialVerifier:
    """Resolves an `Authorization` header value to the authenticated principal."""

    def __init__(self, *, token_service: TokenService, users_repository: UsersRepository) -> None:
        self._token_service = token_service
        self._users_repository = users_repository

    def verify(self, authorization: str | None) -> Principal:
        try:
            token = extract_bearer_token(authorization)
            user_id = self._token_service.decode_subject(token)
        except UnauthorizedError as exc:
            logger.info("auth_rejected reason=%s", exc.reason.value)
            raise

        user = self._users_repository.get_user(user_id)
        if user is None:
            logger.info("auth_rejected reason=%s user_id=%s", AuthFailure.PRINCIPAL_NOT_FOUND.value, user_id)
            raise UnauthorizedError(AuthFailure.PRINCIPAL_NOT_FOUND)
        return Principal(id=user.id, name=user.name, email=user.email)
