"""Helpers building `ServiceError` values at the service boundary."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from shared.models import ErrorCode, ServiceError


def _format_location(location: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in location)


def format_validation_errors(errors: Sequence[Mapping[str, Any]]) -> str:
    """Join pydantic error entries into one "loc: msg; loc: msg" line."""

    messages = []
    for error in errors:
        location = _format_location(tuple(error.get("loc", ())))
        message = str(error.get("msg", "Invalid value"))
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"


def validation_error(exc: ValidationError) -> ServiceError:
    errors = exc.errors(include_url=False, include_context=False, include_input=False)
    return ServiceError(
        code=ErrorCode.VALIDATION_ERROR,
        message=format_validation_errors(errors),
        details={"validation_errors": errors},
    )


def invalid(message: str) -> ServiceError:
    return ServiceError(code=ErrorCode.VALIDATION_ERROR, message=message)


def not_found(message: str) -> ServiceError:
    return ServiceError(code=ErrorCode.NOT_FOUND, message=message)


def unauthorized(message: str) -> ServiceError:
    return ServiceError(code=ErrorCode.UNAUTHORIZED, message=message)


def conflict(message: str) -> ServiceError:
    return ServiceError(code=ErrorCode.CONFLICT, message=message)
