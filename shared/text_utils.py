"""Conversions between display text and stored enum tokens."""

from __future__ import annotations

import re


_WHITESPACE_RUN = re.compile(r"\s+")


def _capitalize_first(word: str) -> str:
    return word[:1].upper() + word[1:]


def to_storage_form(text: str | None) -> str | None:
    """Return the lowercase hyphenated token for a display value.

    `"Credit Card"` becomes `"credit-card"`. Empty or missing input is
    returned unchanged.
    """

    if not text:
        return text
    return _WHITESPACE_RUN.sub("-", text.lower())


def to_display_form(token: str | None) -> str | None:
    """Return the display text for a stored token.

    Only the first character of each hyphen-separated segment is changed,
    so `"credit-card"` becomes `"Credit Card"`. A user-typed hyphen is not
    preserved: `"Other-Income"` is stored as `"other-income"` and comes back
    as `"Other Income"`.
    """

    if not token:
        return token
    return " ".join(_capitalize_first(segment) for segment in token.split("-"))


def to_proper_case(text: str | None) -> str | None:
    """Lowercase a free-text value, then capitalize each space-separated word."""

    if not text:
        return text
    return " ".join(_capitalize_first(word) for word in text.lower().split(" "))
