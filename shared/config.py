"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


_DEV_ENVS = {"dev", "local"}
_TEST_ENVS = {"test", "ci"}
_INSECURE_DEV_JWT_SECRET = "dev-only-jwt-secret-change-me"


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in _DEV_ENVS


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def _get_int_env(name: str, default: int) -> int:
    raw_value = (get_env(name, "") or "").strip()
    if not raw_value:
        return default
    try:
        return int(raw_value)
    except ValueError:
        logger.warning("invalid_int_env name=%s value=%s default=%s", name, raw_value, default)
        return default


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def is_production() -> bool:
    """Return whether the app runs outside dev, local, test and ci environments."""
    return app_env().strip().lower() not in _DEV_ENVS | _TEST_ENVS


def cors_allow_origins() -> list[str]:
    """Return CORS allowed origins from env with safe environment defaults."""
    raw_origins = get_env("CORS_ALLOW_ORIGINS", "") or ""
    parsed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    if parsed_origins:
        return parsed_origins

    if app_env().strip().lower() in _DEV_ENVS:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]

    ui_origin = (get_env("UI_ORIGIN", "") or "").strip()
    if ui_origin:
        return [ui_origin]

    logger.warning(
        "cors_allow_origins_empty_in_prod app_env=%s; define CORS_ALLOW_ORIGINS or UI_ORIGIN",
        app_env(),
    )

    return []


def supabase_url() -> str | None:
    """Return Supabase URL when configured."""
    return get_env("SUPABASE_URL")


def supabase_service_role_key() -> str | None:
    """Return Supabase service role key when configured."""
    return get_env("SUPABASE_SERVICE_ROLE_KEY")


def jwt_secret() -> str:
    """Return the token signing secret.

    Outside production an insecure development secret is used when
    `JWT_SECRET` is unset; in production a missing secret is a startup error.
    """
    secret = (get_env("JWT_SECRET", "") or "").strip()
    if secret:
        return secret

    if is_production():
        raise RuntimeError("JWT_SECRET must be set in production")

    logger.warning("jwt_secret_missing app_env=%s; using insecure development secret", app_env())
    return _INSECURE_DEV_JWT_SECRET


def jwt_algorithm() -> str:
    """Return the token signing algorithm."""
    return (get_env("JWT_ALGORITHM", "HS256") or "HS256").strip() or "HS256"


def jwt_expires_minutes() -> int:
    """Return access token lifetime in minutes (defaults to 7 days)."""
    value = _get_int_env("JWT_EXPIRES_MINUTES", 7 * 24 * 60)
    return value if value > 0 else 7 * 24 * 60


def bcrypt_rounds() -> int:
    """Return the bcrypt cost factor, clamped to the range bcrypt accepts."""
    return min(max(_get_int_env("BCRYPT_ROUNDS", 12), 4), 31)


def default_page_limit() -> int:
    """Return the page size used when a list request omits `limit`."""
    value = _get_int_env("DEFAULT_PAGE_LIMIT", 50)
    return value if value > 0 else 50


def max_page_limit() -> int:
    """Return the largest page size a list request may ask for."""
    value = _get_int_env("MAX_PAGE_LIMIT", 500)
    return value if value > 0 else 500
