"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_credentials()``
startup gate that enforces secret presence in production mode.

IMPORTANT: This module has ZERO imports from the ``collab`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

# HMAC-SHA256 keys shorter than this are rejected in production.
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks of the signing secret and
    provider keys in logs or error output.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    http_port: int = 8000
    sentry_dsn: str = ""

    # -- Storage ---------------------------------------------------------------
    db_path: Path = Path("data/collab.db")
    store_timeout_seconds: float = 5.0

    # -- Action tokens ---------------------------------------------------------
    action_token_secret: SecretStr = SecretStr("")
    action_token_ttl_days: int = 7
    public_base_url: str = "http://localhost:5173"
    action_result_url: str = ""

    # -- Request lifecycle -----------------------------------------------------
    request_expiry_days: int = 30
    expiry_sweep_interval_seconds: int = 3600

    # -- Notifier --------------------------------------------------------------
    notifier_api_url: str = ""
    notifier_api_key: SecretStr = SecretStr("")
    notifier_timeout_seconds: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Enforce secret presence at startup.

    In **production** mode (``settings.production is True``), the application
    exits with a clear error block if the token secret or notifier
    credentials are missing.

    In **development** mode, each problem is logged as a warning and the
    application continues to start.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    secret = settings.action_token_secret.get_secret_value()
    if not secret:
        errors.append("ACTION_TOKEN_SECRET is empty or not set")
    elif len(secret) < MIN_SECRET_LENGTH:
        errors.append(f"ACTION_TOKEN_SECRET is shorter than {MIN_SECRET_LENGTH} characters")

    if not settings.notifier_api_url:
        errors.append("NOTIFIER_API_URL is empty or not set")

    if not settings.notifier_api_key.get_secret_value():
        errors.append("NOTIFIER_API_KEY is empty or not set")

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Missing required credentials for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_missing_dev", detail=err)
