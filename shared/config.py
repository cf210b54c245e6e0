"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


_FALSE_VALUES = {"0", "false", "no"}
_DEFAULT_SEED_DATA_URL = "https://s3.amazonaws.com/roxiler.com/product_transaction.json"
_MONTH_MATCH_MODES = {"calendar", "substring"}
_SOLD_ITEMS_POLICIES = {"all", "priced"}


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in {"dev", "local"}


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def _get_positive_int(name: str, default: int) -> int:
    raw_value = (get_env(name, "") or "").strip()
    if not raw_value:
        return default
    try:
        value = int(raw_value)
    except ValueError:
        logger.warning("config_invalid_int name=%s value=%s default=%s", name, raw_value, default)
        return default
    if value <= 0:
        logger.warning("config_invalid_int name=%s value=%s default=%s", name, raw_value, default)
        return default
    return value


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def _is_test_env() -> bool:
    return app_env().strip().lower() in {"test", "ci"}


def host() -> str:
    """Return the interface the HTTP server binds to."""
    return (get_env("HOST", "127.0.0.1") or "127.0.0.1").strip() or "127.0.0.1"


def port() -> int:
    """Return the HTTP port, defaulting to 3000."""
    return _get_positive_int("PORT", 3000)


def log_level() -> str:
    """Return the root log level name."""
    return (get_env("LOG_LEVEL", "INFO") or "INFO").strip().upper() or "INFO"


def cors_allow_origins() -> list[str]:
    """Return CORS allowed origins from env with safe environment defaults."""
    raw_origins = get_env("CORS_ALLOW_ORIGINS", "") or ""
    parsed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    if parsed_origins:
        return parsed_origins

    if app_env().strip().lower() in {"dev", "local"}:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]

    ui_origin = (get_env("UI_ORIGIN", "") or "").strip()
    if ui_origin:
        return [ui_origin]

    logger.warning(
        "cors_allow_origins_empty_in_prod app_env=%s; define CORS_ALLOW_ORIGINS or UI_ORIGIN",
        app_env(),
    )

    return []


def seed_data_url() -> str:
    """Return the remote dataset URL used to seed the store."""
    return (get_env("SEED_DATA_URL", "") or "").strip() or _DEFAULT_SEED_DATA_URL


def seed_on_startup() -> bool:
    """Return whether the store is seeded when the app starts."""
    if _is_test_env():
        return False

    raw_value = (get_env("SEED_ON_STARTUP", "") or "").strip().lower()
    if not raw_value:
        return True
    return raw_value not in _FALSE_VALUES


def seed_timeout_seconds() -> int:
    """Return the timeout for the seed dataset download."""
    return _get_positive_int("SEED_TIMEOUT_SECONDS", 30)


def month_match_mode() -> str:
    """Return how the month filter is applied: `calendar` or `substring`."""
    raw_value = (get_env("MONTH_MATCH_MODE", "") or "").strip().lower()
    if not raw_value:
        return "calendar"
    if raw_value not in _MONTH_MATCH_MODES:
        logger.warning("config_invalid_month_match_mode value=%s default=calendar", raw_value)
        return "calendar"
    return raw_value


def sold_items_policy() -> str:
    """Return which matches count as sold: `all` or `priced`."""
    raw_value = (get_env("SOLD_ITEMS_POLICY", "") or "").strip().lower()
    if not raw_value:
        return "all"
    if raw_value not in _SOLD_ITEMS_POLICIES:
        logger.warning("config_invalid_sold_items_policy value=%s default=all", raw_value)
        return "all"
    return raw_value


def supabase_url() -> str | None:
    """Return Supabase URL when configured."""
    return get_env("SUPABASE_URL")


def supabase_service_role_key() -> str | None:
    """Return Supabase service role key when configured."""
    return get_env("SUPABASE_SERVICE_ROLE_KEY")
