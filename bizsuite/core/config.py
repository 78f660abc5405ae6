from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    # Role preview for UI debugging. Never allowed together with APP_ENV=prod.
    dev_mode: bool = False
    # Platform owner account; other admins cannot demote or remove it.
    protected_account_id: str | None = None
    resend_api_key: str | None = None
    email_sender: str = "BizSuite <notifications@bizsuite.local>"
    email_api_url: str = "https://api.resend.com/emails"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    log_json = _getbool("LOG_JSON", False)

    # Preview defaults to on for local development only.
    dev_mode = _getbool("DEV_MODE", app_env_raw == "dev")
    if dev_mode and app_env_raw == "prod":
        raise ValueError("DEV_MODE cannot be enabled when APP_ENV=prod")

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        dev_mode=dev_mode,
        protected_account_id=_getenv("PROTECTED_ACCOUNT_ID", "") or None,
        resend_api_key=_getenv("RESEND_API_KEY", "") or None,
        email_sender=_getenv(
            "EMAIL_SENDER", "BizSuite <notifications@bizsuite.local>"
        ),
        email_api_url=_getenv("EMAIL_API_URL", "https://api.resend.com/emails"),
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
