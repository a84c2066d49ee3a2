from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getint(name: str, default: str) -> int:
    raw = _getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    certificate_valid_days: int
    area_badge_keyword: str
    jwt_public_key_file: str | None = None

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

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getint("PORT", "8000")
    certificate_valid_days = _getint("CERTIFICATE_VALID_DAYS", "730")
    if certificate_valid_days <= 0:
        raise ValueError(
            f"CERTIFICATE_VALID_DAYS must be positive (got {certificate_valid_days})"
        )

    area_badge_keyword = _getenv("AREA_BADGE_KEYWORD", "abu dhabi").lower()
    if not area_badge_keyword:
        raise ValueError("AREA_BADGE_KEYWORD must be non-empty")

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv("LOG_JSON", "false").lower() in _TRUTHY,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        certificate_valid_days=certificate_valid_days,
        area_badge_keyword=area_badge_keyword,
        jwt_public_key_file=_getenv("JWT_PUBLIC_KEY_FILE", "") or None,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
