from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
IssuanceMode = Literal["inline", "queue"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
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
    certificate_issuance: IssuanceMode = "inline"
    progress_cache_ttl: int = 300

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def queues_issuance(self) -> bool:
        return self.certificate_issuance == "queue"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false")
    port_raw = _getenv("PORT", "8000")
    issuance_raw = _getenv("CERTIFICATE_ISSUANCE", "inline").lower()
    cache_ttl_raw = _getenv("PROGRESS_CACHE_TTL", "300")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if issuance_raw not in ("inline", "queue"):
        raise ValueError(
            f"CERTIFICATE_ISSUANCE must be inline|queue (got {issuance_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        progress_cache_ttl = int(cache_ttl_raw)
    except ValueError:
        raise ValueError(
            f"PROGRESS_CACHE_TTL must be an integer (got {cache_ttl_raw!r})"
        ) from None
    if progress_cache_ttl <= 0:
        raise ValueError(
            f"PROGRESS_CACHE_TTL must be positive (got {progress_cache_ttl})"
        )

    log_json = _parse_bool("LOG_JSON", log_json_raw)
    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        certificate_issuance=issuance_raw,
        progress_cache_ttl=progress_cache_ttl,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
