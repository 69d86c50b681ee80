"""Settings loaded from environment variables (and a local .env, if any)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


def _env(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def _env_path(name: str, default: Optional[Path]) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None:
        return default
    if raw.strip() == "":
        # explicitly empty: console logging only
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    app_env: str = "development"
    host: str = "127.0.0.1"
    port: int = 3000
    api_prefix: str = "/api"
    cors_origins: Tuple[str, ...] = field(default=("http://localhost:4200",))

    log_level: str = "INFO"
    log_dir: Optional[Path] = Path("./logs")

    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 100
    mutation_limit_max_requests: int = 50
    critical_limit_window_seconds: int = 60 * 60
    critical_limit_max_requests: int = 5

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"


def load_settings() -> Settings:
    load_dotenv(override=False)
    defaults = Settings()
    return Settings(
        app_env=_env("APP_ENV", defaults.app_env).strip().lower(),
        host=_env("HOST", defaults.host),
        port=_env_int("PORT", defaults.port),
        api_prefix=_env("API_PREFIX", defaults.api_prefix).rstrip("/"),
        cors_origins=_env_list("CORS_ORIGIN", defaults.cors_origins),
        log_level=_env("LOG_LEVEL", defaults.log_level).upper(),
        log_dir=_env_path("LOG_DIR", defaults.log_dir),
        rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", defaults.rate_limit_window_seconds),
        rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", defaults.rate_limit_max_requests),
        mutation_limit_max_requests=_env_int("MUTATION_LIMIT_MAX_REQUESTS", defaults.mutation_limit_max_requests),
        critical_limit_window_seconds=_env_int(
            "CRITICAL_LIMIT_WINDOW_SECONDS", defaults.critical_limit_window_seconds
        ),
        critical_limit_max_requests=_env_int("CRITICAL_LIMIT_MAX_REQUESTS", defaults.critical_limit_max_requests),
    )
