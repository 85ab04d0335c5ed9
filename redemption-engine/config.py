"""
Application settings.

Values are read from the environment after loading the `.env` file that sits
in the redemption-engine directory. Nothing here touches the network.

Environment variables:
- DATA_BACKEND: "supabase" (default) or "memory" for in-process stores
- SUPABASE_URL / SUPABASE_KEY: required for the supabase backend; use a
  server-side (service role) key only on the backend
- LOCKOUT_THRESHOLD, LOCKOUT_WINDOW_MINUTES, LOCKOUT_DURATION_MINUTES
- BUSINESS_TIMEZONE: IANA zone used for daily/weekly/monthly resets and offer
  schedules
- CURRENCY_SYMBOL, BIRTHDAY_GRANT_VALIDITY_DAYS, DATASTORE_MAX_RETRIES, LOG_LEVEL
- CORS_ORIGINS: comma-separated origins allowed to call the API ("*" for any)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from domain.lockout import LockoutPolicy

_ENV_PATH = Path(__file__).parent / ".env"

_BACKENDS = ("supabase", "memory")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class Settings:
    data_backend: str = "supabase"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    lockout_threshold: int = 5
    lockout_window_minutes: int = 15
    lockout_duration_minutes: int = 30
    business_timezone: str = "UTC"
    currency_symbol: str = "€"
    birthday_grant_validity_days: int = 30
    datastore_max_retries: int = 2
    log_level: str = "INFO"
    cors_origins: str = "*"

    def __post_init__(self) -> None:
        if self.data_backend not in _BACKENDS:
            raise RuntimeError(
                f"DATA_BACKEND must be one of {', '.join(_BACKENDS)}, got {self.data_backend!r}"
            )
        try:
            ZoneInfo(self.business_timezone)
        except ZoneInfoNotFoundError as exc:
            raise RuntimeError(f"Unknown BUSINESS_TIMEZONE: {self.business_timezone!r}") from exc

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)

    @property
    def lockout_policy(self) -> LockoutPolicy:
        return LockoutPolicy(
            threshold=self.lockout_threshold,
            window=timedelta(minutes=self.lockout_window_minutes),
            duration=timedelta(minutes=self.lockout_duration_minutes),
        )

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def birthday_grant_validity(self) -> timedelta:
        return timedelta(days=self.birthday_grant_validity_days)

    def require_supabase_credentials(self) -> tuple[str, str]:
        if not self.supabase_url:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_URL. "
                "Set SUPABASE_URL to your Supabase project URL."
            )
        if not self.supabase_key:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_KEY. "
                "Set SUPABASE_KEY to your Supabase API key."
            )
        return self.supabase_url, self.supabase_key


def load_settings() -> Settings:
    """Build Settings from the environment (and `.env`, without overriding it)."""

    load_dotenv(dotenv_path=_ENV_PATH)
    return Settings(
        data_backend=os.getenv("DATA_BACKEND", "supabase").strip().lower(),
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        lockout_threshold=_int_env("LOCKOUT_THRESHOLD", 5),
        lockout_window_minutes=_int_env("LOCKOUT_WINDOW_MINUTES", 15),
        lockout_duration_minutes=_int_env("LOCKOUT_DURATION_MINUTES", 30),
        business_timezone=os.getenv("BUSINESS_TIMEZONE", "UTC"),
        currency_symbol=os.getenv("CURRENCY_SYMBOL", "€"),
        birthday_grant_validity_days=_int_env("BIRTHDAY_GRANT_VALIDITY_DAYS", 30),
        datastore_max_retries=_int_env("DATASTORE_MAX_RETRIES", 2),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=os.getenv("CORS_ORIGINS", "*"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


__all__ = ["Settings", "get_settings", "load_settings"]
