"""
Tests for `config.py`.

Covers contract rules:
- Environment variables override defaults; integers are validated.
- CORS_ORIGINS is a comma-separated list.
- Unknown backends and timezones are rejected at load time.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from config import Settings, load_settings


def test_cors_origin_list() -> None:
    settings = Settings(cors_origins=" https://a.example.com, ,https://b.example.com ")

    assert settings.cors_origin_list == ["https://a.example.com", "https://b.example.com"]
    assert Settings().cors_origin_list == ["*"]


def test_load_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("DATA_BACKEND", "Memory")
    monkeypatch.setenv("LOCKOUT_THRESHOLD", "3")
    monkeypatch.setenv("BUSINESS_TIMEZONE", "Europe/Athens")
    monkeypatch.setenv("CORS_ORIGINS", "https://dashboard.example.com")

    settings = load_settings()

    assert settings.data_backend == "memory"
    assert settings.lockout_policy.threshold == 3
    assert settings.timezone.key == "Europe/Athens"
    assert settings.cors_origin_list == ["https://dashboard.example.com"]
    assert settings.birthday_grant_validity == timedelta(days=settings.birthday_grant_validity_days)


def test_non_integer_setting_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("LOCKOUT_THRESHOLD", "five")

    with pytest.raises(RuntimeError, match="LOCKOUT_THRESHOLD"):
        load_settings()


@pytest.mark.parametrize(
    "overrides",
    [{"data_backend": "mysql"}, {"business_timezone": "Mars/Olympus"}],
)
def test_invalid_settings_are_rejected(overrides) -> None:
    with pytest.raises(RuntimeError):
        Settings(**overrides)


def test_missing_supabase_credentials() -> None:
    with pytest.raises(RuntimeError, match="SUPABASE_URL"):
        Settings().require_supabase_credentials()
