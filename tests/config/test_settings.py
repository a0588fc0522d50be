"""Tests for settings parsing and production safeguards."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from src.config.settings import DEFAULT_DURATION_SECONDS, DEV_JWT_SECRET, Settings, parse_duration_to_seconds

STRONG_SECRET = "x" * 48


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "development",
        "database_url": "sqlite+aiosqlite:///:memory:",
        "jwt_secret": STRONG_SECRET,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestParseDuration:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("45s", 45), ("15m", 900), ("12h", 43200), ("7d", 604800), ("30d", 2592000), (" 2h ", 7200)],
    )
    def test_valid_durations(self, value, expected):
        assert parse_duration_to_seconds(value) == expected

    @pytest.mark.parametrize("value", ["", "7", "d7", "7w", "-1d", "1.5h", "seven days"])
    def test_unparseable_falls_back_to_thirty_days(self, value):
        assert parse_duration_to_seconds(value) == DEFAULT_DURATION_SECONDS


class TestSettings:
    def test_token_lifetimes(self):
        settings = make_settings(jwt_expires_in="15m", jwt_refresh_expires_in="14d")
        assert settings.access_token_ttl == timedelta(minutes=15)
        assert settings.refresh_token_ttl == timedelta(days=14)

    def test_environment_is_validated(self):
        with pytest.raises(ValidationError):
            make_settings(environment="qa")

    def test_environment_is_case_insensitive(self):
        assert make_settings(environment="Staging").environment == "staging"

    def test_rate_limits_off_in_development_by_default(self):
        assert make_settings().rate_limit_enabled is False

    def test_rate_limit_override_flag(self):
        assert make_settings(rate_limit_enforce=True).rate_limit_enabled is True

    def test_service_access_aliases(self, monkeypatch):
        monkeypatch.setenv("CRONOSTUDIO_WEBHOOK_SECRET", "from-env")
        monkeypatch.setenv("CRONOSTUDIO_SERVICE_USER_EMAIL", "bot@example.com")
        settings = make_settings()
        assert settings.webhook_secret == "from-env"
        assert settings.service_user_email == "bot@example.com"


class TestProductionSafeguards:
    def production(self, **overrides) -> Settings:
        values = {
            "environment": "production",
            "redis_url": "redis://localhost:6379/0",
            "cors_allow_origins": "https://app.cronostudio.com",
        }
        values.update(overrides)
        return make_settings(**values)

    def test_valid_production_settings(self):
        settings = self.production()
        assert settings.is_production
        assert settings.rate_limit_enabled

    def test_development_secret_rejected(self):
        with pytest.raises(ValidationError, match="JWT_SECRET must be set"):
            self.production(jwt_secret=DEV_JWT_SECRET)

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError, match="at least 32 characters"):
            self.production(jwt_secret="short-secret")

    def test_redis_required(self):
        with pytest.raises(ValidationError, match="REDIS_URL"):
            self.production(redis_url=None)

    def test_cors_configuration_follows_environment(self):
        config = self.production().get_cors_configuration()
        assert config.allow_origins == ["https://app.cronostudio.com"]
