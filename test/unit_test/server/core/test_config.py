"""Unit tests for server configuration settings model.

Tests verify that the Settings model binds environment variables, that the
grouped configuration views are derived correctly and that the values in
``.env.example`` are accepted.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from indaba.server.core.config import (
    ActivityFeedConfig,
    AuthConfig,
    CORSConfig,
    LoggingConfig,
    OpenAIConfig,
    Settings,
)

SECRET = "x" * 40


@pytest.fixture
def env_example_vars() -> dict[str, str]:
    """Parse the repository's .env.example file."""
    path = Path(__file__).resolve().parents[4] / ".env.example"
    env_vars = {}
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            key, value = line.split("=", 1)
            env_vars[key.strip()] = value.strip()
    return env_vars


def _settings(**env) -> Settings:
    return Settings(_env_file=None, **env)


class TestSettingsBinding:
    """Test Settings model environment variable binding."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("BCRYPT_ROUNDS", raising=False)
        settings = _settings(JWT_SECRET=SECRET)

        assert settings.server_port == 8000
        assert settings.database_url == "sqlite+aiosqlite:///./indaba.db"
        assert settings.jwt_algorithm == "HS256"
        assert settings.jwt_expire_days == 30
        assert settings.bcrypt_rounds == 10
        assert settings.openai_api_key is None
        assert settings.activity_keepalive_seconds == 15.0

    def test_environment_variables_bind(self, monkeypatch):
        monkeypatch.setenv("INDABA_SERVER_PORT", "9001")
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/indaba")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("CORS_ORIGINS", '["https://app.example.com"]')
        settings = _settings(JWT_SECRET=SECRET)

        assert settings.server_port == 9001
        assert settings.database_url == "postgresql://u:p@db/indaba"
        assert settings.openai_api_key == "sk-test"
        assert settings.cors_origins == ["https://app.example.com"]

    def test_short_jwt_secret_rejected(self):
        with pytest.raises(ValidationError):
            _settings(JWT_SECRET="too-short")

    def test_activity_feed_bounds(self):
        with pytest.raises(ValidationError):
            _settings(JWT_SECRET=SECRET, ACTIVITY_QUEUE_SIZE=0)
        with pytest.raises(ValidationError):
            _settings(JWT_SECRET=SECRET, ACTIVITY_KEEPALIVE_SECONDS=0)

    def test_env_example_values_are_valid(self, env_example_vars, monkeypatch):
        for key, value in env_example_vars.items():
            monkeypatch.setenv(key, value)
        settings = _settings()

        assert settings.jwt_secret == env_example_vars["JWT_SECRET"]
        assert settings.totp_issuer == "Indaba Care"
        assert settings.cors_origins == ["*"]


class TestGroupedConfig:
    def test_grouped_views(self):
        settings = _settings(
            JWT_SECRET=SECRET,
            BCRYPT_ROUNDS=5,
            OPENAI_API_KEY="sk-test",
            OPENAI_MODEL="gpt-4o",
            ACTIVITY_QUEUE_SIZE=7,
            LOG_FORMAT="json",
            ENABLE_FILE_LOGGING="true",
        )

        assert isinstance(settings.auth, AuthConfig)
        assert settings.auth.jwt_secret == SECRET
        assert settings.auth.bcrypt_rounds == 5
        assert isinstance(settings.openai, OpenAIConfig)
        assert settings.openai.api_key == "sk-test"
        assert settings.openai.model == "gpt-4o"
        assert isinstance(settings.cors, CORSConfig)
        assert settings.cors.allow_credentials is True
        assert isinstance(settings.activity_feed, ActivityFeedConfig)
        assert settings.activity_feed.queue_size == 7
        assert isinstance(settings.logging, LoggingConfig)
        assert settings.logging.format == "json"
        assert settings.logging.enable_file is True
        assert settings.logging.level == "INFO"

    def test_unknown_log_format_rejected(self):
        with pytest.raises(ValidationError):
            _settings(JWT_SECRET=SECRET, LOG_FORMAT="xml")
