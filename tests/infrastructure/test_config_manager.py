"""Tests for ConfigManager, ServerConfig and RetryConfig."""

import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.domain.guardrails import RetryPolicy
from src.infrastructure.config_manager import ConfigManager, RetryConfig, ServerConfig
from src.infrastructure.settings import Settings

QB_VARS = [
    "QB_SERVER_URL", "QB_SERVER_TIMEOUT", "QB_AUTH_TOKEN",
    "QB_RETRY_MAX_ATTEMPTS", "QB_RETRY_BASE_DELAY", "QB_RETRY_MAX_DELAY", "QB_RETRY_BACKOFF_MULTIPLIER",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in QB_VARS:
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "missing.env"


class TestServerConfig:
    """Test suite for ServerConfig validation."""

    def test_trailing_slash_removed(self):
        assert ServerConfig(base_url="https://fhir.example.org/R4/").base_url == "https://fhir.example.org/R4"

    def test_non_http_scheme_rejected(self):
        with pytest.raises(ValidationError):
            ServerConfig(base_url="ftp://fhir.example.org")

    def test_token_is_secret(self):
        config = ServerConfig(base_url="https://fhir.example.org", auth_token="s3cret")

        assert "s3cret" not in repr(config)
        assert config.auth_headers() == {"Authorization": "Bearer s3cret"}

    def test_no_token_no_header(self):
        assert ServerConfig(base_url="http://localhost:8080/fhir").auth_headers() == {}


class TestConfigManagerEnvironment:
    """Test suite for environment-based configuration."""

    def test_from_environment(self, monkeypatch, clean_env):
        monkeypatch.setenv("QB_SERVER_URL", "https://fhir.example.org/R4")
        monkeypatch.setenv("QB_SERVER_TIMEOUT", "12.5")
        monkeypatch.setenv("QB_RETRY_MAX_ATTEMPTS", "5")

        config = ConfigManager.from_environment(env_file=str(clean_env))

        assert config.get_server_config().timeout == 12.5
        assert config.get_retry_config().max_attempts == 5
        assert config.get_retry_config().base_delay == 1.0

    def test_missing_server_url(self, clean_env):
        config = ConfigManager.from_environment(env_file=str(clean_env))

        with pytest.raises(ValidationError):
            config.get_server_config()

    def test_env_file_loaded_when_present(self, monkeypatch, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("QB_SERVER_URL=https://fhir.example.org\n")

        with patch("src.infrastructure.config_manager.load_dotenv") as load_dotenv:
            ConfigManager.from_environment(env_file=str(env_file))

        load_dotenv.assert_called_once_with(env_file)

    def test_env_file_skipped_when_absent(self, clean_env):
        with patch("src.infrastructure.config_manager.load_dotenv") as load_dotenv:
            ConfigManager.from_environment(env_file=str(clean_env))

        load_dotenv.assert_not_called()


class TestConfigManagerFile:
    """Test suite for file-based configuration."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "server": {"base_url": "https://fhir.example.org", "timeout": 10},
            "retry": {"max_attempts": 4, "base_delay": 0.5},
        }))
        path.chmod(0o600)

        config = ConfigManager.from_file(str(path))

        assert config.get_server_config().timeout == 10
        assert config.get_retry_config().max_attempts == 4
        assert config.get("server.base_url") == "https://fhir.example.org"
        assert config.get("server.missing", "fallback") == "fallback"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager.from_file(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with pytest.raises(ValueError):
            ConfigManager.from_file(str(path))


class TestRetryConfig:
    """Test suite for RetryConfig."""

    def test_to_policy(self):
        policy = RetryConfig(max_attempts=5, base_delay=2.0, max_delay=15.0).to_policy()

        assert isinstance(policy, RetryPolicy)
        assert (policy.max_attempts, policy.base_delay, policy.max_delay) == (5, 2.0, 15.0)

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=0)


class TestSettings:
    """Test suite for Settings."""

    def test_lazy_configs(self, monkeypatch):
        monkeypatch.setenv("QB_LOG_LEVEL", "DEBUG")
        manager = ConfigManager({"server": {"base_url": "https://fhir.example.org"}})

        settings = Settings(config_manager=manager)

        assert settings.log_level == "DEBUG"
        assert settings.server_config.base_url == "https://fhir.example.org"
        assert settings.retry_config.max_attempts == 3
