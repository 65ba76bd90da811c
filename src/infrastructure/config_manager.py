"""Configuration Manager for the FHIR Server Connection.

This module loads the settings the persistence layer needs: where the FHIR
server lives, how to authenticate, and how aggressively to retry failed
saves.

Security Impact:
    - Auth tokens are stored as SecretStr and never logged
    - Base URLs are restricted to http/https
    - Configuration is validated before use (fail fast)

Architecture:
    - Infrastructure layer, isolated from the domain core
    - Type-safe configuration using Pydantic models
    - Sources: environment variables (``QB_*``, optional ``.env``) or a JSON file
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator

from src.domain.guardrails import RetryPolicy

logger = logging.getLogger(__name__)

ENV_PREFIX = "QB_"


class ServerConfig(BaseModel):
    """FHIR server connection settings.

    Parameters:
        base_url: Server base URL, e.g. ``https://fhir.example.org/R4``
        timeout: Per-request timeout in seconds
        auth_token: Bearer token (SecretStr - never logged)
    """

    base_url: str = Field(..., description="FHIR server base URL")
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    auth_token: Optional[SecretStr] = Field(None, description="Bearer token (secret)")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip()
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError(f"Server base URL must start with http:// or https://, got: {v}")
        return v.rstrip("/")

    def auth_headers(self) -> Dict[str, str]:
        if self.auth_token is None:
            return {}
        return {"Authorization": f"Bearer {self.auth_token.get_secret_value()}"}


class RetryConfig(BaseModel):
    """Retry settings for persistence calls."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=10.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            backoff_multiplier=self.backoff_multiplier,
        )


class ConfigManager:
    """Configuration manager for server and retry settings.

    Example Usage:
        ```python
        # Load from environment variables
        config = ConfigManager.from_environment()
        server = config.get_server_config()

        # Load from file
        config = ConfigManager.from_file("config.json")
        policy = config.get_retry_config().to_policy()
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        self._config_data = config_data
        self._server_config: Optional[ServerConfig] = None
        self._retry_config: Optional[RetryConfig] = None

    @classmethod
    def from_environment(cls, env_file: Optional[str] = None) -> 'ConfigManager':
        """Load configuration from environment variables.

        Environment Variables:
            - QB_SERVER_URL: FHIR server base URL
            - QB_SERVER_TIMEOUT: Per-request timeout in seconds
            - QB_AUTH_TOKEN: Bearer token (secret)
            - QB_RETRY_MAX_ATTEMPTS, QB_RETRY_BASE_DELAY,
              QB_RETRY_MAX_DELAY, QB_RETRY_BACKOFF_MULTIPLIER

        Parameters:
            env_file: ``.env`` file to load first; defaults to the project root

        Security Impact:
            - Credentials are read from environment (never logged)
            - Variables already set in the environment win over the ``.env`` file
        """
        env_path = Path(env_file) if env_file else Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        def env(name: str) -> Optional[str]:
            return os.getenv(f"{ENV_PREFIX}{name}")

        server = {
            "base_url": env("SERVER_URL"),
            "timeout": env("SERVER_TIMEOUT"),
            "auth_token": env("AUTH_TOKEN"),
        }
        retry = {
            "max_attempts": env("RETRY_MAX_ATTEMPTS"),
            "base_delay": env("RETRY_BASE_DELAY"),
            "max_delay": env("RETRY_MAX_DELAY"),
            "backoff_multiplier": env("RETRY_BACKOFF_MULTIPLIER"),
        }
        config_data = {
            "server": {k: v for k, v in server.items() if v is not None},
            "retry": {k: v for k, v in retry.items() if v is not None},
        }
        return cls(config_data)

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Load configuration from a JSON file with ``server`` and ``retry`` sections.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        stat_info = config_file.stat()
        if stat_info.st_mode & 0o077 != 0:
            logger.warning(
                f"Configuration file has overly permissive permissions: {config_path}. "
                "Consider setting to 600 for credential files."
            )

        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        return cls(config_data)

    def get_server_config(self) -> ServerConfig:
        """Get server configuration.

        Raises:
            pydantic.ValidationError: If no base URL is configured or it is invalid
        """
        if self._server_config is None:
            self._server_config = ServerConfig(**self._config_data.get("server", {}))
        return self._server_config

    def get_retry_config(self) -> RetryConfig:
        if self._retry_config is None:
            self._retry_config = RetryConfig(**self._config_data.get("retry", {}))
        return self._retry_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (dot notation, e.g. ``server.base_url``)."""
        value = self._config_data
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
        return value if value is not None else default

