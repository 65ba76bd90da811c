"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.

Security Impact:
    - Settings are loaded from secure configuration sources
    - Sensitive values are never logged
"""

import os
from typing import Optional

from src.infrastructure.config_manager import ConfigManager, RetryConfig, ServerConfig

# Application metadata
APP_NAME = "Questionnaire Bridge"
APP_VERSION = "1.0.0"


class Settings:
    """Application settings loaded from configuration manager and environment.

    Server and retry configuration are loaded lazily, so importing this
    module never fails when no server is configured.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        self._config_manager = config_manager
        self._server_config: Optional[ServerConfig] = None
        self._retry_config: Optional[RetryConfig] = None

        self.app_name = os.getenv("QB_APP_NAME", APP_NAME)
        self.log_level = os.getenv("QB_LOG_LEVEL", "INFO")
        self.json_logs = os.getenv("QB_JSON_LOGS", "false").lower() == "true"

    @property
    def config_manager(self) -> ConfigManager:
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager

    @property
    def server_config(self) -> ServerConfig:
        """Server configuration, loaded on first access.

        Raises:
            pydantic.ValidationError: If ``QB_SERVER_URL`` is missing or invalid
        """
        if self._server_config is None:
            self._server_config = self.config_manager.get_server_config()
        return self._server_config

    @property
    def retry_config(self) -> RetryConfig:
        if self._retry_config is None:
            self._retry_config = self.config_manager.get_retry_config()
        return self._retry_config


# Global settings instance
settings = Settings()
