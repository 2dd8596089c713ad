"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.
"""

import os
from typing import Optional

from src.infrastructure.config_manager import ConfigManager, IngestionConfig

# Application metadata
APP_NAME = "Health-Sieve"
APP_VERSION = "1.0.0"


class Settings:
    """Application settings loaded from configuration manager and environment.

    This class provides a unified interface for accessing application settings,
    combining values from the configuration manager with environment variables
    and sensible defaults.
    """

    def __init__(self):
        """Initialize settings from configuration manager and environment."""
        self._ingestion: Optional[IngestionConfig] = None
        self._config_manager: Optional[ConfigManager] = None

        self.app_name = os.getenv("HS_APP_NAME", APP_NAME)
        self.app_version = APP_VERSION

        # Logging
        self.log_level = os.getenv("HS_LOG_LEVEL", "INFO")
        self.json_logs = os.getenv("HS_JSON_LOGS", "false").lower() == "true"

    @property
    def config_manager(self) -> ConfigManager:
        """Get configuration manager instance."""
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager

    @property
    def ingestion(self) -> IngestionConfig:
        """Get ingestion configuration.

        Configuration is loaded lazily on first access.
        """
        if self._ingestion is None:
            self._ingestion = self.config_manager.get_ingestion_config()
        return self._ingestion

    def reload(self) -> None:
        """Discard cached configuration so the next access re-reads the environment."""
        self._ingestion = None
        self._config_manager = None


# Global settings instance
settings = Settings()
