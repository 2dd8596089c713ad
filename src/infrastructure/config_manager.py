"""Configuration Manager for Ingestion Settings.

This module loads and validates the tunables of the ingestion pipeline from
environment variables or a JSON configuration file.

Security Impact:
    - Limits (upload size, XML depth, element count) are validated before use
    - The upload directory is resolved once and never derived from request data

Architecture:
    - Infrastructure layer isolated from domain
    - Type-safe configuration using Pydantic models
    - Fail-fast validation prevents runtime errors
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "HS_"

# 5 GiB, the largest export the upload endpoint accepts
DEFAULT_MAX_UPLOAD_SIZE = 5 * 1024 * 1024 * 1024


class IngestionConfig(BaseModel):
    """Validated tunables of the ingestion pipeline.

    Parameters:
        batch_size: Maximum number of records per flushed batch
        progress_interval: Emit a progress event every N accepted records
        progress_bytes_interval: Also emit progress every N bytes read (0 = disabled)
        chunk_size: Number of source bytes read per step
        upload_dir: Directory holding uploaded exports until they are ingested
        max_upload_size: Largest accepted upload in bytes
        xml_max_depth: Maximum XML nesting depth
        xml_max_events: Maximum number of XML elements (None = no limit)
        xml_huge_tree: Lift libxml2's internal size limits
    """

    batch_size: int = Field(default=5000, gt=0, description="Records per flushed batch")
    progress_interval: int = Field(default=5000, gt=0, description="Accepted records between progress events")
    progress_bytes_interval: int = Field(default=0, ge=0, description="Bytes between progress events (0 = off)")
    chunk_size: int = Field(default=64 * 1024, gt=0, description="Bytes read per step")
    upload_dir: str = Field(default="uploads", description="Upload directory")
    max_upload_size: int = Field(default=DEFAULT_MAX_UPLOAD_SIZE, gt=0, description="Largest accepted upload")
    xml_max_depth: int = Field(default=100, gt=0, description="Maximum XML nesting depth")
    xml_max_events: Optional[int] = Field(default=None, gt=0, description="Maximum XML elements")
    xml_huge_tree: bool = Field(default=False, description="Lift libxml2 size limits")

    @field_validator("upload_dir")
    @classmethod
    def validate_upload_dir(cls, v: str) -> str:
        """Reject an empty upload directory."""
        if not v or not v.strip():
            raise ValueError("upload_dir must not be empty")
        return str(Path(v.strip()))


class ConfigManager:
    """Configuration manager for ingestion settings.

    Example Usage:
        ```python
        # Load from environment variables
        config = ConfigManager.from_environment()
        ingestion = config.get_ingestion_config()

        # Load from file
        config = ConfigManager.from_file("config.json")
        ingestion = config.get_ingestion_config()
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        """Initialize configuration manager.

        Parameters:
            config_data: Configuration dictionary
        """
        self._config_data = config_data
        self._ingestion_config: Optional[IngestionConfig] = None

    @classmethod
    def from_environment(cls) -> "ConfigManager":
        """Load configuration from environment variables.

        Environment Variables:
            - HS_BATCH_SIZE: Records per flushed batch
            - HS_PROGRESS_INTERVAL: Accepted records between progress events
            - HS_PROGRESS_BYTES_INTERVAL: Bytes between progress events
            - HS_CHUNK_SIZE: Bytes read per step
            - HS_UPLOAD_DIR: Upload directory
            - HS_MAX_UPLOAD_SIZE: Largest accepted upload in bytes
            - HS_XML_MAX_DEPTH: Maximum XML nesting depth
            - HS_XML_MAX_EVENTS: Maximum XML elements
            - HS_XML_HUGE_TREE: "true" to lift libxml2 size limits

        Returns:
            ConfigManager instance

        Note:
            A ``.env`` file in the project root is loaded first if present.
            Variables already set in the environment take precedence.
        """
        env_path = Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        ingestion: Dict[str, Any] = {}
        for field_name in IngestionConfig.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is not None and raw != "":
                ingestion[field_name] = raw

        return cls({"ingestion": ingestion})

    @classmethod
    def from_file(cls, config_path: str) -> "ConfigManager":
        """Load configuration from a JSON file.

        Parameters:
            config_path: Path to configuration file

        Returns:
            ConfigManager instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a JSON object")

        return cls(config_data)

    def get_ingestion_config(self) -> IngestionConfig:
        """Get the validated ingestion configuration.

        Raises:
            pydantic.ValidationError: If a value is out of range or malformed
        """
        if self._ingestion_config is None:
            self._ingestion_config = IngestionConfig(**self._config_data.get("ingestion", {}))
        return self._ingestion_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Parameters:
            key: Configuration key (supports dot notation, e.g., "ingestion.batch_size")
            default: Default value if key not found
        """
        keys = key.split(".")
        value = self._config_data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default
