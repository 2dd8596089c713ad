"""Dependency injection for dashboard API.

This module provides dependency injection functions for FastAPI,
following Hexagonal Architecture principles: routes receive a
SourceStorePort and never touch the upload directory themselves.
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from src.adapters.storage import LocalUploadStore
from src.domain.ports import SourceStorePort
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_source_store() -> SourceStorePort:
    """Get the upload store instance (cached).

    Returns:
        SourceStorePort: Store rooted at the configured upload directory

    Security Impact:
        - The upload directory comes from configuration, never from the request
    """
    config = settings.ingestion
    logger.debug(f"Creating upload store at {config.upload_dir}")
    return LocalUploadStore(config.upload_dir, max_upload_size=config.max_upload_size)


# Type alias for dependency injection
StoreDep = Annotated[SourceStorePort, Depends(get_source_store)]
