"""Domain layer for Health-Sieve.

This module contains the core business logic and record schemas.
All domain models are pure Python with no external dependencies beyond Pydantic and pandas.
"""

from .health_record import DateWindow, HealthRecord, parse_timestamp
from .ingestion_events import (
    CompleteEvent,
    ErrorEvent,
    IngestionOutcome,
    ProgressEvent,
    ProgressSnapshot,
    RecordBatchEvent,
    SessionState,
)

__all__ = [
    "DateWindow",
    "HealthRecord",
    "parse_timestamp",
    "CompleteEvent",
    "ErrorEvent",
    "IngestionOutcome",
    "ProgressEvent",
    "ProgressSnapshot",
    "RecordBatchEvent",
    "SessionState",
]
