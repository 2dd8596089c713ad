"""Domain Services.

This package contains domain services that implement business logic
without infrastructure dependencies.
"""

from src.domain.services.date_range_filter import in_range
from src.domain.services.record_classifier import describe_type, is_relevant_type
from src.domain.services.record_summary import (
    DataSummary,
    RecordSummaryAccumulator,
    ValidationReport,
    summarize_records,
    validate_records,
)

__all__ = [
    "in_range",
    "is_relevant_type",
    "describe_type",
    "DataSummary",
    "RecordSummaryAccumulator",
    "ValidationReport",
    "summarize_records",
    "validate_records",
]
