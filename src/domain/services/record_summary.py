"""Record Summary and Validation Service.

This service summarizes and validates accepted health records using
vectorized pandas operations. Summaries are built incrementally, one
flushed batch at a time, so a multi-gigabyte export never needs all of
its records in memory at once.

Architecture:
    - Pure domain service with no infrastructure dependencies
    - Uses pandas for per-batch aggregation
    - Returns plain dataclasses for use by the CLI and API layers
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from src.domain.health_record import HealthRecord, parse_timestamp

logger = logging.getLogger(__name__)

RECORD_COLUMNS = ["type", "value", "unit", "start_date", "end_date", "source_name", "source_version"]
REQUIRED_COLUMNS = ["type", "value", "start_date", "end_date"]


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of validating a set of records.

    Attributes:
        is_valid: True when no errors were found
        errors: Human-readable problems, one per failed check
        record_count: Number of records examined
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    record_count: int = 0


@dataclass(frozen=True)
class DataSummary:
    """Aggregate view over a set of records.

    Attributes:
        total_records: Number of records summarized
        date_range: Earliest start and latest end, or None if no dates parsed
        data_types: Record count per type identifier
        sources: Record count per source name
    """

    total_records: int
    date_range: Optional[Tuple[datetime, datetime]]
    data_types: Dict[str, int]
    sources: Dict[str, int]


def records_to_frame(records: Iterable[HealthRecord]) -> pd.DataFrame:
    """Convert records to a DataFrame with one column per record field."""
    return pd.DataFrame([record.model_dump() for record in records], columns=RECORD_COLUMNS)


def _parse_column(series: pd.Series) -> pd.Series:
    """Parse a column of raw timestamps to UTC datetimes (NaT when unparsable)."""
    parsed = series.map(parse_timestamp)
    return pd.to_datetime(parsed, utc=True)


def validate_records(records: Iterable[HealthRecord]) -> ValidationReport:
    """Validate records for required fields and parsable dates.

    Parameters:
        records: Records to validate

    Returns:
        ValidationReport: Validation outcome
    """
    df = records_to_frame(records)

    if df.empty:
        return ValidationReport(
            is_valid=False,
            errors=["No health records found in the file"],
            record_count=0,
        )

    errors: List[str] = []

    missing = int(df[REQUIRED_COLUMNS].fillna("").eq("").any(axis=1).sum())
    if missing:
        errors.append(f"{missing} records are missing required fields")

    invalid_dates = pd.Series(False, index=df.index)
    for column in ("start_date", "end_date"):
        present = df[column].fillna("").ne("")
        invalid_dates |= present & _parse_column(df[column]).isna()
    invalid_count = int(invalid_dates.sum())
    if invalid_count:
        errors.append(f"{invalid_count} records have invalid date formats")

    return ValidationReport(is_valid=not errors, errors=errors, record_count=len(df))


class RecordSummaryAccumulator:
    """Builds a DataSummary incrementally from record batches.

    Example Usage:
        ```python
        accumulator = RecordSummaryAccumulator()
        async for event in session.events():
            if event.type in ("record", "complete"):
                accumulator.add_batch(event.data.records)
        summary = accumulator.summary()
        ```
    """

    def __init__(self):
        self._total = 0
        self._types = pd.Series(dtype="int64")
        self._sources = pd.Series(dtype="int64")
        self._earliest: Optional[pd.Timestamp] = None
        self._latest: Optional[pd.Timestamp] = None

    def add_batch(self, records: Iterable[HealthRecord]) -> None:
        """Fold one batch of records into the running summary."""
        df = records_to_frame(records)
        if df.empty:
            return

        self._total += len(df)
        self._types = self._types.add(df["type"].value_counts(), fill_value=0)
        self._sources = self._sources.add(df["source_name"].dropna().value_counts(), fill_value=0)

        starts = _parse_column(df["start_date"]).dropna()
        ends = _parse_column(df["end_date"]).dropna()
        if not starts.empty:
            batch_min = starts.min()
            self._earliest = batch_min if self._earliest is None else min(self._earliest, batch_min)
        if not ends.empty:
            batch_max = ends.max()
            self._latest = batch_max if self._latest is None else max(self._latest, batch_max)

    def summary(self) -> DataSummary:
        """Return the summary of every batch added so far."""
        date_range = None
        if self._earliest is not None and self._latest is not None:
            date_range = (self._earliest.to_pydatetime(), self._latest.to_pydatetime())

        return DataSummary(
            total_records=self._total,
            date_range=date_range,
            data_types={str(k): int(v) for k, v in self._types.sort_values(ascending=False).items()},
            sources={str(k): int(v) for k, v in self._sources.sort_values(ascending=False).items()},
        )


def summarize_records(records: Iterable[HealthRecord]) -> DataSummary:
    """Summarize a complete set of records in one call."""
    accumulator = RecordSummaryAccumulator()
    accumulator.add_batch(records)
    return accumulator.summary()
