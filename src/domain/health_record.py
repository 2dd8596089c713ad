"""Health Record Schema Definitions.

This module defines the canonical shapes for data extracted from an Apple Health
export: the accepted health record, the optional date window used to filter
records during the parse, and the timestamp grammar shared by both.

Security Impact:
    - Records are immutable once accepted; no consumer can alter a flushed batch
    - Schema validation rejects malformed date windows before a session starts

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Models are immutable and validated before use (Pydantic V2)
    - Wire representation uses camelCase keys to match the dashboard frontend
"""

from datetime import date, datetime, time, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Timestamp layout used by Apple Health exports, e.g. "2024-01-01 08:00:00 -0500"
APPLE_HEALTH_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp using the pipeline's timestamp grammar.

    Accepted forms:
        - Apple Health export layout: ``2024-01-01 08:00:00 -0500``
        - ISO-8601 dates and date-times: ``2024-01-01``, ``2024-01-01T08:00:00Z``,
          ``2024-01-01T08:00:00+02:00`` (space separator also accepted)
        - ``datetime`` / ``date`` instances

    Values without an offset are interpreted as UTC.

    Parameters:
        value: Raw timestamp (string, datetime or date)

    Returns:
        Optional[datetime]: Timezone-aware datetime, or None if unparsable
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.strptime(text, APPLE_HEALTH_TIMESTAMP_FORMAT)
        except ValueError:
            if text[-1] in ("Z", "z"):
                text = text[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class HealthRecord(BaseModel):
    """One accepted health measurement.

    ``value`` is intentionally a string: numeric parsing is a consumer concern,
    and category records (sleep analysis) carry symbolic values.

    Parameters:
        type: Metric kind identifier (e.g. HKQuantityTypeIdentifierStepCount)
        value: Raw measured value
        unit: Unit of measure, if the source provides one
        start_date: Raw start timestamp as found in the export
        end_date: Raw end timestamp as found in the export
        source_name: Device or app that produced the record
        source_version: Version of the producing device or app
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: str = Field(..., description="Metric kind identifier")
    value: str = Field(..., description="Raw measured value")
    unit: Optional[str] = Field(None, description="Unit of measure")
    start_date: str = Field("", description="Raw start timestamp")
    end_date: str = Field("", description="Raw end timestamp")
    source_name: Optional[str] = Field(None, description="Producing device or app")
    source_version: Optional[str] = Field(None, description="Producing device or app version")

    def to_wire(self) -> dict:
        """Serialize to the camelCase shape sent to live-event consumers."""
        return self.model_dump(by_alias=True, exclude_none=True)


class DateWindow(BaseModel):
    """Optional inclusive ``[start, end]`` interval used to filter records.

    Either bound may be omitted. Bounds are parsed with ``parse_timestamp``
    so the window and the records it filters share one grammar.

    Raises:
        pydantic.ValidationError: If a bound is unparsable or start is after end
    """

    model_config = ConfigDict(frozen=True)

    start: Optional[datetime] = Field(None, description="Inclusive lower bound")
    end: Optional[datetime] = Field(None, description="Inclusive upper bound")

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_bound(cls, v: Any) -> Optional[datetime]:
        """Parse a window bound; empty values mean the bound is not set."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        parsed = parse_timestamp(v)
        if parsed is None:
            raise ValueError(f"Unparsable timestamp: {v!r}")
        return parsed

    @model_validator(mode="after")
    def check_order(self) -> "DateWindow":
        """Reject windows whose start falls after their end."""
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(
                f"Window start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )
        return self

    @property
    def is_unbounded(self) -> bool:
        """True when neither bound is set."""
        return self.start is None and self.end is None

    @classmethod
    def from_bounds(cls, start: Any = None, end: Any = None) -> Optional["DateWindow"]:
        """Build a window from raw bounds, or None when both are empty."""
        window = cls(start=start, end=end)
        return None if window.is_unbounded else window
