"""Ingestion event models for the live event sequence.

This module defines the Pydantic models for events emitted by an ingestion
session: periodic progress snapshots, flushed record batches, the terminal
completion event, and the terminal error event. Every event serializes to the
``{"type": ..., "data": {...}}`` shape consumed by the dashboard frontend.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.domain.health_record import HealthRecord


class ProgressSnapshot(BaseModel):
    """Counters describing how far an ingestion run has progressed."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    bytes_processed: int = Field(0, ge=0, description="Bytes read from the source so far")
    total_bytes: int = Field(0, ge=0, description="Size of the source in bytes")
    records_processed: int = Field(0, ge=0, description="Records accepted so far")


class RecordBatchData(ProgressSnapshot):
    """Progress counters plus a flushed batch of accepted records."""

    records: tuple[HealthRecord, ...] = Field(default=(), description="Flushed records")

    def snapshot(self) -> ProgressSnapshot:
        """Return the counters without the records."""
        return ProgressSnapshot(
            bytes_processed=self.bytes_processed,
            total_bytes=self.total_bytes,
            records_processed=self.records_processed,
        )


class ErrorData(BaseModel):
    """Failure description carried by an error event."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    error: str = Field(..., description="Human-readable failure reason")
    error_type: Optional[str] = Field(None, description="Exception class name")


class IngestionEvent(BaseModel):
    """Base ingestion event model."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Event type identifier")

    @property
    def is_terminal(self) -> bool:
        return self.type in ("complete", "error")

    def to_wire(self) -> dict:
        """Serialize to the JSON-ready camelCase wire shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_sse(self) -> str:
        """Format as one server-sent-event frame."""
        return f"data: {json.dumps(self.to_wire(), separators=(',', ':'))}\n\n"


class ProgressEvent(IngestionEvent):
    """Periodic progress snapshot."""

    type: Literal["progress"] = "progress"
    data: ProgressSnapshot


class RecordBatchEvent(IngestionEvent):
    """A full batch of accepted records, flushed mid-stream."""

    type: Literal["record"] = "record"
    data: RecordBatchData


class CompleteEvent(IngestionEvent):
    """Terminal event carrying the remaining records and final counters."""

    type: Literal["complete"] = "complete"
    data: RecordBatchData


class ErrorEvent(IngestionEvent):
    """Terminal event sent when the session fails."""

    type: Literal["error"] = "error"
    data: ErrorData

    @classmethod
    def from_exception(cls, error: BaseException) -> "ErrorEvent":
        return cls(data=ErrorData(error=str(error) or type(error).__name__, error_type=type(error).__name__))


IngestionEventType = Union[ProgressEvent, RecordBatchEvent, CompleteEvent, ErrorEvent]


class SessionState(str, Enum):
    """Lifecycle states of an ingestion session."""
    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class IngestionOutcome:
    """Terminal result of an ingestion session.

    Attributes:
        state: COMPLETED or FAILED
        snapshot: Final counters (present when completed)
        reason: Failure reason (present when failed)
    """

    state: SessionState
    snapshot: Optional[ProgressSnapshot] = None
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is SessionState.COMPLETED

    @classmethod
    def completed(cls, snapshot: ProgressSnapshot) -> "IngestionOutcome":
        return cls(state=SessionState.COMPLETED, snapshot=snapshot)

    @classmethod
    def failed(cls, reason: str) -> "IngestionOutcome":
        return cls(state=SessionState.FAILED, reason=reason)
