"""Tests for ingestion event serialization and outcomes."""

import json

from src.domain.health_record import HealthRecord
from src.domain.ingestion_events import (
    CompleteEvent,
    ErrorEvent,
    IngestionOutcome,
    ProgressEvent,
    ProgressSnapshot,
    RecordBatchData,
    RecordBatchEvent,
    SessionState,
)
from src.domain.ports import MarkupError


class TestWireShape:
    """Test the {type, data} wire shape."""

    def test_progress_event(self):
        event = ProgressEvent(data=ProgressSnapshot(bytes_processed=10, total_bytes=100, records_processed=5))

        assert event.to_wire() == {
            "type": "progress",
            "data": {"bytesProcessed": 10, "totalBytes": 100, "recordsProcessed": 5},
        }
        assert not event.is_terminal

    def test_record_event_carries_records(self):
        data = RecordBatchData(records_processed=1, records=(HealthRecord(type="X", value="1"),))
        wire = RecordBatchEvent(data=data).to_wire()

        assert wire["type"] == "record"
        assert wire["data"]["records"] == [{"type": "X", "value": "1", "startDate": "", "endDate": ""}]

    def test_complete_event_is_terminal(self):
        event = CompleteEvent(data=RecordBatchData())

        assert event.is_terminal
        assert event.to_wire()["data"]["records"] == []

    def test_error_event_from_exception(self):
        event = ErrorEvent.from_exception(MarkupError("Premature end of data", line=3, column=7))

        assert event.is_terminal
        assert event.to_wire() == {
            "type": "error",
            "data": {"error": "Premature end of data (line 3, column 7)", "errorType": "MarkupError"},
        }

    def test_sse_frame(self):
        """Test that an event formats as a single data frame."""
        frame = ProgressEvent(data=ProgressSnapshot()).to_sse()

        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):]) == {
            "type": "progress",
            "data": {"bytesProcessed": 0, "totalBytes": 0, "recordsProcessed": 0},
        }


class TestOutcome:
    """Test IngestionOutcome."""

    def test_completed(self):
        outcome = IngestionOutcome.completed(ProgressSnapshot(records_processed=3))

        assert outcome.succeeded
        assert outcome.state is SessionState.COMPLETED
        assert outcome.snapshot.records_processed == 3

    def test_failed(self):
        outcome = IngestionOutcome.failed("cancelled")

        assert not outcome.succeeded
        assert outcome.reason == "cancelled"
