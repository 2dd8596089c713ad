"""Health Record Extractor.

This adapter consumes the structural events of an Apple Health export and
reconstructs health records from them. It applies the record classifier and
the date-range filter while parsing, accumulates accepted records into
bounded batches, and reports progress.

Architecture:
    - Explicit state machine: IDLE, IN_MEASUREMENT_RECORD, IN_WORKOUT
    - Every emission goes to a single outbox; one consumer drains it
    - Batches are immutable copies, nothing aliases the next batch
    - Rejected elements are dropped without building a candidate

Memory Impact:
    - Holds at most one in-flight candidate and one batch of records
    - The outbox holds only what a single chunk of input produced
"""

import logging
from collections import deque
from enum import Enum
from typing import Callable, Deque, Iterable, Iterator, List, Optional

from src.domain.health_record import DateWindow, HealthRecord
from src.domain.ingestion_events import (
    CompleteEvent,
    IngestionEvent,
    ProgressEvent,
    ProgressSnapshot,
    RecordBatchData,
    RecordBatchEvent,
)
from src.domain.markup_events import AttributeMap, ElementClosed, ElementEvent, ElementOpened
from src.domain.services.date_range_filter import in_range
from src.domain.services.record_classifier import (
    WORKOUT_DISTANCE_TYPE,
    WORKOUT_DURATION_TYPE,
    WORKOUT_ENERGY_TYPE,
    WORKOUT_TYPE,
    is_relevant_type,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5000
DEFAULT_PROGRESS_INTERVAL = 5000

RECORD_TAG = "record"
WORKOUT_TAG = "workout"


def decompose_workout(attrs: AttributeMap) -> List[HealthRecord]:
    """Derive up to four records sharing a workout's time window.

    The workout itself always yields one record whose value is the activity
    type; duration, distance and energy yield one more record each when present.
    """
    shared = dict(
        start_date=attrs.text("startdate"),
        end_date=attrs.text("enddate"),
        source_name=attrs.optional("sourcename"),
        source_version=attrs.optional("sourceversion"),
    )
    records = [
        HealthRecord(type=WORKOUT_TYPE, value=attrs.text("workoutactivitytype"), unit="workout", **shared)
    ]

    derived = (
        (WORKOUT_DURATION_TYPE, "duration", "durationunit", "min"),
        (WORKOUT_DISTANCE_TYPE, "totaldistance", "totaldistanceunit", "km"),
        (WORKOUT_ENERGY_TYPE, "totalenergyburned", "totalenergyburnedunit", "kcal"),
    )
    for type_tag, value_key, unit_key, default_unit in derived:
        value = attrs.optional(value_key)
        if value:
            records.append(
                HealthRecord(
                    type=type_tag,
                    value=value,
                    unit=attrs.optional(unit_key) or default_unit,
                    **shared,
                )
            )
    return records


class ExtractorState(str, Enum):
    """State of the element currently being reconstructed."""
    IDLE = "idle"
    IN_MEASUREMENT_RECORD = "in_measurement_record"
    IN_WORKOUT = "in_workout"


class HealthExportExtractor:
    """Stateful reconstruction of health records from element events.

    Example Usage:
        ```python
        extractor = HealthExportExtractor(window=window, total_bytes=size)

        for chunk in chunks:
            extractor.advance_bytes(len(chunk))
            for event in scanner.feed(chunk):
                extractor.handle(event)
            for output in extractor.drain():
                send(output)

        for event in scanner.close():
            extractor.handle(event)
        extractor.finish()
        for output in extractor.drain():
            send(output)
        ```
    """

    def __init__(
        self,
        window: Optional[DateWindow] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
        total_bytes: int = 0,
        progress_bytes_interval: int = 0,
        classifier: Callable[[str], bool] = is_relevant_type
    ):
        """Initialize the extractor.

        Parameters:
            window: Optional inclusive date window applied to start timestamps
            batch_size: Maximum number of records per flushed batch
            progress_interval: Emit progress every N accepted records
            total_bytes: Size of the source, reported in snapshots
            progress_bytes_interval: Also emit progress every N bytes read (0 = disabled)
            classifier: Predicate deciding which record types are kept

        Raises:
            ValueError: If batch_size or progress_interval is not positive
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if progress_interval <= 0:
            raise ValueError(f"progress_interval must be positive, got {progress_interval}")

        self.window = window
        self.batch_size = batch_size
        self.progress_interval = progress_interval
        self.progress_bytes_interval = max(progress_bytes_interval, 0)
        self.total_bytes = total_bytes
        self._classifier = classifier

        self.state = ExtractorState.IDLE
        self.bytes_processed = 0
        self.records_processed = 0
        self._bytes_at_last_progress = 0
        self._candidate: Optional[HealthRecord] = None
        self._batch: List[HealthRecord] = []
        self._outbox: Deque[IngestionEvent] = deque()
        self._finished = False

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def snapshot(self) -> ProgressSnapshot:
        """Return the current counters."""
        return ProgressSnapshot(
            bytes_processed=self.bytes_processed,
            total_bytes=self.total_bytes,
            records_processed=self.records_processed,
        )

    def advance_bytes(self, count: int) -> None:
        """Record that ``count`` more bytes of the source have been read."""
        self.bytes_processed += count
        if (
            self.progress_bytes_interval
            and self.bytes_processed - self._bytes_at_last_progress >= self.progress_bytes_interval
        ):
            self._emit_progress()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def handle(self, event: ElementEvent) -> None:
        """Apply one structural event to the state machine."""
        if self._finished:
            raise RuntimeError("Extractor already finished")

        if isinstance(event, ElementOpened):
            if self.state is not ExtractorState.IDLE:
                return
            if event.name == RECORD_TAG:
                self._open_record(event.attributes)
            elif event.name == WORKOUT_TAG:
                self._open_workout(event.attributes)
        elif isinstance(event, ElementClosed):
            if event.name == RECORD_TAG and self.state is ExtractorState.IN_MEASUREMENT_RECORD:
                self._close_record()
            elif event.name == WORKOUT_TAG and self.state is ExtractorState.IN_WORKOUT:
                self.state = ExtractorState.IDLE

    def _open_record(self, attrs: AttributeMap) -> None:
        if not self._classifier(attrs.text("type")) or not in_range(attrs.optional("startdate"), self.window):
            return

        self._candidate = HealthRecord(
            type=attrs.text("type"),
            value=attrs.text("value"),
            unit=attrs.optional("unit"),
            start_date=attrs.text("startdate"),
            end_date=attrs.text("enddate"),
            source_name=attrs.optional("sourcename"),
            source_version=attrs.optional("sourceversion"),
        )
        self.state = ExtractorState.IN_MEASUREMENT_RECORD

    def _close_record(self) -> None:
        candidate = self._candidate
        self._candidate = None
        self.state = ExtractorState.IDLE

        if candidate is not None and candidate.type and candidate.value:
            self.records_processed += 1
            self._append(candidate)
            self._check_progress()

    def _open_workout(self, attrs: AttributeMap) -> None:
        if not in_range(attrs.optional("startdate"), self.window):
            return

        for record in decompose_workout(attrs):
            self._append(record)
        self.records_processed += 1
        self._check_progress()
        self.state = ExtractorState.IN_WORKOUT

    # ------------------------------------------------------------------
    # Batching and emission
    # ------------------------------------------------------------------

    def _append(self, record: HealthRecord) -> None:
        self._batch.append(record)
        if len(self._batch) >= self.batch_size:
            self._outbox.append(RecordBatchEvent(data=self._take_batch()))

    def _check_progress(self) -> None:
        if self.records_processed % self.progress_interval == 0:
            self._emit_progress()

    def _emit_progress(self) -> None:
        self._bytes_at_last_progress = self.bytes_processed
        self._outbox.append(ProgressEvent(data=self.snapshot()))

    def _take_batch(self) -> RecordBatchData:
        data = RecordBatchData(
            bytes_processed=self.bytes_processed,
            total_bytes=self.total_bytes,
            records_processed=self.records_processed,
            records=tuple(self._batch),
        )
        self._batch = []
        return data

    def finish(self) -> None:
        """Signal end of stream and emit the single terminal complete event.

        A candidate whose closing tag was never observed is discarded.
        """
        if self._finished:
            return
        if self._candidate is not None:
            logger.debug(f"Discarding unterminated {self._candidate.type} record at end of stream")
            self._candidate = None
        self.state = ExtractorState.IDLE
        self._finished = True
        self._outbox.append(CompleteEvent(data=self._take_batch()))

    def drain(self) -> Iterator[IngestionEvent]:
        """Hand pending events to the consumer, oldest first."""
        while self._outbox:
            yield self._outbox.popleft()

    def extract(self, events: Iterable[ElementEvent]) -> Iterator[IngestionEvent]:
        """Run the whole state machine over an event iterable.

        Convenience for synchronous callers; yields output as it is produced.
        """
        for event in events:
            self.handle(event)
            yield from self.drain()
        self.finish()
        yield from self.drain()
