"""Tests for the health record extractor state machine."""

import pytest

from src.adapters.ingesters.health_export_extractor import ExtractorState, HealthExportExtractor
from src.domain.health_record import DateWindow
from src.domain.ingestion_events import CompleteEvent, ProgressEvent, RecordBatchEvent
from src.domain.markup_events import AttributeMap, ElementClosed, ElementOpened

STEP_COUNT = "HKQuantityTypeIdentifierStepCount"


def opened(name, **attrs):
    return ElementOpened(name, AttributeMap(attrs))


def record(type_=STEP_COUNT, value="1", start="2024-01-01 08:00:00 +0000", **attrs):
    """Events for one self-closing record element."""
    attrs.update({"type": type_, "value": value, "startdate": start})
    return [opened("record", **{k: v for k, v in attrs.items() if v is not None}), ElementClosed("record")]


def document(*bodies):
    events = [opened("healthdata")]
    for body in bodies:
        events.extend(body)
    events.append(ElementClosed("healthdata"))
    return events


def run(events, **kwargs):
    return list(HealthExportExtractor(**kwargs).extract(events))


def all_records(outputs):
    return [r for event in outputs if isinstance(event, (RecordBatchEvent, CompleteEvent)) for r in event.data.records]


class TestMeasurementRecords:
    """Test Record element handling."""

    def test_single_step_count_record(self):
        """Test the single-record scenario end to end."""
        events = document([
            opened(
                "record",
                type=STEP_COUNT,
                value="1500",
                startdate="2024-01-01T08:00:00Z",
                enddate="2024-01-01T09:00:00Z",
            ),
            ElementClosed("record"),
        ])

        outputs = run(events)

        assert len(outputs) == 1
        complete = outputs[0]
        assert isinstance(complete, CompleteEvent)
        assert complete.data.records_processed == 1
        (accepted,) = complete.data.records
        assert accepted.type == STEP_COUNT
        assert accepted.value == "1500"
        assert accepted.start_date == "2024-01-01T08:00:00Z"
        assert accepted.end_date == "2024-01-01T09:00:00Z"
        assert accepted.unit is None

    def test_window_excludes_record(self):
        """Test the same record against a window that does not contain it."""
        window = DateWindow(start="2024-02-01", end="2024-03-01")
        events = document(record(value="1500", start="2024-01-01T08:00:00Z"))

        outputs = run(events, window=window)

        assert len(outputs) == 1
        assert outputs[0].data.records == ()
        assert outputs[0].data.records_processed == 0

    def test_optional_fields_are_copied(self):
        events = document(record(unit="count", enddate="2024-01-01 08:01:00 +0000",
                                 sourcename="iPhone", sourceversion="17.4"))

        (accepted,) = all_records(run(events))

        assert accepted.unit == "count"
        assert accepted.end_date == "2024-01-01 08:01:00 +0000"
        assert accepted.source_name == "iPhone"
        assert accepted.source_version == "17.4"

    def test_irrelevant_types_are_dropped(self):
        events = document(record(type_="HKQuantityTypeIdentifierFlightsClimbed"), record())

        outputs = run(events)

        assert [r.type for r in all_records(outputs)] == [STEP_COUNT]
        assert outputs[-1].data.records_processed == 1

    @pytest.mark.parametrize("value", ["", None])
    def test_record_without_value_is_not_accepted(self, value):
        """Test that records with an empty or missing value fail closed."""
        outputs = run(document(record(value=value)))

        assert all_records(outputs) == []
        assert outputs[-1].data.records_processed == 0

    def test_nested_children_are_ignored(self):
        """Test that MetadataEntry children inside a record do not disturb it."""
        events = document([
            opened("record", type=STEP_COUNT, value="7", startdate="2024-01-01"),
            opened("metadataentry", key="HKWasUserEntered", value="1"),
            ElementClosed("metadataentry"),
            opened("record", type=STEP_COUNT, value="999", startdate="2024-01-01"),
            ElementClosed("record"),
        ])

        extractor = HealthExportExtractor()
        for event in events[:-1]:
            extractor.handle(event)

        assert extractor.state is ExtractorState.IDLE
        assert extractor.records_processed == 1
        extractor.finish()
        (complete,) = list(extractor.drain())
        assert [r.value for r in complete.data.records] == ["7"]

    def test_unterminated_candidate_is_discarded(self):
        extractor = HealthExportExtractor()
        extractor.handle(opened("healthdata"))
        extractor.handle(opened("record", type=STEP_COUNT, value="5", startdate="2024-01-01"))
        assert extractor.state is ExtractorState.IN_MEASUREMENT_RECORD

        extractor.finish()

        (complete,) = list(extractor.drain())
        assert complete.data.records == ()
        assert extractor.state is ExtractorState.IDLE


class TestDateWindow:
    """Test window handling inside the extractor."""

    def test_bounds_are_inclusive(self):
        window = DateWindow(start="2024-01-01T00:00:00Z", end="2024-01-31T00:00:00Z")
        events = document(
            record(value="1", start="2024-01-01 00:00:00 +0000"),
            record(value="2", start="2024-01-31T00:00:00Z"),
            record(value="3", start="2024-01-31T00:00:01Z"),
        )

        assert [r.value for r in all_records(run(events, window=window))] == ["1", "2"]

    def test_unparsable_timestamp_with_window_is_excluded(self):
        window = DateWindow(start="2024-01-01")

        assert all_records(run(document(record(start="someday")), window=window)) == []

    def test_unparsable_timestamp_without_window_is_included(self):
        assert [r.start_date for r in all_records(run(document(record(start="someday"))))] == ["someday"]

    def test_filtering_is_repeatable(self):
        """Test that identical input gives identical output in identical order."""
        window = DateWindow(start="2024-01-01 00:05:00 +0000")
        events = document(*[record(value=str(i), start=f"2024-01-01 00:{i:02d}:00 +0000") for i in range(10)])

        first = all_records(run(events, window=window, batch_size=3))
        second = all_records(run(events, window=window, batch_size=3))

        assert first == second
        assert [r.value for r in first] == ["5", "6", "7", "8", "9"]


class TestWorkouts:
    """Test Workout decomposition."""

    def test_full_workout_yields_four_records(self):
        events = document([
            opened(
                "workout",
                workoutactivitytype="HKWorkoutActivityTypeRunning",
                duration="30.5",
                totaldistance="5.2",
                totaldistanceunit="mi",
                totalenergyburned="320",
                startdate="2024-01-02 07:00:00 +0000",
                enddate="2024-01-02 07:30:30 +0000",
                sourcename="Watch",
            ),
            opened("workoutevent", type="HKWorkoutEventTypeSegment"),
            ElementClosed("workoutevent"),
            ElementClosed("workout"),
        ])

        outputs = run(events)
        records = all_records(outputs)

        assert [(r.type, r.value, r.unit) for r in records] == [
            ("HKWorkout", "HKWorkoutActivityTypeRunning", "workout"),
            ("HKWorkoutDuration", "30.5", "min"),
            ("HKWorkoutTotalDistance", "5.2", "mi"),
            ("HKWorkoutTotalEnergyBurned", "320", "kcal"),
        ]
        assert {r.start_date for r in records} == {"2024-01-02 07:00:00 +0000"}
        assert {r.source_name for r in records} == {"Watch"}
        assert outputs[-1].data.records_processed == 1

    def test_activity_only_workout_yields_one_record(self):
        events = document([
            opened("workout", workoutactivitytype="HKWorkoutActivityTypeYoga", startdate="2024-01-02"),
            ElementClosed("workout"),
        ])

        records = all_records(run(events))

        assert len(records) == 1
        assert records[0].type == "HKWorkout"

    def test_workout_outside_window_is_dropped(self):
        window = DateWindow(end="2024-01-01")
        events = document([
            opened("workout", workoutactivitytype="HKWorkoutActivityTypeYoga", duration="10",
                   startdate="2024-01-02"),
            ElementClosed("workout"),
        ])

        assert all_records(run(events, window=window)) == []

    def test_records_inside_workout_are_ignored(self):
        extractor = HealthExportExtractor()
        extractor.handle(opened("workout", workoutactivitytype="HKWorkoutActivityTypeRunning",
                                startdate="2024-01-02"))
        extractor.handle(opened("record", type=STEP_COUNT, value="3", startdate="2024-01-02"))
        extractor.handle(ElementClosed("record"))

        assert extractor.state is ExtractorState.IN_WORKOUT
        extractor.handle(ElementClosed("workout"))
        assert extractor.state is ExtractorState.IDLE


class TestBatchingAndProgress:
    """Test batch flushing and progress cadence."""

    def test_twelve_thousand_records(self):
        """Test the 12,000 record scenario with batch size and cadence of 5000."""
        events = document(*[record(value=str(i)) for i in range(12000)])

        outputs = run(events, batch_size=5000, progress_interval=5000)

        assert [event.type for event in outputs] == ["record", "progress", "record", "progress", "complete"]
        batches = [event for event in outputs if isinstance(event, RecordBatchEvent)]
        assert [len(batch.data.records) for batch in batches] == [5000, 5000]
        progress = [event.data.records_processed for event in outputs if isinstance(event, ProgressEvent)]
        assert progress == [5000, 10000]
        assert len(outputs[-1].data.records) == 2000
        assert outputs[-1].data.records_processed == 12000
        assert [r.value for r in all_records(outputs)] == [str(i) for i in range(12000)]

    @pytest.mark.parametrize("batch_size,total", [(1, 5), (3, 10), (4, 8), (7, 3)])
    def test_batches_are_full_except_the_last(self, batch_size, total):
        outputs = run(document(*[record() for _ in range(total)]), batch_size=batch_size)

        batches = [len(e.data.records) for e in outputs if isinstance(e, RecordBatchEvent)]
        assert batches == [batch_size] * (total // batch_size)
        assert len(outputs[-1].data.records) == total % batch_size

    def test_batches_are_independent_copies(self):
        outputs = run(document(*[record(value=str(i)) for i in range(4)]), batch_size=2)

        first, second = [e for e in outputs if isinstance(e, RecordBatchEvent)]
        assert [r.value for r in first.data.records] == ["0", "1"]
        assert [r.value for r in second.data.records] == ["2", "3"]

    def test_byte_cadence(self):
        """Test optional progress driven by bytes consumed."""
        extractor = HealthExportExtractor(total_bytes=1000, progress_bytes_interval=300)

        extractor.advance_bytes(200)
        assert list(extractor.drain()) == []
        extractor.advance_bytes(200)
        (progress,) = list(extractor.drain())
        assert progress.type == "progress"
        assert progress.data.bytes_processed == 400
        assert progress.data.total_bytes == 1000
        extractor.advance_bytes(299)
        assert list(extractor.drain()) == []

    def test_byte_cadence_disabled_by_default(self):
        extractor = HealthExportExtractor()
        extractor.advance_bytes(10 ** 9)

        assert list(extractor.drain()) == []
        assert extractor.snapshot().bytes_processed == 10 ** 9


class TestLifecycle:
    """Test construction and termination rules."""

    @pytest.mark.parametrize("kwargs", [{"batch_size": 0}, {"progress_interval": -1}])
    def test_rejects_invalid_sizes(self, kwargs):
        with pytest.raises(ValueError):
            HealthExportExtractor(**kwargs)

    def test_finish_emits_exactly_one_complete(self):
        extractor = HealthExportExtractor()
        extractor.finish()
        extractor.finish()

        assert [event.type for event in extractor.drain()] == ["complete"]

    def test_handle_after_finish_fails(self):
        extractor = HealthExportExtractor()
        extractor.finish()

        with pytest.raises(RuntimeError):
            extractor.handle(opened("record"))

    def test_custom_classifier(self):
        outputs = run(document(record(type_="Custom")), classifier=lambda t: t == "Custom")

        assert [r.type for r in all_records(outputs)] == ["Custom"]
