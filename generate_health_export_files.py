"""Generate synthetic Apple Health exports of various sizes.

This script creates export.xml files shaped like the ones produced by the
Health app (a HealthData root with Record and Workout children) for tests
and for exercising the streaming ingestion on large inputs.

Security Impact:
    - Generates synthetic data only (no real health information)
"""

import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple
from xml.sax.saxutils import quoteattr

APPLE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"

EXPORT_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n<HealthData locale="en_US">\n'
EXPORT_FOOTER = '</HealthData>\n'

# (type identifier, unit, low, high, decimals)
METRIC_POOL = [
    ("HKQuantityTypeIdentifierStepCount", "count", 10, 2500, 0),
    ("HKQuantityTypeIdentifierDistanceWalkingRunning", "km", 0.01, 2.5, 3),
    ("HKQuantityTypeIdentifierActiveEnergyBurned", "kcal", 0.1, 40.0, 2),
    ("HKQuantityTypeIdentifierBasalEnergyBurned", "kcal", 0.5, 5.0, 2),
    ("HKQuantityTypeIdentifierHeartRate", "count/min", 48, 175, 0),
    ("HKQuantityTypeIdentifierBodyMass", "kg", 55.0, 95.0, 1),
    ("HKQuantityTypeIdentifierRespiratoryRate", "count/min", 12, 20, 0),
    ("HKQuantityTypeIdentifierOxygenSaturation", "%", 0.92, 1.0, 2),
]

# Kinds that appear in real exports but are not ingested
IRRELEVANT_POOL = [
    ("HKQuantityTypeIdentifierFlightsClimbed", "count", 1, 12, 0),
    ("HKQuantityTypeIdentifierHeadphoneAudioExposure", "dBASPL", 40, 90, 1),
]

WORKOUT_ACTIVITIES = [
    "HKWorkoutActivityTypeRunning",
    "HKWorkoutActivityTypeWalking",
    "HKWorkoutActivityTypeCycling",
    "HKWorkoutActivityTypeSwimming",
]

SOURCES = [("Jane's iPhone", "17.4"), ("Jane's Apple Watch", "10.4")]

DEFAULT_START = datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Format a datetime the way Health exports do, e.g. ``2024-01-01 08:00:00 +0000``."""
    return moment.strftime(APPLE_TIMESTAMP_FORMAT)


def _attributes(**attrs: Optional[str]) -> str:
    return " ".join(f"{key}={quoteattr(str(value))}" for key, value in attrs.items() if value is not None)


def record_element(
    type_identifier: str,
    value: str,
    start_date: str,
    end_date: Optional[str] = None,
    unit: Optional[str] = None,
    source_name: Optional[str] = "Jane's iPhone",
    source_version: Optional[str] = None,
    metadata: Optional[dict] = None
) -> str:
    """Build one ``<Record>`` element.

    With ``metadata`` the record gets MetadataEntry children instead of
    being self-closing.
    """
    attrs = _attributes(
        type=type_identifier,
        sourceName=source_name,
        sourceVersion=source_version,
        unit=unit,
        creationDate=end_date or start_date,
        startDate=start_date,
        endDate=end_date or start_date,
        value=value,
    )
    if not metadata:
        return f" <Record {attrs}/>\n"
    children = "".join(
        f"  <MetadataEntry {_attributes(key=key, value=item)}/>\n" for key, item in metadata.items()
    )
    return f" <Record {attrs}>\n{children} </Record>\n"


def workout_element(
    activity_type: str,
    start_date: str,
    end_date: Optional[str] = None,
    duration: Optional[str] = None,
    duration_unit: Optional[str] = None,
    total_distance: Optional[str] = None,
    total_distance_unit: Optional[str] = None,
    total_energy_burned: Optional[str] = None,
    total_energy_burned_unit: Optional[str] = None,
    source_name: Optional[str] = "Jane's Apple Watch",
    source_version: Optional[str] = None
) -> str:
    """Build one ``<Workout>`` element with a nested event, as real exports have."""
    attrs = _attributes(
        workoutActivityType=activity_type,
        duration=duration,
        durationUnit=duration_unit,
        totalDistance=total_distance,
        totalDistanceUnit=total_distance_unit,
        totalEnergyBurned=total_energy_burned,
        totalEnergyBurnedUnit=total_energy_burned_unit,
        sourceName=source_name,
        sourceVersion=source_version,
        creationDate=end_date or start_date,
        startDate=start_date,
        endDate=end_date or start_date,
    )
    event = f"  <WorkoutEvent {_attributes(type='HKWorkoutEventTypeSegment', date=start_date)}/>\n"
    return f" <Workout {attrs}>\n{event} </Workout>\n"


def wrap_export(elements: Iterable[str]) -> str:
    """Wrap elements in the HealthData document."""
    return EXPORT_HEADER + "".join(elements) + EXPORT_FOOTER


def step_records(
    count: int,
    start: datetime = DEFAULT_START,
    interval: timedelta = timedelta(minutes=1)
) -> List[str]:
    """Build ``count`` StepCount records with increasing timestamps and values 1..count."""
    elements = []
    for i in range(count):
        moment = start + interval * i
        elements.append(
            record_element(
                "HKQuantityTypeIdentifierStepCount",
                str(i + 1),
                format_timestamp(moment),
                format_timestamp(moment + interval),
                unit="count",
            )
        )
    return elements


def _random_value(rng: random.Random, low: float, high: float, decimals: int) -> str:
    if decimals == 0:
        return str(rng.randint(int(low), int(high)))
    return f"{rng.uniform(low, high):.{decimals}f}"


def random_elements(
    count: int,
    seed: int = 42,
    workout_ratio: float = 0.01,
    irrelevant_ratio: float = 0.1,
    start: datetime = DEFAULT_START
) -> Iterable[str]:
    """Yield ``count`` random Record or Workout elements, reproducibly for a seed."""
    rng = random.Random(seed)
    moment = start
    for _ in range(count):
        moment += timedelta(seconds=rng.randint(30, 600))
        source_name, source_version = rng.choice(SOURCES)
        roll = rng.random()

        if roll < workout_ratio:
            minutes = rng.uniform(15, 90)
            yield workout_element(
                rng.choice(WORKOUT_ACTIVITIES),
                format_timestamp(moment),
                format_timestamp(moment + timedelta(minutes=minutes)),
                duration=f"{minutes:.2f}",
                duration_unit="min",
                total_distance=f"{rng.uniform(1, 15):.2f}",
                total_distance_unit="km",
                total_energy_burned=f"{rng.uniform(80, 900):.1f}",
                total_energy_burned_unit="kcal",
                source_name=source_name,
                source_version=source_version,
            )
            continue

        pool = IRRELEVANT_POOL if roll < workout_ratio + irrelevant_ratio else METRIC_POOL
        type_identifier, unit, low, high, decimals = rng.choice(pool)
        yield record_element(
            type_identifier,
            _random_value(rng, low, high, decimals),
            format_timestamp(moment),
            format_timestamp(moment + timedelta(seconds=rng.randint(1, 300))),
            unit=unit,
            source_name=source_name,
            source_version=source_version,
        )


def generate_export(count: int, seed: int = 42) -> str:
    """Build a complete export document with ``count`` random elements."""
    return wrap_export(random_elements(count, seed=seed))


def estimate_element_size(samples: int = 200) -> int:
    """Estimate the average size of a generated element in bytes."""
    total = sum(len(element.encode("utf-8")) for element in random_elements(samples, seed=7))
    return max(1, total // samples)


def generate_export_file(target_size_mb: int, output_path: Path, seed: int = 42) -> Tuple[float, int]:
    """Generate an export of approximately ``target_size_mb``.

    Returns:
        Tuple of (actual_size_mb, element_count)
    """
    print(f"Generating {target_size_mb}MB export...")

    target_bytes = target_size_mb * 1024 * 1024 - len(EXPORT_HEADER) - len(EXPORT_FOOTER)
    elements_needed = max(1, target_bytes // estimate_element_size())
    print(f"  Generating {elements_needed:,} elements...")

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(EXPORT_HEADER)
        for i, element in enumerate(random_elements(elements_needed, seed=seed), start=1):
            if i % 100000 == 0:
                print(f"  Progress: {i:,}/{elements_needed:,} elements...")
            f.write(element)
        f.write(EXPORT_FOOTER)

    actual_size_mb = output_path.stat().st_size / (1024 * 1024)
    print(f"  [OK] Generated: {output_path.name} ({actual_size_mb:.2f} MB)")
    print()
    return actual_size_mb, elements_needed


def main():
    """Generate exports of various sizes into test_data/."""
    print("=" * 60)
    print("Apple Health Export Generator")
    print("=" * 60)
    print()

    test_data_dir = Path("test_data")
    test_data_dir.mkdir(exist_ok=True)

    results = []
    for size_mb in [1, 10, 50, 100, 500]:
        output_file = test_data_dir / f"export_{size_mb}mb.xml"
        actual_size, element_count = generate_export_file(size_mb, output_file)
        results.append((size_mb, actual_size, element_count, output_file))

    print("=" * 60)
    print(f"{'Target (MB)':<12} {'Actual (MB)':<12} {'Elements':<12} {'File'}")
    print("-" * 60)
    for target_mb, actual_mb, element_count, output_file in results:
        print(f"{target_mb:<12} {actual_mb:<12.2f} {element_count:<12,} {output_file.name}")
    print()
    print(f"All files saved to: {test_data_dir.absolute()}")


if __name__ == "__main__":
    main()
