"""Record Classification Service.

Decides from a type identifier whether a ``Record`` element belongs to the
vocabulary of health metrics the dashboard understands. Dropping everything
else during the parse keeps unrecognized types (audiograms, ECG voltage
samples, symptom logs) from consuming batch capacity.

Architecture:
    - Pure domain service: fixed lookup tables, no state, no failure mode
"""

from typing import Dict

# Apple Health data types
HEALTH_DATA_TYPES: Dict[str, str] = {
    "STEP_COUNT": "HKQuantityTypeIdentifierStepCount",
    "DISTANCE_WALKING_RUNNING": "HKQuantityTypeIdentifierDistanceWalkingRunning",
    "ACTIVE_ENERGY_BURNED": "HKQuantityTypeIdentifierActiveEnergyBurned",
    "BASAL_ENERGY_BURNED": "HKQuantityTypeIdentifierBasalEnergyBurned",
    "HEART_RATE": "HKQuantityTypeIdentifierHeartRate",
    "BODY_MASS": "HKQuantityTypeIdentifierBodyMass",
    "HEIGHT": "HKQuantityTypeIdentifierHeight",
    "BODY_MASS_INDEX": "HKQuantityTypeIdentifierBodyMassIndex",
    "SLEEP_ANALYSIS": "HKCategoryTypeIdentifierSleepAnalysis",
    "BLOOD_PRESSURE_SYSTOLIC": "HKQuantityTypeIdentifierBloodPressureSystolic",
    "BLOOD_PRESSURE_DIASTOLIC": "HKQuantityTypeIdentifierBloodPressureDiastolic",
    "RESPIRATORY_RATE": "HKQuantityTypeIdentifierRespiratoryRate",
    "OXYGEN_SATURATION": "HKQuantityTypeIdentifierOxygenSaturation",
}

RELEVANT_TYPES = frozenset(HEALTH_DATA_TYPES.values())

# Synthetic type tags for records derived from a Workout element
WORKOUT_TYPE = "HKWorkout"
WORKOUT_DURATION_TYPE = "HKWorkoutDuration"
WORKOUT_DISTANCE_TYPE = "HKWorkoutTotalDistance"
WORKOUT_ENERGY_TYPE = "HKWorkoutTotalEnergyBurned"


class MetricCategory:
    ACTIVITY = "Activity"
    BODY = "Body Measurements"
    VITALS = "Vitals"
    SLEEP = "Sleep"
    NUTRITION = "Nutrition"
    WORKOUTS = "Workouts"


METRIC_DISPLAY_NAMES: Dict[str, Dict[str, str]] = {
    HEALTH_DATA_TYPES["STEP_COUNT"]: {"name": "Steps", "category": MetricCategory.ACTIVITY},
    HEALTH_DATA_TYPES["DISTANCE_WALKING_RUNNING"]: {
        "name": "Walking + Running Distance",
        "category": MetricCategory.ACTIVITY,
    },
    HEALTH_DATA_TYPES["ACTIVE_ENERGY_BURNED"]: {"name": "Active Energy", "category": MetricCategory.ACTIVITY},
    HEALTH_DATA_TYPES["BASAL_ENERGY_BURNED"]: {"name": "Resting Energy", "category": MetricCategory.ACTIVITY},
    HEALTH_DATA_TYPES["HEART_RATE"]: {"name": "Heart Rate", "category": MetricCategory.VITALS},
    HEALTH_DATA_TYPES["BODY_MASS"]: {"name": "Weight", "category": MetricCategory.BODY},
    HEALTH_DATA_TYPES["HEIGHT"]: {"name": "Height", "category": MetricCategory.BODY},
    HEALTH_DATA_TYPES["BODY_MASS_INDEX"]: {"name": "BMI", "category": MetricCategory.BODY},
    HEALTH_DATA_TYPES["SLEEP_ANALYSIS"]: {"name": "Sleep", "category": MetricCategory.SLEEP},
    HEALTH_DATA_TYPES["BLOOD_PRESSURE_SYSTOLIC"]: {
        "name": "Blood Pressure (Systolic)",
        "category": MetricCategory.VITALS,
    },
    HEALTH_DATA_TYPES["BLOOD_PRESSURE_DIASTOLIC"]: {
        "name": "Blood Pressure (Diastolic)",
        "category": MetricCategory.VITALS,
    },
    HEALTH_DATA_TYPES["RESPIRATORY_RATE"]: {"name": "Respiratory Rate", "category": MetricCategory.VITALS},
    HEALTH_DATA_TYPES["OXYGEN_SATURATION"]: {"name": "Oxygen Saturation", "category": MetricCategory.VITALS},
    WORKOUT_TYPE: {"name": "Workout", "category": MetricCategory.WORKOUTS},
    WORKOUT_DURATION_TYPE: {"name": "Workout Duration", "category": MetricCategory.WORKOUTS},
    WORKOUT_DISTANCE_TYPE: {"name": "Workout Distance", "category": MetricCategory.WORKOUTS},
    WORKOUT_ENERGY_TYPE: {"name": "Workout Energy", "category": MetricCategory.WORKOUTS},
}


def is_relevant_type(type_identifier: str) -> bool:
    """Return True if the identifier is one of the recognized metric kinds."""
    return type_identifier in RELEVANT_TYPES


def describe_type(type_identifier: str) -> str:
    """Return a display name for a type identifier.

    Unknown identifiers are returned unchanged.
    """
    entry = METRIC_DISPLAY_NAMES.get(type_identifier)
    return entry["name"] if entry else type_identifier
