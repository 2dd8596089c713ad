"""Tests for the record classifier."""

import pytest

from src.domain.services.record_classifier import (
    HEALTH_DATA_TYPES,
    METRIC_DISPLAY_NAMES,
    RELEVANT_TYPES,
    WORKOUT_TYPE,
    describe_type,
    is_relevant_type,
)


class TestIsRelevantType:
    """Test membership in the recognized metric kinds."""

    @pytest.mark.parametrize("type_identifier", sorted(HEALTH_DATA_TYPES.values()))
    def test_recognized_kinds_are_relevant(self, type_identifier):
        """Test that every recognized kind is accepted."""
        assert is_relevant_type(type_identifier)

    @pytest.mark.parametrize(
        "type_identifier",
        [
            "HKQuantityTypeIdentifierFlightsClimbed",
            "hkquantitytypeidentifierstepcount",
            "",
            WORKOUT_TYPE,
        ],
    )
    def test_other_identifiers_are_not_relevant(self, type_identifier):
        """Test that unknown, differently cased and empty identifiers are rejected."""
        assert not is_relevant_type(type_identifier)

    def test_vocabulary_size(self):
        """Test the recognized vocabulary has thirteen kinds."""
        assert len(RELEVANT_TYPES) == 13
        assert "HKCategoryTypeIdentifierSleepAnalysis" in RELEVANT_TYPES


class TestDescribeType:
    """Test display names."""

    def test_known_kind(self):
        assert describe_type("HKQuantityTypeIdentifierHeartRate") == "Heart Rate"

    def test_workout_kind(self):
        assert describe_type(WORKOUT_TYPE) == "Workout"

    def test_unknown_kind_is_returned_unchanged(self):
        assert describe_type("HKSomethingElse") == "HKSomethingElse"

    def test_every_recognized_kind_has_a_display_name(self):
        """Test that the display table covers the whole vocabulary."""
        assert RELEVANT_TYPES <= set(METRIC_DISPLAY_NAMES)
