"""
Tests for session id and event validation.
"""

import numpy as np
import pytest

from affect_spine.core.validation import (
    DEFAULT_INTENSITY,
    DEFAULT_POLARITY,
    EventType,
    validate_event,
    validate_session_id,
)


class TestSessionId:

    @pytest.mark.parametrize("raw", [None, 42, "", "   ", "x" * 257, ["s1"]])
    def test_invalid_ids_rejected(self, raw):
        result = validate_session_id(raw)
        assert not result.ok
        assert result.error.startswith("invalid session id")

    def test_max_length_accepted(self):
        result = validate_session_id("x" * 256)
        assert result.ok
        assert result.session_id == "x" * 256


class TestEventValidation:

    def test_minimal_event_gets_defaults(self):
        """Only `type` is required; everything else has a default."""
        result = validate_event({"type": "SUCCESS"})

        assert result.ok
        assert result.event.type == EventType.SUCCESS
        assert result.event.intensity == DEFAULT_INTENSITY
        assert result.event.polarity == DEFAULT_POLARITY
        assert result.event.payload == {}

    def test_non_object_rejected(self):
        for raw in (None, "SUCCESS", 3, ["SUCCESS"]):
            result = validate_event(raw)
            assert not result.ok
            assert result.error == "invalid event: must be an object"

    def test_missing_type_rejected(self):
        result = validate_event({"intensity": 0.5})
        assert not result.ok
        assert result.error == "invalid event: type is required"

    def test_unknown_type_rejected(self):
        result = validate_event({"type": "TELEPORT"})
        assert not result.ok
        assert "unknown event type" in result.error

    def test_non_string_type_rejected(self):
        result = validate_event({"type": 7})
        assert not result.ok
        assert result.error.startswith("invalid event")

    def test_type_is_case_insensitive(self):
        result = validate_event({"type": " success "})
        assert result.ok
        assert result.event.type.value == "SUCCESS"

    @pytest.mark.parametrize("raw, expected", [
        (5, 1.0),
        (-2, 0.0),
        ("0.7", 0.7),
        ("loud", DEFAULT_INTENSITY),
        (True, DEFAULT_INTENSITY),
        (float("nan"), DEFAULT_INTENSITY),
        (float("inf"), 1.0),
        (10**400, 1.0),
        (-10**400, 0.0),
        (np.int64(1), 1.0),
        (np.float32(0.25), 0.25),
        (None, DEFAULT_INTENSITY),
    ])
    def test_intensity_clamped(self, raw, expected):
        """Numeric fields are clamped or defaulted, never rejected."""
        result = validate_event({"type": "ERROR", "intensity": raw})
        assert result.ok
        assert result.event.intensity == pytest.approx(expected)

    @pytest.mark.parametrize("raw, expected", [
        (-3, -1.0),
        (3, 1.0),
        (-0.25, -0.25),
        ({}, DEFAULT_POLARITY),
        (10**400, 1.0),
        (-10**400, -1.0),
        (np.int64(-1), -1.0),
    ])
    def test_polarity_clamped(self, raw, expected):
        result = validate_event({"type": "FEEDBACK", "polarity": raw})
        assert result.ok
        assert result.event.polarity == pytest.approx(expected)

    def test_payload_must_be_mapping(self):
        result = validate_event({"type": "CUSTOM", "payload": "not a dict"})
        assert result.ok
        assert result.event.payload == {}

    def test_source_aliases_normalized(self):
        """camelCase source keys map onto snake_case fields; non-strings dropped."""
        result = validate_event({
            "type": "USER_MESSAGE",
            "source": {"userId": "u1", "agentId": 9, "route": "chat", "junk": "x"},
        })

        assert result.ok
        record = result.event.to_record()
        assert record["source"] == {"user_id": "u1", "route": "chat"}

    def test_unknown_fields_ignored(self):
        result = validate_event({"type": "SUCCESS", "weather": "sunny"})
        assert result.ok
        assert "weather" not in result.event.to_record()

    def test_validation_is_idempotent(self):
        """Validating the same raw input twice gives equal events."""
        raw = {"type": "tool_result", "intensity": "2", "polarity": -0.4, "payload": {"tool": "grep"}}
        first = validate_event(raw)
        second = validate_event(raw)

        assert first.ok and second.ok
        assert first.event == second.event
        assert first.event.to_record() == second.event.to_record()

    def test_record_round_trips_through_validator(self):
        """A logged record is itself a valid event."""
        event = validate_event({"type": "ERROR", "intensity": 0.3, "polarity": -1}).event
        again = validate_event(event.to_record())
        assert again.ok
        assert again.event == event
