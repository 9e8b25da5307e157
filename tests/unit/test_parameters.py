"""Tests for per-action parameter schemas."""

import pytest

from chat_video_editor.exceptions import ValidationError
from chat_video_editor.models.intent import ActionKind, EDIT_ACTIONS
from chat_video_editor.models.parameters import (
    PARAMETER_SCHEMAS, describe_schema, parse_parameters, validate_parameters
)


class TestValidateParameters:
    """Test validation and normalisation."""

    def test_every_edit_action_has_schema(self):
        assert set(PARAMETER_SCHEMAS) == set(EDIT_ACTIONS)

    def test_trim_returns_provided_keys_only(self):
        params = validate_parameters(ActionKind.TRIM, {"startTime": 0, "duration": 10})
        assert params == {"startTime": 0, "duration": 10}

    def test_unknown_keys_dropped(self):
        params = validate_parameters(ActionKind.TRIM, {"duration": 5, "speed": "fast"})
        assert params == {"duration": 5}

    def test_snake_case_accepted(self):
        params = validate_parameters(ActionKind.TRIM, {"start_time": 2, "end_time": 4})
        assert params == {"startTime": 2, "endTime": 4}

    def test_trim_requires_extent(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_parameters(ActionKind.TRIM, {"startTime": 5})
        assert "endTime or duration" in str(exc_info.value)

    def test_trim_end_after_start(self):
        with pytest.raises(ValidationError):
            validate_parameters(ActionKind.TRIM, {"startTime": 20, "endTime": 10})

    def test_errors_listed(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_parameters(ActionKind.CROP, {"x": -1})
        errors = exc_info.value.errors
        assert len(errors) == 3
        assert any(e.startswith("width") for e in errors)
        assert any(e.startswith("height") for e in errors)

    def test_filter_type_required(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_parameters(ActionKind.FILTER, {})
        assert any("filterType" in e for e in exc_info.value.errors)

    def test_filter_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            validate_parameters(ActionKind.FILTER, {"filterType": "holographic"})

    def test_speed_factor(self):
        params = validate_parameters(ActionKind.FILTER, {"filterType": "speed", "intensity": 0.5})
        assert params == {"filterType": "speed", "intensity": 0.5}

    def test_background_colours(self):
        with pytest.raises(ValidationError):
            validate_parameters(ActionKind.BACKGROUND, {"backgroundColor": "blue"})
        with pytest.raises(ValidationError):
            validate_parameters(ActionKind.BACKGROUND, {"gradientColors": ["#000000"]})

    def test_background_image_required(self):
        with pytest.raises(ValidationError):
            validate_parameters(ActionKind.BACKGROUND, {"action": "replace", "backgroundType": "image"})
        params = validate_parameters(
            ActionKind.BACKGROUND,
            {"action": "replace", "backgroundType": "image", "backgroundImage": "beach.png"}
        )
        assert params["backgroundImage"] == "beach.png"

    def test_export_resolution(self):
        assert validate_parameters(ActionKind.EXPORT, {"resolution": "1280x720"}) == {"resolution": "1280x720"}
        with pytest.raises(ValidationError):
            validate_parameters(ActionKind.EXPORT, {"resolution": "HD"})

    def test_non_edit_action_has_no_schema(self):
        with pytest.raises(ValidationError):
            validate_parameters(ActionKind.CHAT, {})

    def test_parameters_must_be_object(self):
        with pytest.raises(ValidationError):
            validate_parameters(ActionKind.TRIM, ["startTime", 0])

    def test_parse_applies_defaults(self):
        parsed = parse_parameters(ActionKind.TEXT, {"text": "Hello"})
        assert parsed.font_size == 24
        assert parsed.x == 10
        assert parsed.duration == 5.0


class TestDescribeSchema:

    def test_lists_aliases_and_required(self):
        description = describe_schema(ActionKind.FILTER)
        assert "filterType" in description
        assert "(required)" in description
        assert '"sepia"' in description

    def test_actions_without_schema(self):
        assert describe_schema(ActionKind.ANALYZE) == "{}"
