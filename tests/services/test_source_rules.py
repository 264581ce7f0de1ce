"""
Tests for per-source validation rules.
"""

import pytest

from points_ledger.exceptions import (
    InvalidSourceRefFormat,
    InvalidSourceType,
    ValidationError,
)
from points_ledger.models.enums import PointSource
from points_ledger.services.source_rules import SOURCE_RULES, validate_source

TASK_ID = "64b7f0c2a1d3e4f5a6b7c8d9"


class TestSourceTypes:

    def test_every_source_has_a_rule(self):
        assert set(SOURCE_RULES) == set(PointSource)

    def test_known_source_type_is_accepted(self):
        rule = validate_source(PointSource.BEHAVIOR, "helping_others", None)
        assert rule.daily_limit_key is None

    def test_source_type_of_another_source_is_rejected(self):
        with pytest.raises(InvalidSourceType) as exc:
            validate_source(PointSource.ATTENDANCE, "task_completion", None)
        assert exc.value.source == "attendance"
        assert exc.value.source_type == "task_completion"

    def test_invalid_source_type_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            validate_source(PointSource.REDEMPTION, "gift", None)

    @pytest.mark.parametrize("source_type", [["helping_others"], {"kind": "x"}, 7])
    def test_non_string_source_type_is_rejected(self, source_type):
        with pytest.raises(InvalidSourceType):
            validate_source(PointSource.BEHAVIOR, source_type, None)

    def test_missing_source_type_is_allowed(self):
        validate_source(PointSource.MANUAL_ADJUSTMENT, None, None)


class TestSourceRefs:

    def test_task_ref_must_look_like_an_object_id(self):
        with pytest.raises(InvalidSourceRefFormat) as exc:
            validate_source(PointSource.TASK, "task_completion", "task-42")
        assert exc.value.to_dict()["code"] == "INVALID_SOURCE_REF_FORMAT"

    def test_badge_ref_must_look_like_an_object_id(self):
        with pytest.raises(InvalidSourceRefFormat):
            validate_source(PointSource.BADGE, "achievement_badge", "gold")

    def test_valid_task_ref_returns_task_limit_key(self):
        rule = validate_source(PointSource.TASK, "task_completion", TASK_ID)
        assert rule.daily_limit_key == "task"

    def test_attendance_ref_is_free_form(self):
        rule = validate_source(PointSource.ATTENDANCE, "daily_check_in", "att-2026-10-14")
        assert rule.daily_limit_key == "attendance"
