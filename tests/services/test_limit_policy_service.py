"""
Tests for limit policy resolution, administration and clamping.
"""

import pytest

from points_ledger.exceptions import LimitReached, PolicyNotFound
from points_ledger.models.enums import LimitScope, LimitWindow
from points_ledger.schemas.limit_policy import (
    LimitPolicyUpsert,
    SourceLimitUpdate,
    WindowLimitUpdate,
    WindowLimitsUpdate,
)
from points_ledger.services.limit_policy_service import (
    LimitPolicyService,
    clamp_to_limit,
)

from points_helpers import set_global_limits, set_limits


class TestClampToLimit:

    def test_fitting_amount_is_unchanged(self):
        meta = {}
        assert clamp_to_limit("daily", 100, 40, 60, meta) == 60
        assert meta == {}

    def test_overflow_is_trimmed_and_annotated(self):
        meta = {}
        assert clamp_to_limit("daily", 100, 90, 20, meta) == 10
        assert meta == {
            "limitApplied": True,
            "limitType": "daily",
            "originalAmount": 20,
        }

    def test_original_amount_survives_a_second_clamp(self):
        meta = {}
        amount = clamp_to_limit("daily", 100, 80, 50, meta)
        amount = clamp_to_limit("weekly", 500, 495, amount, meta)
        assert amount == 5
        assert meta["limitType"] == "weekly"
        assert meta["originalAmount"] == 50

    def test_exhausted_quota_raises(self):
        with pytest.raises(LimitReached) as exc:
            clamp_to_limit("weekly", 500, 500, 1, {})
        assert exc.value.details() == {"window": "weekly", "limit": 500, "earned": 500}


class TestResolve:

    def test_creates_default_global_policy(self, db_session):
        service = LimitPolicyService(db_session)
        policy = service.resolve("stu-1")
        db_session.commit()

        assert policy.scope == LimitScope.GLOBAL
        assert policy.window_limit(LimitWindow.DAILY) == (True, 100)
        assert policy.window_limit(LimitWindow.WEEKLY) == (True, 500)
        assert policy.window_limit(LimitWindow.MONTHLY).enabled is False
        assert policy.source_daily_limit("attendance") == (True, 10)
        assert policy.source_daily_limit("task") == (True, 50)
        assert policy.source_daily_limit("behavior") is None

    def test_global_policy_is_created_once(self, db_session):
        service = LimitPolicyService(db_session)
        first = service.resolve("stu-1")
        second = service.resolve("stu-2")
        assert first.id == second.id
        assert len(service.list_policies()) == 1

    def test_school_policy_beats_global(self, db_session):
        set_global_limits(db_session, daily=(True, 100))
        set_limits(db_session, LimitScope.SCHOOL, "school-1", daily=(True, 60))

        policy = LimitPolicyService(db_session).resolve("stu-1", "school-1")
        assert policy.scope_key == "school:school-1"
        assert policy.daily_max_points == 60

    def test_school_policy_ignored_without_school_id(self, db_session):
        set_limits(db_session, LimitScope.SCHOOL, "school-1", daily=(True, 60))

        policy = LimitPolicyService(db_session).resolve("stu-1")
        assert policy.scope == LimitScope.GLOBAL

    def test_student_policy_beats_school(self, db_session):
        set_limits(db_session, LimitScope.SCHOOL, "school-1", daily=(True, 60))
        set_limits(db_session, LimitScope.STUDENT, "stu-1", daily=(True, 30))

        service = LimitPolicyService(db_session)
        assert service.resolve("stu-1", "school-1").daily_max_points == 30
        assert service.resolve("stu-2", "school-1").daily_max_points == 60


class TestAdministration:

    def test_upsert_merges_partial_update(self, db_session):
        service = LimitPolicyService(db_session)
        set_global_limits(db_session, daily=(True, 80))

        policy = service.upsert(LimitPolicyUpsert(
            scope=LimitScope.GLOBAL,
            limits=WindowLimitsUpdate(monthly=WindowLimitUpdate(enabled=True)),
        ))
        db_session.commit()

        assert policy.daily_max_points == 80
        assert policy.monthly_enabled is True
        assert policy.monthly_max_points == 2000
        assert len(service.list_policies()) == 1

    def test_upsert_adds_source_limit(self, db_session):
        policy = set_global_limits(db_session, sources={"task": (True, 20)})

        assert policy.source_daily_limit("task") == (True, 20)
        assert policy.source_daily_limit("attendance") == (True, 10)

    def test_upsert_changes_one_field_of_source_limit(self, db_session):
        service = LimitPolicyService(db_session)
        service.upsert(LimitPolicyUpsert(
            scope=LimitScope.GLOBAL,
            source_limits={
                "attendance": SourceLimitUpdate(daily=WindowLimitUpdate(enabled=False)),
            },
        ))
        db_session.commit()

        policy = service.resolve("stu-1")
        assert policy.source_daily_limit("attendance") == (False, 10)

    def test_non_global_scope_requires_entity(self):
        with pytest.raises(ValueError):
            LimitPolicyUpsert(scope=LimitScope.SCHOOL)

    def test_global_scope_drops_entity(self):
        request = LimitPolicyUpsert(scope=LimitScope.GLOBAL, entity_id="x")
        assert request.entity_id is None

    def test_list_filters_by_scope(self, db_session):
        set_global_limits(db_session, daily=(True, 100))
        set_limits(db_session, LimitScope.SCHOOL, "school-1", daily=(True, 60))
        set_limits(db_session, LimitScope.SCHOOL, "school-2", daily=(True, 70))

        service = LimitPolicyService(db_session)
        assert len(service.list_policies(LimitScope.SCHOOL)) == 2
        assert len(service.list_policies(entity_id="school-2")) == 1

    def test_delete(self, db_session):
        policy = set_limits(db_session, LimitScope.STUDENT, "stu-1", daily=(True, 30))
        service = LimitPolicyService(db_session)

        service.delete(policy.id)
        db_session.commit()

        assert service.resolve("stu-1").scope == LimitScope.GLOBAL

    def test_delete_missing_raises(self, db_session):
        with pytest.raises(PolicyNotFound):
            LimitPolicyService(db_session).delete(404)
