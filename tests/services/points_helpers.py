"""Request builders and policy setup shared by the service tests."""

from points_ledger.models.enums import LimitScope
from points_ledger.schemas.limit_policy import (
    LimitPolicyUpsert,
    SourceLimitUpdate,
    WindowLimitUpdate,
    WindowLimitsUpdate,
)
from points_ledger.schemas.transaction import TransactionRequest
from points_ledger.services.limit_policy_service import LimitPolicyService


def earn(student_id="stu-1", amount=10, source="behavior", **overrides):
    fields = {
        "student_id": student_id,
        "amount": amount,
        "kind": "earned",
        "source": source,
        "description": f"{source} points",
        "awarded_by": "teacher-1",
        "awarded_by_role": "teacher",
    }
    fields.update(overrides)
    return TransactionRequest(**fields)


def spend(student_id="stu-1", amount=10, **overrides):
    fields = {
        "student_id": student_id,
        "amount": amount,
        "kind": "spent",
        "source": "redemption",
        "description": "Reward purchase",
        "awarded_by": student_id,
        "awarded_by_role": "student",
        "metadata": {"sourceType": "reward_purchase"},
    }
    fields.update(overrides)
    return TransactionRequest(**fields)


def adjust(student_id="stu-1", amount=10, **overrides):
    fields = {
        "student_id": student_id,
        "amount": amount,
        "kind": "adjusted",
        "source": "manual_adjustment",
        "description": "Correction",
        "awarded_by": "admin-1",
        "awarded_by_role": "platform_admin",
        "metadata": {"sourceType": "correction"},
    }
    fields.update(overrides)
    return TransactionRequest(**fields)


def set_global_limits(db, daily=None, weekly=None, monthly=None, sources=None):
    """
    Upsert the global policy and commit.

    Each window argument is (enabled, max_points) or None to leave it;
    sources maps a limit key to (enabled, max_points) for its daily cap.
    """
    return set_limits(db, LimitScope.GLOBAL, None, daily, weekly, monthly, sources)


def set_limits(db, scope, entity_id, daily=None, weekly=None, monthly=None, sources=None):
    def window(value):
        if value is None:
            return None
        enabled, max_points = value
        return WindowLimitUpdate(enabled=enabled, max_points=max_points)

    policy = LimitPolicyService(db).upsert(LimitPolicyUpsert(
        scope=scope,
        entity_id=entity_id,
        limits=WindowLimitsUpdate(
            daily=window(daily),
            weekly=window(weekly),
            monthly=window(monthly),
        ),
        source_limits={
            key: SourceLimitUpdate(daily=window(value))
            for key, value in (sources or {}).items()
        } or None,
    ))
    db.commit()
    return policy
