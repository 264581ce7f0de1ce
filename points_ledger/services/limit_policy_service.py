"""
Limit policy service — resolution and administration of point limits.

Resolution walks the scopes from most to least specific and returns
the first policy found:

    student:<studentId>  ->  school:<schoolId>  ->  global

It never fails. If not even a global policy exists, one is created
from DEFAULT_GLOBAL_LIMITS, so a fresh database is immediately usable.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from points_ledger.exceptions import LimitReached, PolicyNotFound
from points_ledger.models.enums import LimitScope
from points_ledger.models.limit_policy import LimitPolicy, make_scope_key
from points_ledger.schemas.limit_policy import LimitPolicyUpsert

logger = logging.getLogger(__name__)


DEFAULT_GLOBAL_LIMITS: dict[str, Any] = {
    "daily_enabled": True,
    "daily_max_points": 100,
    "weekly_enabled": True,
    "weekly_max_points": 500,
    "monthly_enabled": False,
    "monthly_max_points": 2000,
    "source_limits": {
        "attendance": {"daily": {"enabled": True, "maxPoints": 10}},
        "task": {"daily": {"enabled": True, "maxPoints": 50}},
    },
}


def clamp_to_limit(
    window: str,
    max_points: int,
    consumed: int,
    amount: int,
    meta: dict[str, Any],
) -> int:
    """
    Trim amount so consumed + amount stays within max_points.

    Returns the amount unchanged when it fits. When it does not, the
    remaining quota is returned and meta is annotated; originalAmount
    keeps the value from before the first clamp. Raises LimitReached
    when nothing is left.
    """
    if consumed + amount <= max_points:
        return amount

    remaining = max(0, max_points - consumed)
    if remaining <= 0:
        raise LimitReached(window, max_points, consumed)

    meta["limitApplied"] = True
    meta["limitType"] = window
    meta.setdefault("originalAmount", amount)
    return remaining


class LimitPolicyService:

    def __init__(self, db: Session):
        self.db = db

    def _by_key(self, scope_key: str) -> LimitPolicy | None:
        return self.db.execute(
            select(LimitPolicy).where(LimitPolicy.scope_key == scope_key)
        ).scalar_one_or_none()

    def resolve(self, student_id: str, school_id: str | None = None) -> LimitPolicy:
        """Return the effective policy for a student. Always succeeds."""
        policy = self._by_key(make_scope_key(LimitScope.STUDENT, student_id))
        if policy:
            return policy

        if school_id:
            policy = self._by_key(make_scope_key(LimitScope.SCHOOL, school_id))
            if policy:
                return policy

        return self._by_key(LimitScope.GLOBAL.value) or self._create_default_global()

    def _create_default_global(self) -> LimitPolicy:
        policy = LimitPolicy(
            scope=LimitScope.GLOBAL,
            entity_id=None,
            scope_key=LimitScope.GLOBAL.value,
            **_copy_defaults(),
        )
        self.db.add(policy)
        self.db.flush()
        logger.info("Created default global point limit policy")
        return policy

    def list_policies(
        self,
        scope: LimitScope | None = None,
        entity_id: str | None = None,
    ) -> list[LimitPolicy]:
        query = select(LimitPolicy).order_by(LimitPolicy.id)
        if scope is not None:
            query = query.where(LimitPolicy.scope == scope)
        if entity_id is not None:
            query = query.where(LimitPolicy.entity_id == entity_id)
        return list(self.db.execute(query).scalars().all())

    def get_policy(self, policy_id: int) -> LimitPolicy:
        policy = self.db.get(LimitPolicy, policy_id)
        if not policy:
            raise PolicyNotFound(policy_id)
        return policy

    def upsert(self, request: LimitPolicyUpsert) -> LimitPolicy:
        """
        Create the policy for (scope, entity_id) or merge into it.

        New policies start from the global defaults; only the fields
        present in the request are changed.
        """
        scope_key = make_scope_key(request.scope, request.entity_id)
        policy = self._by_key(scope_key)
        if not policy:
            policy = LimitPolicy(
                scope=request.scope,
                entity_id=request.entity_id,
                scope_key=scope_key,
                **_copy_defaults(),
            )
            self.db.add(policy)

        if request.limits:
            for window in ("daily", "weekly", "monthly"):
                update = getattr(request.limits, window)
                if update is None:
                    continue
                if update.enabled is not None:
                    setattr(policy, f"{window}_enabled", update.enabled)
                if update.max_points is not None:
                    setattr(policy, f"{window}_max_points", update.max_points)

        if request.source_limits:
            # Rebuild the dict so the JSON column registers the change.
            source_limits = {
                source: {period: dict(values) for period, values in periods.items()}
                for source, periods in (policy.source_limits or {}).items()
            }
            for source, update in request.source_limits.items():
                if update.daily is None:
                    continue
                daily = source_limits.setdefault(source, {}).setdefault(
                    "daily", {"enabled": False, "maxPoints": 0}
                )
                if update.daily.enabled is not None:
                    daily["enabled"] = update.daily.enabled
                if update.daily.max_points is not None:
                    daily["maxPoints"] = update.daily.max_points
            policy.source_limits = source_limits

        policy.updated_at = datetime.utcnow()
        self.db.flush()
        logger.info("Saved point limit policy %s", scope_key)
        return policy

    def delete(self, policy_id: int) -> None:
        policy = self.get_policy(policy_id)
        self.db.delete(policy)
        self.db.flush()
        logger.info("Deleted point limit policy %s", policy.scope_key)


def _copy_defaults() -> dict[str, Any]:
    values = dict(DEFAULT_GLOBAL_LIMITS)
    values["source_limits"] = {
        source: {period: dict(limit) for period, limit in periods.items()}
        for source, periods in DEFAULT_GLOBAL_LIMITS["source_limits"].items()
    }
    return values
