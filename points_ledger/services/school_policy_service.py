"""
School policy service — per-school point values.

A school can fix what a check-in or a task category is worth and
cap what a student earns per day at that school. This shaping runs
before the limit pipeline: it decides the nominal amount, and the
limit policy then decides how much of it is actually credited.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from points_ledger.models.enums import PointSource, LimitWindow
from points_ledger.models.school_point_policy import (
    SchoolPointPolicy,
    DEFAULT_TASK_CATEGORIES,
)
from points_ledger.schemas.school_policy import SchoolPolicyUpdate
from points_ledger.services.ledger_service import LedgerService
from points_ledger.services.limit_policy_service import clamp_to_limit

logger = logging.getLogger(__name__)

SCHOOL_DAILY_WINDOW = "school_daily"


class SchoolPolicyService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger_service = LedgerService(db)

    def find(self, school_id: str) -> SchoolPointPolicy | None:
        return self.db.execute(
            select(SchoolPointPolicy).where(
                SchoolPointPolicy.school_id == school_id
            )
        ).scalar_one_or_none()

    def get_or_create(self, school_id: str) -> SchoolPointPolicy:
        policy = self.find(school_id)
        if not policy:
            policy = SchoolPointPolicy(
                school_id=school_id,
                task_categories=dict(DEFAULT_TASK_CATEGORIES),
            )
            self.db.add(policy)
            self.db.flush()
        return policy

    def update(self, school_id: str, request: SchoolPolicyUpdate) -> SchoolPointPolicy:
        policy = self.get_or_create(school_id)
        for field, value in request.model_dump(exclude_none=True).items():
            if field == "task_categories":
                value = {**policy.task_categories, **value}
            setattr(policy, field, value)
        policy.updated_at = datetime.utcnow()
        self.db.flush()
        logger.info("Updated point policy for school %s", school_id)
        return policy

    def shape_amount(
        self,
        policy: SchoolPointPolicy,
        *,
        student_id: str,
        source: PointSource,
        amount: int,
        meta: dict[str, Any],
        at: datetime,
    ) -> int:
        """
        Replace the caller's nominal amount with the school's value.

        - attendance daily_check_in: the school's check-in value, plus
          the streak bonus when the streak lands on the interval
        - task with a category: that category's value, else the base
        - then the school's own daily cap, if enabled

        meta is annotated in place (bonusPoints, limit flags).
        """
        if source == PointSource.ATTENDANCE and meta.get("sourceType") == "daily_check_in":
            amount = policy.daily_check_in
            streak = meta.get("streak")
            if (
                policy.streak_enabled
                and isinstance(streak, int)
                and streak > 0
                and streak % policy.streak_interval == 0
            ):
                meta["bonusPoints"] = policy.streak_bonus
                amount += policy.streak_bonus

        elif source == PointSource.TASK:
            category = meta.get("category")
            if category and isinstance(category, str):
                amount = policy.task_points(category)

        if policy.daily_limit_enabled:
            consumed = self.ledger_service.consumed(
                student_id, LimitWindow.DAILY, at
            )
            amount = clamp_to_limit(
                SCHOOL_DAILY_WINDOW,
                policy.daily_limit_max_points,
                consumed,
                amount,
                meta,
            )

        return amount
