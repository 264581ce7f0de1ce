"""
Entry points used by the attendance and badge collaborators.

These build the exact award requests those services send and route
them through the dispatcher, so a points failure never undoes the
check-in or the badge that triggered it. Requests that do not pass
schema validation come back as a failed outcome, never as an error.
"""

import logging
from datetime import date
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from points_ledger.models.enums import (
    AwarderRole,
    PointSource,
    TransactionKind,
)
from points_ledger.schemas.transaction import TransactionRequest
from points_ledger.services.dispatcher import DispatchOutcome, PointsDispatcher
from points_ledger.services.engine import schema_error

logger = logging.getLogger(__name__)


def _dispatch(dispatcher: PointsDispatcher, kind: str, /, **fields: Any) -> DispatchOutcome:
    try:
        request = TransactionRequest(**fields)
    except SchemaValidationError as e:
        error = schema_error(e)
        logger.info(
            "%s points for student %s rejected: %s",
            kind.capitalize(), fields.get("student_id"), error.message,
        )
        return DispatchOutcome(result=None, attempts=0, error=error)
    return dispatcher.award(request, kind)


def award_attendance_points(
    dispatcher: PointsDispatcher,
    *,
    student_id: str,
    attendance_record_id: str,
    streak: int,
    awarded_by: str,
    awarded_by_role: AwarderRole = AwarderRole.STUDENT,
    school_id: str | None = None,
    on: date | None = None,
) -> DispatchOutcome:
    """
    Award points for a daily check-in.

    The nominal amount is a placeholder of 1; a school policy, when
    the school has one, replaces it with the school's check-in value.
    The caller stores outcome.points_awarded on its attendance record.
    """
    on = on or date.today()
    return _dispatch(
        dispatcher,
        "attendance",
        student_id=student_id,
        amount=1,
        kind=TransactionKind.EARNED,
        source=PointSource.ATTENDANCE,
        source_ref=attendance_record_id,
        description="Daily attendance check-in",
        awarded_by=awarded_by,
        awarded_by_role=awarded_by_role,
        metadata={
            "sourceType": "daily_check_in",
            "date": on.isoformat(),
            "streak": streak,
        },
        school_id=school_id,
    )


def award_badge_bonus(
    dispatcher: PointsDispatcher,
    *,
    student_id: str,
    badge_id: str,
    badge_name: str,
    badge_description: str,
    points: int,
    awarded_by: str = "system",
    awarded_by_role: AwarderRole = AwarderRole.SYSTEM,
    source_type: str = "achievement_badge",
) -> DispatchOutcome:
    """
    Award the bonus points attached to a badge that was just granted.

    A badge without a positive bonus awards nothing and reports an
    outcome with no result and no error.
    """
    if points <= 0:
        return DispatchOutcome(result=None, attempts=0)

    return _dispatch(
        dispatcher,
        "badge",
        student_id=student_id,
        amount=points,
        kind=TransactionKind.EARNED,
        source=PointSource.BADGE,
        source_ref=badge_id,
        description=f"Badge earned: {badge_name}",
        awarded_by=awarded_by,
        awarded_by_role=awarded_by_role,
        metadata={
            "sourceType": source_type,
            "badgeName": badge_name,
            "badgeDescription": badge_description,
        },
    )
