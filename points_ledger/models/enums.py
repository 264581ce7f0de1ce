"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class TransactionKind(str, enum.Enum):
    """Direction of a point movement."""
    EARNED = "earned"
    SPENT = "spent"
    ADJUSTED = "adjusted"


class PointSource(str, enum.Enum):
    """Where a point movement originated."""
    TASK = "task"
    ATTENDANCE = "attendance"
    BEHAVIOR = "behavior"
    BADGE = "badge"
    REDEMPTION = "redemption"
    MANUAL_ADJUSTMENT = "manual_adjustment"


class LimitScope(str, enum.Enum):
    """Who a limit policy applies to, most specific first."""
    STUDENT = "student"
    SCHOOL = "school"
    GLOBAL = "global"


class LimitWindow(str, enum.Enum):
    """Time windows with a global cap, in evaluation order."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class AwarderRole(str, enum.Enum):
    STUDENT = "student"
    PARENT = "parent"
    TEACHER = "teacher"
    SCHOOL_ADMIN = "school_admin"
    SOCIAL_WORKER = "social_worker"
    PLATFORM_ADMIN = "platform_admin"
    SYSTEM = "system"
