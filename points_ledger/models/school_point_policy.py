"""
School point policy model.

Per-school point values that shape the nominal amount of an award
before the limit pipeline sees it: a fixed value for attendance
check-ins with a periodic streak bonus, a task category table, and
an optional school-wide daily cap.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import String, Integer, Boolean, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from points_ledger.models.base import Base


DEFAULT_TASK_CATEGORIES: dict[str, int] = {
    "homework": 10,
    "quiz": 15,
    "exam": 25,
    "project": 20,
    "reading": 5,
}


class SchoolPointPolicy(Base):
    __tablename__ = "school_point_policies"

    id: Mapped[int] = mapped_column(primary_key=True)
    school_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )

    # Attendance
    daily_check_in: Mapped[int] = mapped_column(
        Integer, nullable=False, default=5
    )
    streak_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    streak_interval: Mapped[int] = mapped_column(
        Integer, nullable=False, default=5
    )
    streak_bonus: Mapped[int] = mapped_column(
        Integer, nullable=False, default=5
    )

    # Tasks
    task_base: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    task_categories: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=lambda: dict(DEFAULT_TASK_CATEGORIES)
    )

    # School-wide daily cap
    daily_limit_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    daily_limit_max_points: Mapped[int] = mapped_column(
        Integer, nullable=False, default=100
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def task_points(self, category: str) -> int:
        return int(self.task_categories.get(category, self.task_base))

    def __repr__(self) -> str:
        return f"<SchoolPointPolicy {self.school_id}>"
