"""
Point limit policy model.

A policy caps how many points a student may earn per day, week and
month, plus a daily cap per point source. Policies exist at three
scopes (student, school, global) and the most specific one that
exists wins (see LimitPolicyService.resolve).

scope_key folds (scope, entity_id) into one unique column. A plain
unique constraint over (scope, entity_id) would not stop a second
global row, because entity_id is NULL there and NULLs never collide.
"""

from datetime import datetime
from typing import Any, NamedTuple

from sqlalchemy import String, Integer, Boolean, DateTime, JSON, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from points_ledger.models.base import Base
from points_ledger.models.enums import LimitScope, LimitWindow


class WindowLimit(NamedTuple):
    enabled: bool
    max_points: int


def make_scope_key(scope: LimitScope, entity_id: str | None) -> str:
    if scope == LimitScope.GLOBAL:
        return LimitScope.GLOBAL.value
    return f"{scope.value}:{entity_id}"


class LimitPolicy(Base):
    __tablename__ = "limit_policies"

    id: Mapped[int] = mapped_column(primary_key=True)
    scope: Mapped[LimitScope] = mapped_column(
        SAEnum(LimitScope, name="limit_scope_enum", create_constraint=True),
        nullable=False,
    )
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    scope_key: Mapped[str] = mapped_column(
        String(80), unique=True, nullable=False, index=True
    )

    daily_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    daily_max_points: Mapped[int] = mapped_column(Integer, nullable=False)
    weekly_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    weekly_max_points: Mapped[int] = mapped_column(Integer, nullable=False)
    monthly_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    monthly_max_points: Mapped[int] = mapped_column(Integer, nullable=False)

    # {"attendance": {"daily": {"enabled": true, "maxPoints": 10}}, ...}
    source_limits: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def window_limit(self, window: LimitWindow) -> WindowLimit:
        return WindowLimit(
            enabled=getattr(self, f"{window.value}_enabled"),
            max_points=getattr(self, f"{window.value}_max_points"),
        )

    def source_daily_limit(self, key: str) -> WindowLimit | None:
        """Daily cap for a source, or None if the policy has none."""
        daily = (self.source_limits or {}).get(key, {}).get("daily")
        if not daily:
            return None
        return WindowLimit(
            enabled=bool(daily.get("enabled", False)),
            max_points=int(daily.get("maxPoints", 0)),
        )

    def __repr__(self) -> str:
        return f"<LimitPolicy {self.scope_key}>"
