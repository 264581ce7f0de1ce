"""
Pydantic schemas for limit policy administration.
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from points_ledger.models.enums import LimitScope
from points_ledger.models.limit_policy import LimitPolicy


# --- Request Schemas ---

class WindowLimitUpdate(BaseModel):
    """Partial update of one window. Omitted fields keep their value."""
    enabled: bool | None = None
    max_points: int | None = Field(default=None, ge=0)


class WindowLimitsUpdate(BaseModel):
    daily: WindowLimitUpdate | None = None
    weekly: WindowLimitUpdate | None = None
    monthly: WindowLimitUpdate | None = None


class SourceLimitUpdate(BaseModel):
    daily: WindowLimitUpdate | None = None


class LimitPolicyUpsert(BaseModel):
    """Create the policy for (scope, entity_id) or merge into the existing one."""
    scope: LimitScope
    entity_id: str | None = Field(default=None, max_length=64)
    limits: WindowLimitsUpdate | None = None
    source_limits: dict[str, SourceLimitUpdate] | None = None

    @model_validator(mode="after")
    def entity_matches_scope(self) -> "LimitPolicyUpsert":
        if self.scope == LimitScope.GLOBAL:
            self.entity_id = None
        elif not self.entity_id:
            raise ValueError("entity_id is required for non-global scope")
        return self


# --- Response Schemas ---

class WindowLimitResponse(BaseModel):
    enabled: bool
    max_points: int


class LimitPolicyResponse(BaseModel):
    id: int
    scope: LimitScope
    entity_id: str | None
    limits: dict[str, WindowLimitResponse]
    source_limits: dict[str, dict[str, WindowLimitResponse]]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_policy(cls, policy: LimitPolicy) -> "LimitPolicyResponse":
        return cls(
            id=policy.id,
            scope=policy.scope,
            entity_id=policy.entity_id,
            limits={
                window: WindowLimitResponse(
                    enabled=getattr(policy, f"{window}_enabled"),
                    max_points=getattr(policy, f"{window}_max_points"),
                )
                for window in ("daily", "weekly", "monthly")
            },
            source_limits={
                source: {
                    period: WindowLimitResponse(
                        enabled=bool(values.get("enabled", False)),
                        max_points=int(values.get("maxPoints", 0)),
                    )
                    for period, values in periods.items()
                }
                for source, periods in (policy.source_limits or {}).items()
            },
            created_at=policy.created_at,
            updated_at=policy.updated_at,
        )
