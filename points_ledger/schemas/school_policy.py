"""
Pydantic schemas for per-school point policies.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SchoolPolicyUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""
    daily_check_in: int | None = Field(default=None, ge=0)
    streak_enabled: bool | None = None
    streak_interval: int | None = Field(default=None, ge=1)
    streak_bonus: int | None = Field(default=None, ge=0)
    task_base: int | None = Field(default=None, ge=0)
    task_categories: dict[str, int] | None = None
    daily_limit_enabled: bool | None = None
    daily_limit_max_points: int | None = Field(default=None, ge=0)


class SchoolPolicyResponse(BaseModel):
    id: int
    school_id: str
    daily_check_in: int
    streak_enabled: bool
    streak_interval: int
    streak_bonus: int
    task_base: int
    task_categories: dict[str, int]
    daily_limit_enabled: bool
    daily_limit_max_points: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
