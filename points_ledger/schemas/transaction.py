"""
Pydantic schemas for point transactions and reversals.
"""

from datetime import datetime
from typing import Any

from pydantic import (
    AliasChoices, BaseModel, Field, field_validator, model_validator,
)

from points_ledger.models.enums import TransactionKind, PointSource, AwarderRole


# --- Request Schemas ---

class TransactionRequest(BaseModel):
    """
    A request to move points in or out of a student's account.

    amount is the nominal, caller-supplied value. For earned and
    spent it must be positive; the sign stored in the ledger is
    derived from kind. Only adjusted accepts a signed amount.
    """
    student_id: str = Field(min_length=1, max_length=64)
    amount: int
    kind: TransactionKind
    source: PointSource
    source_ref: str | None = Field(default=None, max_length=64)
    description: str = Field(min_length=1, max_length=255)
    awarded_by: str = Field(min_length=1, max_length=64)
    awarded_by_role: AwarderRole
    metadata: dict[str, Any] = Field(default_factory=dict)
    school_id: str | None = Field(default=None, max_length=64)

    @field_validator("source_ref")
    @classmethod
    def blank_source_ref_is_none(cls, v: str | None) -> str | None:
        return v or None

    @model_validator(mode="after")
    def amount_sign_matches_kind(self) -> "TransactionRequest":
        if self.amount == 0:
            raise ValueError("amount must be non-zero")
        if self.kind != TransactionKind.ADJUSTED and self.amount < 0:
            raise ValueError(
                f"amount must be positive for {self.kind.value} transactions"
            )
        return self

    @property
    def resolved_school_id(self) -> str | None:
        if self.school_id:
            return self.school_id
        school_id = self.metadata.get("schoolId")
        return school_id if isinstance(school_id, str) else None


class ReversalRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=255)
    reversed_by: str = Field(min_length=1, max_length=64)
    reversed_by_role: AwarderRole = AwarderRole.PLATFORM_ADMIN

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("reason for reversal is required")
        return v.strip()


# --- Response Schemas ---

class LedgerEntryResponse(BaseModel):
    id: int
    account_id: int
    student_id: str
    amount: int
    kind: TransactionKind
    source: PointSource
    source_ref: str | None
    description: str
    awarded_by: str
    awarded_by_role: AwarderRole
    balance_after: int
    metadata: dict[str, Any] = Field(
        validation_alias=AliasChoices("meta", "metadata")
    )
    occurred_at: datetime
    reversed: bool = Field(
        default=False, validation_alias=AliasChoices("is_reversed", "reversed")
    )
    reversal_entry_id: int | None = None

    model_config = {"from_attributes": True}


class TransactionResult(BaseModel):
    """
    Outcome of an apply call.

    capped is true when a limit trimmed the award; the UI uses it to
    explain "partial points awarded". duplicate is true when the
    request matched an earlier award for the same source reference
    and nothing new was written.
    """
    entry_id: int
    effective_amount: int
    balance_after: int
    capped: bool = False
    duplicate: bool = False
    limit_type: str | None = None
    original_amount: int | None = None
    level: int


class ReversalResult(BaseModel):
    original_entry_id: int
    reversal_entry: LedgerEntryResponse
    balance_after: int
