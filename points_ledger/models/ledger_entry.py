"""
Ledger entry model.

One row per point movement. Entries are immutable: once written
they are never modified or deleted. A correction is always a new
entry linked to the one it corrects (see ReversalLink).

The day/week/month buckets are derived from occurred_at once, at
insert time, by the LedgerService. Limit queries match on the
bucket columns instead of recomputing date ranges.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    String, Integer, DateTime, ForeignKey, JSON, Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from points_ledger.models.base import Base
from points_ledger.models.enums import TransactionKind, PointSource, AwarderRole


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("ix_ledger_student_occurred", "student_id", "occurred_at"),
        Index("ix_ledger_account_kind", "account_id", "kind"),
        Index("ix_ledger_source_ref", "source", "source_ref"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("point_accounts.id"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[TransactionKind] = mapped_column(
        SAEnum(
            TransactionKind,
            name="transaction_kind_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    source: Mapped[PointSource] = mapped_column(
        SAEnum(PointSource, name="point_source_enum", create_constraint=True),
        nullable=False,
    )
    source_ref: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    awarded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    awarded_by_role: Mapped[AwarderRole] = mapped_column(
        SAEnum(AwarderRole, name="awarder_role_enum", create_constraint=True),
        nullable=False,
    )
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    # "metadata" is reserved on declarative classes, so the attribute
    # is meta while the column keeps the domain name.
    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, index=True
    )
    day_bucket: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, index=True
    )
    week_bucket: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, index=True
    )
    month_bucket: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, index=True
    )

    account: Mapped["Account"] = relationship(back_populates="entries")
    reversal: Mapped[Optional["ReversalLink"]] = relationship(
        primaryjoin="LedgerEntry.id == ReversalLink.original_entry_id",
        viewonly=True,
        uselist=False,
    )

    @property
    def is_reversed(self) -> bool:
        return self.reversal is not None

    @property
    def reversal_entry_id(self) -> int | None:
        return self.reversal.reversal_entry_id if self.reversal else None

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.kind.value} {self.amount:+d} "
            f"{self.source.value} balance_after={self.balance_after}>"
        )
