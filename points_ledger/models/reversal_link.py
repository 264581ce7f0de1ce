"""
Reversal index.

Maps an original ledger entry to the entry that reversed it. Keeping
this in its own table means ledger rows are never updated: whether
an entry has been reversed is answered by looking here. The unique
constraint on original_entry_id makes a second reversal impossible
even if two requests slip past the service-level check.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from points_ledger.models.base import Base


class ReversalLink(Base):
    __tablename__ = "reversal_links"

    id: Mapped[int] = mapped_column(primary_key=True)
    original_entry_id: Mapped[int] = mapped_column(
        ForeignKey("ledger_entries.id"), unique=True, nullable=False
    )
    reversal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("ledger_entries.id"), unique=True, nullable=False
    )
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    reversed_by: Mapped[str] = mapped_column(String(64), nullable=False)
    reversed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    original_entry: Mapped["LedgerEntry"] = relationship(
        foreign_keys=[original_entry_id]
    )
    reversal_entry: Mapped["LedgerEntry"] = relationship(
        foreign_keys=[reversal_entry_id]
    )

    def __repr__(self) -> str:
        return (
            f"<ReversalLink {self.original_entry_id} -> "
            f"{self.reversal_entry_id}>"
        )
