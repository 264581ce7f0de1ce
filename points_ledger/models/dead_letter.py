"""
Dead-letter model.

When a collaborator cannot get points awarded after its retries are
exhausted, the attempt is parked here for manual resolution. Like
ledger entries, dead letters are append-only; resolving one is a
separate operational concern.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import String, Integer, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from points_ledger.models.base import Base


class DeadLetter(Base):
    __tablename__ = "dead_letters"

    id: Mapped[int] = mapped_column(primary_key=True)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    student_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    source_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    error: Mapped[str] = mapped_column(Text, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<DeadLetter {self.kind} {self.student_id} ({self.attempts})>"
