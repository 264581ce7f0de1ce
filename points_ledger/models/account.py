"""
Student point account model.

The account is the only mutable entity in the engine. Its balance
is a running total kept in step with the ledger: every change to
current_balance is accompanied by exactly one LedgerEntry written
in the same database transaction.

The version column is SQLAlchemy's optimistic-concurrency counter.
Two sessions that read the same version and both try to write will
see the second one fail with StaleDataError instead of silently
overwriting the first.
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from points_ledger.models.base import Base


# Minimum totalEarned needed to reach each level. Level 1 is free.
LEVEL_THRESHOLDS: dict[int, int] = {
    2: 100,
    3: 250,
    4: 500,
    5: 1000,
    6: 1750,
    7: 2750,
    8: 4000,
    9: 5500,
    10: 7500,
}
MAX_LEVEL = max(LEVEL_THRESHOLDS)


def level_for(total_earned: int) -> int:
    """Highest level whose threshold total_earned has reached."""
    level = 1
    for candidate in sorted(LEVEL_THRESHOLDS):
        if total_earned >= LEVEL_THRESHOLDS[candidate]:
            level = candidate
        else:
            break
    return level


class Account(Base):
    __tablename__ = "point_accounts"
    __table_args__ = (
        CheckConstraint("current_balance >= 0", name="ck_balance_non_negative"),
        CheckConstraint("total_earned >= 0", name="ck_earned_non_negative"),
        CheckConstraint("total_spent >= 0", name="ck_spent_non_negative"),
        CheckConstraint("level >= 1", name="ck_level_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    current_balance: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    total_earned: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    total_spent: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    entries: Mapped[list["LedgerEntry"]] = relationship(
        back_populates="account"
    )

    __mapper_args__ = {"version_id_col": version}

    # --- Balance mutations ---
    # These only touch the in-memory row. The services decide whether
    # a mutation is allowed and always pair it with a ledger entry.

    def credit(self, amount: int) -> None:
        self.current_balance += amount
        self.total_earned += amount
        self.refresh_level()

    def debit(self, amount: int) -> None:
        self.current_balance -= amount
        self.total_spent += amount

    def refresh_level(self) -> int:
        self.level = level_for(self.total_earned)
        return self.level

    @property
    def points_to_next_level(self) -> int:
        """Points still needed for the next level, 0 at the top level."""
        if self.level >= MAX_LEVEL:
            return 0
        return max(0, LEVEL_THRESHOLDS[self.level + 1] - self.total_earned)

    @property
    def level_progress(self) -> float:
        """Percentage of the way from the current level to the next."""
        if self.level >= MAX_LEVEL:
            return 100.0
        floor = LEVEL_THRESHOLDS.get(self.level, 0)
        ceiling = LEVEL_THRESHOLDS[self.level + 1]
        return round((self.total_earned - floor) / (ceiling - floor) * 100, 1)

    def __repr__(self) -> str:
        return (
            f"<Account {self.student_id} balance={self.current_balance} "
            f"level={self.level}>"
        )
