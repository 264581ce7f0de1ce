"""
Ledger service — the append-only log of point movements.

This service enforces the ledger rules:
1. Entries are immutable (append-only, never updated or deleted)
2. Every entry snapshots the account balance it produced
3. Time buckets are derived once, when the entry is written

No other service inserts ledger rows directly. The caller owns the
database transaction and commits the entry together with the
account mutation that produced it.
"""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from points_ledger.exceptions import EntryNotFound
from points_ledger.models.account import Account
from points_ledger.models.ledger_entry import LedgerEntry
from points_ledger.models.enums import (
    TransactionKind,
    PointSource,
    AwarderRole,
    LimitWindow,
)


def day_start(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def week_start(moment: datetime) -> datetime:
    """Midnight of the Sunday on or before moment."""
    days_since_sunday = (moment.weekday() + 1) % 7
    return day_start(moment) - timedelta(days=days_since_sunday)


def month_start(moment: datetime) -> datetime:
    return day_start(moment).replace(day=1)


BUCKET_COLUMNS = {
    LimitWindow.DAILY: LedgerEntry.day_bucket,
    LimitWindow.WEEKLY: LedgerEntry.week_bucket,
    LimitWindow.MONTHLY: LedgerEntry.month_bucket,
}

BUCKET_FUNCTIONS = {
    LimitWindow.DAILY: day_start,
    LimitWindow.WEEKLY: week_start,
    LimitWindow.MONTHLY: month_start,
}


class LedgerService:
    """
    All ledger reads and writes pass through this service.

    The service takes a database session as a constructor
    argument. This means the caller controls the transaction
    boundary: they decide when to commit or rollback.
    """

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        account: Account,
        *,
        amount: int,
        kind: TransactionKind,
        source: PointSource,
        description: str,
        awarded_by: str,
        awarded_by_role: AwarderRole,
        occurred_at: datetime,
        source_ref: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> LedgerEntry:
        """
        Write one entry reflecting a mutation already applied to account.

        balance_after is read from the account here, so the caller
        must mutate the account first and append second, in the
        same session.
        """
        entry = LedgerEntry(
            account_id=account.id,
            student_id=account.student_id,
            amount=amount,
            kind=kind,
            source=source,
            source_ref=source_ref,
            description=description,
            awarded_by=awarded_by,
            awarded_by_role=awarded_by_role,
            balance_after=account.current_balance,
            meta=dict(meta or {}),
            occurred_at=occurred_at,
            day_bucket=day_start(occurred_at),
            week_bucket=week_start(occurred_at),
            month_bucket=month_start(occurred_at),
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def consumed(
        self,
        student_id: str,
        window: LimitWindow,
        at: datetime,
        source: PointSource | None = None,
    ) -> int:
        """
        Points already earned by student_id in the window containing at.

        Only earned entries count. Passing source narrows the sum to
        that source, which is how per-source caps are measured.
        """
        bucket_column = BUCKET_COLUMNS[window]
        query = select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
            LedgerEntry.student_id == student_id,
            LedgerEntry.kind == TransactionKind.EARNED,
            bucket_column == BUCKET_FUNCTIONS[window](at),
        )
        if source is not None:
            query = query.where(LedgerEntry.source == source)
        return int(self.db.execute(query).scalar())

    def get_entry(self, entry_id: int) -> LedgerEntry:
        entry = self.db.get(LedgerEntry, entry_id)
        if not entry:
            raise EntryNotFound(entry_id)
        return entry

    def find_earned_by_source_ref(
        self, student_id: str, source: PointSource, source_ref: str
    ) -> LedgerEntry | None:
        """Earliest earned entry for this real-world event, if any."""
        return self.db.execute(
            select(LedgerEntry)
            .where(
                LedgerEntry.student_id == student_id,
                LedgerEntry.source == source,
                LedgerEntry.source_ref == source_ref,
                LedgerEntry.kind == TransactionKind.EARNED,
            )
            .order_by(LedgerEntry.id)
            .limit(1)
        ).scalar_one_or_none()

    def balance_from_entries(self, account_id: int) -> int:
        """
        Recompute a balance from the ledger alone.

        The stored Account.current_balance must always equal this.
        Used by audits and tests to prove the running total never
        drifted from the history.
        """
        total = self.db.execute(
            select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
                LedgerEntry.account_id == account_id
            )
        ).scalar()
        return int(total)

    def history(
        self,
        student_id: str,
        *,
        kind: TransactionKind | None = None,
        source: PointSource | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[LedgerEntry], int]:
        """Return one page of a student's entries, newest first, and the total."""
        conditions = [LedgerEntry.student_id == student_id]
        if kind is not None:
            conditions.append(LedgerEntry.kind == kind)
        if source is not None:
            conditions.append(LedgerEntry.source == source)
        if start is not None:
            conditions.append(LedgerEntry.occurred_at >= start)
        if end is not None:
            conditions.append(LedgerEntry.occurred_at <= end)

        total = self.db.execute(
            select(func.count(LedgerEntry.id)).where(*conditions)
        ).scalar()

        entries = self.db.execute(
            select(LedgerEntry)
            .where(*conditions)
            .order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(entries), int(total)

    def by_source(
        self,
        source: PointSource,
        source_ref: str,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[LedgerEntry], int]:
        conditions = [
            LedgerEntry.source == source,
            LedgerEntry.source_ref == source_ref,
        ]
        total = self.db.execute(
            select(func.count(LedgerEntry.id)).where(*conditions)
        ).scalar()
        entries = self.db.execute(
            select(LedgerEntry)
            .where(*conditions)
            .order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(entries), int(total)

    def summary(
        self,
        student_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[tuple[TransactionKind, PointSource, int, int]]:
        """(kind, source, total points, entry count) rows for a student."""
        conditions = [LedgerEntry.student_id == student_id]
        if start is not None:
            conditions.append(LedgerEntry.occurred_at >= start)
        if end is not None:
            conditions.append(LedgerEntry.occurred_at <= end)

        rows = self.db.execute(
            select(
                LedgerEntry.kind,
                LedgerEntry.source,
                func.sum(LedgerEntry.amount),
                func.count(LedgerEntry.id),
            )
            .where(*conditions)
            .group_by(LedgerEntry.kind, LedgerEntry.source)
            .order_by(LedgerEntry.kind, LedgerEntry.source)
        ).all()
        return [(kind, source, int(total), int(count)) for kind, source, total, count in rows]
