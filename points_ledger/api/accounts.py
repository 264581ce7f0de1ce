"""
Point account API endpoints.
"""

import math
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from points_ledger.api.errors import http_error
from points_ledger.exceptions import PointsError
from points_ledger.models.base import get_db
from points_ledger.models.enums import PointSource, TransactionKind
from points_ledger.services.account_service import AccountService
from points_ledger.services.ledger_service import LedgerService
from points_ledger.schemas.account import (
    AccountResponse,
    HistoryPage,
    KindSummary,
    SourceSummary,
)
from points_ledger.schemas.transaction import LedgerEntryResponse

router = APIRouter(prefix="/points/accounts", tags=["Accounts"])


@router.post("/{student_id}", response_model=AccountResponse, status_code=201)
def create_account(
    student_id: str,
    db: Session = Depends(get_db),
):
    """
    Open an empty account ahead of the first award.

    Not required: the first earned transaction opens one anyway.
    """
    service = AccountService(db)
    try:
        account = service.create_account(student_id)
        db.commit()
        return account
    except PointsError as e:
        db.rollback()
        raise http_error(e)


@router.get("/{student_id}", response_model=AccountResponse)
def get_account(
    student_id: str,
    db: Session = Depends(get_db),
):
    """Balance, counters and level progress for a student."""
    try:
        return AccountService(db).get_account(student_id)
    except PointsError as e:
        raise http_error(e)


@router.get("/{student_id}/history", response_model=HistoryPage)
def get_history(
    student_id: str,
    kind: TransactionKind | None = None,
    source: PointSource | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """A student's ledger entries, newest first, with optional filters."""
    entries, total = LedgerService(db).history(
        student_id,
        kind=kind,
        source=source,
        start=start,
        end=end,
        page=page,
        limit=limit,
    )
    return HistoryPage(
        entries=[LedgerEntryResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit),
    )


@router.get("/{student_id}/summary", response_model=list[KindSummary])
def get_summary(
    student_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
):
    """Point totals grouped by kind, then by source."""
    grouped: dict[TransactionKind, KindSummary] = {}
    for kind, source, total, count in LedgerService(db).summary(student_id, start, end):
        summary = grouped.setdefault(
            kind, KindSummary(kind=kind, total_points=0, sources=[])
        )
        summary.sources.append(
            SourceSummary(source=source, total_points=total, count=count)
        )
        summary.total_points += total
    return list(grouped.values())
