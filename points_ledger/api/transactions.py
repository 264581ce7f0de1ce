"""
Point transaction API endpoints.

The API layer is thin. It handles HTTP concerns (status codes,
response formatting) and delegates to the PointsEngine for writes
and the LedgerService for reads.
"""

import math

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from points_ledger.api.errors import http_error
from points_ledger.exceptions import PointsError
from points_ledger.models.base import get_db
from points_ledger.models.enums import PointSource
from points_ledger.services.engine import PointsEngine, get_engine
from points_ledger.services.ledger_service import LedgerService
from points_ledger.schemas.account import HistoryPage
from points_ledger.schemas.transaction import (
    LedgerEntryResponse,
    ReversalRequest,
    ReversalResult,
    TransactionRequest,
    TransactionResult,
)

router = APIRouter(prefix="/points/transactions", tags=["Transactions"])


@router.post("", response_model=TransactionResult, status_code=201)
def create_transaction(
    request: TransactionRequest,
    engine: PointsEngine = Depends(get_engine),
):
    """
    Award, spend or adjust points.

    An award that runs into a limit is trimmed and still succeeds with
    capped=true. An award with no quota left fails with LIMIT_REACHED
    and the limit and already-earned figures.
    """
    try:
        return engine.submit(request)
    except PointsError as e:
        raise http_error(e)


@router.get("/{entry_id}", response_model=LedgerEntryResponse)
def get_transaction(
    entry_id: int,
    db: Session = Depends(get_db),
):
    """Get a single ledger entry, including whether it was reversed."""
    try:
        return LedgerService(db).get_entry(entry_id)
    except PointsError as e:
        raise http_error(e)


@router.post("/{entry_id}/reverse", response_model=ReversalResult)
def reverse_transaction(
    entry_id: int,
    request: ReversalRequest,
    engine: PointsEngine = Depends(get_engine),
):
    """Reverse an entry by appending an offsetting adjustment."""
    try:
        return engine.reverse(
            entry_id,
            reason=request.reason,
            reversed_by=request.reversed_by,
            reversed_by_role=request.reversed_by_role,
        )
    except PointsError as e:
        raise http_error(e)


@router.get("/source/{source}/{source_ref}", response_model=HistoryPage)
def get_transactions_by_source(
    source: PointSource,
    source_ref: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """All entries tied to one originating record, newest first."""
    entries, total = LedgerService(db).by_source(source, source_ref, page, limit)
    return HistoryPage(
        entries=[LedgerEntryResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit),
    )
