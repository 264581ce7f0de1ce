"""
Pydantic schemas for point accounts and their history.
"""

from datetime import datetime

from pydantic import BaseModel

from points_ledger.models.enums import TransactionKind, PointSource
from points_ledger.schemas.transaction import LedgerEntryResponse


class AccountResponse(BaseModel):
    id: int
    student_id: str
    current_balance: int
    total_earned: int
    total_spent: int
    level: int
    points_to_next_level: int
    level_progress: float
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class HistoryPage(BaseModel):
    entries: list[LedgerEntryResponse]
    total: int
    page: int
    limit: int
    pages: int


class SourceSummary(BaseModel):
    source: PointSource
    total_points: int
    count: int


class KindSummary(BaseModel):
    kind: TransactionKind
    total_points: int
    sources: list[SourceSummary]
