"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from points_ledger.models.base import Base
from points_ledger.models.enums import (
    TransactionKind,
    PointSource,
    LimitScope,
    LimitWindow,
    AwarderRole,
)
from points_ledger.models.account import Account
from points_ledger.models.ledger_entry import LedgerEntry
from points_ledger.models.reversal_link import ReversalLink
from points_ledger.models.limit_policy import LimitPolicy
from points_ledger.models.school_point_policy import SchoolPointPolicy
from points_ledger.models.dead_letter import DeadLetter

__all__ = [
    "Base",
    "TransactionKind",
    "PointSource",
    "LimitScope",
    "LimitWindow",
    "AwarderRole",
    "Account",
    "LedgerEntry",
    "ReversalLink",
    "LimitPolicy",
    "SchoolPointPolicy",
    "DeadLetter",
]
