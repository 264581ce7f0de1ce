"""Business logic services."""

from points_ledger.services.ledger_service import LedgerService
from points_ledger.services.account_service import AccountService
from points_ledger.services.limit_policy_service import LimitPolicyService
from points_ledger.services.school_policy_service import SchoolPolicyService
from points_ledger.services.transaction_service import TransactionService
from points_ledger.services.reversal_service import ReversalService
from points_ledger.services.engine import PointsEngine, get_engine
from points_ledger.services.dispatcher import PointsDispatcher

__all__ = [
    "LedgerService",
    "AccountService",
    "LimitPolicyService",
    "SchoolPolicyService",
    "TransactionService",
    "ReversalService",
    "PointsEngine",
    "get_engine",
    "PointsDispatcher",
]
