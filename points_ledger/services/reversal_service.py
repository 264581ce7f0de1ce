"""
Reversal service — undo a ledger entry with an offsetting entry.

The original entry is never modified. A new adjusted entry carrying
the opposite amount is appended, and a ReversalLink row ties the two
together. The link is what makes an entry "reversed", and its unique
constraint is what makes reversing twice impossible.
"""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from points_ledger.exceptions import (
    AccountNotFound,
    AlreadyReversed,
    ValidationError,
    WouldGoNegative,
)
from points_ledger.models.account import Account
from points_ledger.models.enums import TransactionKind, PointSource
from points_ledger.models.reversal_link import ReversalLink
from points_ledger.schemas.transaction import (
    LedgerEntryResponse,
    ReversalRequest,
    ReversalResult,
)
from points_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class ReversalService:

    def __init__(self, db: Session, clock: Callable[[], datetime] | None = None):
        self.db = db
        self.clock = clock or datetime.now
        self.ledger_service = LedgerService(db)

    def reverse(self, entry_id: int, request: ReversalRequest) -> ReversalResult:
        """
        Reverse a previously applied entry.

        An entry that added points (earned, or a positive adjustment)
        is reversed by taking them back out, which fails with
        WouldGoNegative if the student has already spent them. An
        entry that removed points is reversed by giving them back.
        Counters move with the balance, so an immediate reversal
        returns the account exactly to its prior state.
        """
        original = self.ledger_service.get_entry(entry_id)

        if "reversedTransactionId" in original.meta:
            raise ValidationError(
                f"Transaction {entry_id} is itself a reversal and cannot be reversed"
            )

        existing = self.db.execute(
            select(ReversalLink).where(ReversalLink.original_entry_id == entry_id)
        ).scalar_one_or_none()
        if existing:
            raise AlreadyReversed(entry_id, existing.reversal_entry_id)

        account = self.db.get(Account, original.account_id)
        if not account:
            raise AccountNotFound(original.student_id)

        reversal_amount = -original.amount

        if reversal_amount < 0:
            if account.current_balance < abs(reversal_amount):
                raise WouldGoNegative(account.current_balance, abs(reversal_amount))
            account.current_balance += reversal_amount
            account.total_earned += reversal_amount
            account.refresh_level()
        else:
            account.current_balance += reversal_amount
            account.total_spent -= reversal_amount

        self.db.flush()

        now = self.clock()
        reversal = self.ledger_service.append(
            account,
            amount=reversal_amount,
            kind=TransactionKind.ADJUSTED,
            source=PointSource.MANUAL_ADJUSTMENT,
            source_ref=original.source_ref,
            description=f"Reversal: {request.reason}",
            awarded_by=request.reversed_by,
            awarded_by_role=request.reversed_by_role,
            meta={
                "reversalReason": request.reason,
                "reversedTransactionId": original.id,
                "originalType": original.kind.value,
                "originalSource": original.source.value,
                "originalAmount": original.amount,
            },
            occurred_at=now,
        )

        self.db.add(ReversalLink(
            original_entry_id=original.id,
            reversal_entry_id=reversal.id,
            reason=request.reason,
            reversed_by=request.reversed_by,
            reversed_at=now,
        ))
        self.db.flush()
        self.db.expire(original, ["reversal"])

        logger.info(
            "Reversed entry %s for student %s (%+d), balance now %s",
            original.id, original.student_id,
            reversal_amount, account.current_balance,
        )

        return ReversalResult(
            original_entry_id=original.id,
            reversal_entry=LedgerEntryResponse.model_validate(reversal),
            balance_after=reversal.balance_after,
        )
