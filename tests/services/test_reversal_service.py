"""
Tests for reversing ledger entries.
"""

import pytest

from points_ledger.exceptions import (
    AlreadyReversed,
    EntryNotFound,
    ValidationError,
    WouldGoNegative,
)
from points_ledger.models.enums import (
    AwarderRole,
    LimitWindow,
    PointSource,
    TransactionKind,
)
from points_ledger.schemas.transaction import ReversalRequest
from points_ledger.services.account_service import AccountService
from points_ledger.services.ledger_service import LedgerService
from points_ledger.services.reversal_service import ReversalService
from points_ledger.services.transaction_service import TransactionService

from points_helpers import adjust, earn, spend


def reversal(reason="Awarded by mistake"):
    return ReversalRequest(reason=reason, reversed_by="admin-1")


def snapshot(db_session, student_id="stu-1"):
    account = AccountService(db_session).get_account(student_id)
    return (
        account.current_balance,
        account.total_earned,
        account.total_spent,
        account.level,
    )


class TestReverseEarned:

    def test_reversal_restores_prior_state(self, db_session, clock):
        service = TransactionService(db_session, clock=clock)
        service.apply(earn(amount=60))
        db_session.commit()
        before = snapshot(db_session)

        award = service.apply(earn(amount=40))
        db_session.commit()
        assert snapshot(db_session)[3] == 2

        ReversalService(db_session, clock=clock).reverse(award.entry_id, reversal())
        db_session.commit()

        assert snapshot(db_session) == before

    def test_reversal_appends_offsetting_entry(self, db_session, clock):
        award = TransactionService(db_session, clock=clock).apply(earn(amount=40))
        result = ReversalService(db_session, clock=clock).reverse(
            award.entry_id, reversal("Duplicate award")
        )
        db_session.commit()

        entry = result.reversal_entry
        assert entry.amount == -40
        assert entry.kind == TransactionKind.ADJUSTED
        assert entry.source == PointSource.MANUAL_ADJUSTMENT
        assert entry.awarded_by_role == AwarderRole.PLATFORM_ADMIN
        assert entry.metadata == {
            "reversalReason": "Duplicate award",
            "reversedTransactionId": award.entry_id,
            "originalType": "earned",
            "originalSource": "behavior",
            "originalAmount": 40,
        }
        assert result.balance_after == 0

    def test_original_is_marked_but_unchanged(self, db_session, clock):
        award = TransactionService(db_session, clock=clock).apply(earn(amount=40))
        result = ReversalService(db_session, clock=clock).reverse(award.entry_id, reversal())
        db_session.commit()

        original = LedgerService(db_session).get_entry(award.entry_id)
        assert original.amount == 40
        assert original.balance_after == 40
        assert original.is_reversed is True
        assert original.reversal_entry_id == result.reversal_entry.id

    def test_reversed_award_still_counts_toward_quota(self, db_session, clock):
        award = TransactionService(db_session, clock=clock).apply(earn(amount=40))
        ReversalService(db_session, clock=clock).reverse(award.entry_id, reversal())
        db_session.commit()

        consumed = LedgerService(db_session).consumed("stu-1", LimitWindow.DAILY, clock())
        assert consumed == 40

    def test_reversal_blocked_when_points_were_spent(self, db_session, clock):
        service = TransactionService(db_session, clock=clock)
        award = service.apply(earn(amount=40))
        service.apply(spend(amount=30))
        db_session.commit()

        with pytest.raises(WouldGoNegative) as exc:
            ReversalService(db_session, clock=clock).reverse(award.entry_id, reversal())
        assert exc.value.details() == {"available": 10, "required": 40}

        db_session.rollback()
        assert snapshot(db_session)[0] == 10


class TestReverseSpent:

    def test_spent_reversal_refunds_points(self, db_session, clock):
        service = TransactionService(db_session, clock=clock)
        service.apply(earn(amount=50))
        db_session.commit()
        before = snapshot(db_session)

        purchase = service.apply(spend(amount=20))
        result = ReversalService(db_session, clock=clock).reverse(purchase.entry_id, reversal())
        db_session.commit()

        assert result.reversal_entry.amount == 20
        assert snapshot(db_session) == before

    def test_negative_adjustment_reversal(self, db_session, clock):
        service = TransactionService(db_session, clock=clock)
        service.apply(earn(amount=50))
        penalty = service.apply(adjust(amount=-10))
        ReversalService(db_session, clock=clock).reverse(penalty.entry_id, reversal())
        db_session.commit()

        assert snapshot(db_session) == (50, 50, 0, 1)


class TestReversalRules:

    def test_second_reversal_fails(self, db_session, clock):
        award = TransactionService(db_session, clock=clock).apply(earn(amount=40))
        service = ReversalService(db_session, clock=clock)
        first = service.reverse(award.entry_id, reversal())
        db_session.commit()

        with pytest.raises(AlreadyReversed) as exc:
            service.reverse(award.entry_id, reversal())
        assert exc.value.reversal_entry_id == first.reversal_entry.id
        assert snapshot(db_session)[0] == 0

    def test_reversal_entry_cannot_be_reversed(self, db_session, clock):
        award = TransactionService(db_session, clock=clock).apply(earn(amount=40))
        service = ReversalService(db_session, clock=clock)
        result = service.reverse(award.entry_id, reversal())
        db_session.commit()

        with pytest.raises(ValidationError):
            service.reverse(result.reversal_entry.id, reversal())

    def test_unknown_entry(self, db_session, clock):
        with pytest.raises(EntryNotFound):
            ReversalService(db_session, clock=clock).reverse(12345, reversal())

    def test_reason_is_required(self):
        with pytest.raises(ValueError):
            ReversalRequest(reason="   ", reversed_by="admin-1")

    def test_ledger_still_sums_to_balance(self, db_session, clock):
        service = TransactionService(db_session, clock=clock)
        first = service.apply(earn(amount=40))
        service.apply(earn(amount=25))
        service.apply(spend(amount=15))
        ReversalService(db_session, clock=clock).reverse(first.entry_id, reversal())
        db_session.commit()

        account = AccountService(db_session).get_account("stu-1")
        assert account.current_balance == 10
        assert LedgerService(db_session).balance_from_entries(account.id) == 10
