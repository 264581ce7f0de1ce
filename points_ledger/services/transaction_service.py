"""
Transaction service — earn, spend and adjust points.

Each apply call:
1. Validates sourceType / sourceRef against the source rules
2. Short-circuits a repeated award for the same sourceRef
3. Lets the school policy reshape the nominal amount (earned only)
4. Clamps or rejects the amount against the limit windows (earned only)
5. Mutates the account
6. Appends the ledger entry with the resulting balance

Nothing is committed here. The account mutation and the entry sit in
the same session, and the caller (PointsEngine) commits them together
or rolls both back.
"""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from points_ledger.config import get_settings
from points_ledger.exceptions import (
    InsufficientBalance,
    LimitReached,
    ValidationError,
)
from points_ledger.models.account import Account
from points_ledger.models.ledger_entry import LedgerEntry
from points_ledger.models.enums import TransactionKind, LimitWindow
from points_ledger.schemas.transaction import TransactionRequest, TransactionResult
from points_ledger.services.account_service import AccountService
from points_ledger.services.ledger_service import LedgerService
from points_ledger.services.limit_policy_service import (
    LimitPolicyService,
    clamp_to_limit,
)
from points_ledger.services.school_policy_service import SchoolPolicyService
from points_ledger.services.source_rules import SourceRule, validate_source

logger = logging.getLogger(__name__)


class TransactionService:

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] | None = None,
        deduplicate: bool | None = None,
    ):
        self.db = db
        self.clock = clock or datetime.now
        if deduplicate is None:
            deduplicate = get_settings().DEDUPLICATE_SOURCE_REF
        self.deduplicate = deduplicate
        self.ledger_service = LedgerService(db)
        self.account_service = AccountService(db)
        self.limit_service = LimitPolicyService(db)
        self.school_service = SchoolPolicyService(db)

    def apply(self, request: TransactionRequest) -> TransactionResult:
        rule = validate_source(
            request.source,
            request.metadata.get("sourceType"),
            request.source_ref,
        )
        now = self.clock()

        if request.kind == TransactionKind.EARNED:
            return self._earn(request, rule, now)
        if request.kind == TransactionKind.SPENT:
            return self._spend(request, request.amount, now)
        if request.amount > 0:
            account = self.account_service.get_account(request.student_id)
            account.credit(request.amount)
            entry = self._append(account, request, request.amount, dict(request.metadata), now)
            return self._result(entry, account)
        return self._spend(request, abs(request.amount), now)

    # --- Earning ---

    def _earn(
        self, request: TransactionRequest, rule: SourceRule, now: datetime
    ) -> TransactionResult:
        if self.deduplicate and request.source_ref:
            prior = self.ledger_service.find_earned_by_source_ref(
                request.student_id, request.source, request.source_ref
            )
            if prior:
                logger.info(
                    "Duplicate %s award for student %s (sourceRef=%s), "
                    "returning entry %s",
                    request.source.value, request.student_id,
                    request.source_ref, prior.id,
                )
                account = self.db.get(Account, prior.account_id)
                return self._result(prior, account, duplicate=True)

        meta = dict(request.metadata)
        amount = request.amount

        school_id = request.resolved_school_id
        if school_id:
            school_policy = self.school_service.find(school_id)
            if school_policy:
                amount = self.school_service.shape_amount(
                    school_policy,
                    student_id=request.student_id,
                    source=request.source,
                    amount=amount,
                    meta=meta,
                    at=now,
                )
                if amount <= 0:
                    raise ValidationError(
                        f"School '{school_id}' awards no points for this "
                        f"{request.source.value} transaction"
                    )

        amount = self._enforce_limits(request, rule, amount, meta, now)

        account = self.account_service.get_or_create(request.student_id)
        account.credit(amount)
        entry = self._append(account, request, amount, meta, now)

        if meta.get("limitApplied"):
            logger.info(
                "Capped %s award for student %s: %s -> %s (%s limit)",
                request.source.value, request.student_id,
                meta.get("originalAmount"), amount, meta.get("limitType"),
            )
        return self._result(entry, account)

    def _enforce_limits(
        self,
        request: TransactionRequest,
        rule: SourceRule,
        amount: int,
        meta: dict,
        now: datetime,
    ) -> int:
        """
        Run the amount through daily, weekly, monthly, then source-daily.

        Each check receives the output of the previous one, so clamps
        accumulate: a later window only ever sees the already-trimmed
        amount. The order is fixed; the tightest windows clamp first.
        """
        policy = self.limit_service.resolve(
            request.student_id, request.resolved_school_id
        )

        checks = [
            (window.value, policy.window_limit(window), window, None)
            for window in LimitWindow
        ]
        if rule.daily_limit_key:
            source_limit = policy.source_daily_limit(rule.daily_limit_key)
            if source_limit:
                checks.append((
                    f"{request.source.value}_daily",
                    source_limit,
                    LimitWindow.DAILY,
                    request.source,
                ))

        for name, limit, window, source in checks:
            if not limit.enabled:
                continue
            consumed = self.ledger_service.consumed(
                request.student_id, window, now, source=source
            )
            try:
                amount = clamp_to_limit(name, limit.max_points, consumed, amount, meta)
            except LimitReached:
                logger.info(
                    "Rejected %s award for student %s: %s limit %s reached "
                    "(earned=%s)",
                    request.source.value, request.student_id,
                    name, limit.max_points, consumed,
                )
                raise
        return amount

    # --- Spending ---

    def _spend(
        self, request: TransactionRequest, requested: int, now: datetime
    ) -> TransactionResult:
        account = self.account_service.get_account(request.student_id)
        if requested > account.current_balance:
            raise InsufficientBalance(account.current_balance, requested)

        account.debit(requested)
        entry = self._append(account, request, -requested, dict(request.metadata), now)
        return self._result(entry, account)

    # --- Helpers ---

    def _append(
        self,
        account: Account,
        request: TransactionRequest,
        signed_amount: int,
        meta: dict,
        now: datetime,
    ) -> LedgerEntry:
        if request.resolved_school_id:
            meta.setdefault("schoolId", request.resolved_school_id)
        self.db.flush()
        return self.ledger_service.append(
            account,
            amount=signed_amount,
            kind=request.kind,
            source=request.source,
            source_ref=request.source_ref,
            description=request.description,
            awarded_by=request.awarded_by,
            awarded_by_role=request.awarded_by_role,
            meta=meta,
            occurred_at=now,
        )

    @staticmethod
    def _result(
        entry: LedgerEntry, account: Account, duplicate: bool = False
    ) -> TransactionResult:
        return TransactionResult(
            entry_id=entry.id,
            effective_amount=abs(entry.amount),
            balance_after=entry.balance_after,
            capped=bool(entry.meta.get("limitApplied", False)),
            duplicate=duplicate,
            limit_type=entry.meta.get("limitType"),
            original_amount=entry.meta.get("originalAmount"),
            level=account.level,
        )
