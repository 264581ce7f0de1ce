"""
Points engine — the unit of work around every balance mutation.

The services below this layer never commit. The engine gives each
apply/reverse call its own session and guarantees two things:

1. Serialization per student. Calls for the same student queue on
   an in-process lock, so two awards can never both read the same
   remaining quota or the same balance. Calls for different students
   do not share a lock and run in parallel.

2. All-or-nothing writes. The account mutation and its ledger entry
   are committed together. If another process wins a race on the same
   account (StaleDataError from the version column) or on a unique
   key (a unique-violation IntegrityError), the whole unit of work is
   rolled back and replayed against fresh data, up to CONFLICT_RETRIES
   times. Other constraint failures propagate on the first attempt.

Business errors (LimitReached, InsufficientBalance, ...) roll back and
propagate immediately. They are never replayed.
"""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, TypeVar

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from points_ledger.config import Settings, get_settings
from points_ledger.exceptions import ConcurrencyConflict, ValidationError
from points_ledger.models.base import SessionLocal
from points_ledger.models.enums import AwarderRole
from points_ledger.schemas.transaction import (
    ReversalRequest,
    ReversalResult,
    TransactionRequest,
    TransactionResult,
)
from points_ledger.services.ledger_service import LedgerService
from points_ledger.services.locks import StudentLockTable
from points_ledger.services.reversal_service import ReversalService
from points_ledger.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

T = TypeVar("T")


def schema_error(error: SchemaValidationError) -> ValidationError:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in e['loc']) or 'request'}: {e['msg']}"
        for e in error.errors()
    )
    return ValidationError(f"Invalid request: {problems}")


def is_unique_violation(error: IntegrityError) -> bool:
    """True when error is a duplicate key rather than a CHECK or FK failure."""
    if getattr(error.orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(error.orig).lower()


class PointsEngine:

    def __init__(
        self,
        session_factory: Callable[[], Session],
        locks: StudentLockTable | None = None,
        clock: Callable[[], datetime] | None = None,
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.locks = locks or StudentLockTable()
        self.clock = clock or datetime.now
        self.settings = settings or get_settings()

    # --- Public operations ---

    def apply(
        self,
        student_id: str,
        amount: int,
        kind: str,
        source: str,
        source_ref: str | None = None,
        description: str | None = None,
        awarded_by: str | None = None,
        awarded_by_role: str | None = None,
        metadata: dict[str, Any] | None = None,
        school_id: str | None = None,
    ) -> TransactionResult:
        """Validate the arguments and submit them as one transaction."""
        try:
            request = TransactionRequest(
                student_id=student_id,
                amount=amount,
                kind=kind,
                source=source,
                source_ref=source_ref,
                description=description,
                awarded_by=awarded_by,
                awarded_by_role=awarded_by_role,
                metadata=metadata or {},
                school_id=school_id,
            )
        except SchemaValidationError as e:
            raise schema_error(e) from e
        return self.submit(request)

    def submit(self, request: TransactionRequest) -> TransactionResult:
        return self._run(
            request.student_id,
            lambda db: TransactionService(
                db,
                clock=self.clock,
                deduplicate=self.settings.DEDUPLICATE_SOURCE_REF,
            ).apply(request),
        )

    def reverse(
        self,
        original_entry_id: int,
        reason: str,
        reversed_by: str,
        reversed_by_role: str = AwarderRole.PLATFORM_ADMIN.value,
    ) -> ReversalResult:
        try:
            request = ReversalRequest(
                reason=reason,
                reversed_by=reversed_by,
                reversed_by_role=reversed_by_role,
            )
        except SchemaValidationError as e:
            raise schema_error(e) from e

        # Entries are immutable, so the owner read here cannot change
        # before the lock is taken.
        with self.session_factory() as db:
            student_id = LedgerService(db).get_entry(original_entry_id).student_id

        return self._run(
            student_id,
            lambda db: ReversalService(db, clock=self.clock).reverse(
                original_entry_id, request
            ),
        )

    # --- Unit of work ---

    def _run(self, student_id: str, work: Callable[[Session], T]) -> T:
        attempts = self.settings.CONFLICT_RETRIES + 1

        with self.locks.hold(student_id):
            for attempt in range(1, attempts + 1):
                db = self.session_factory()
                try:
                    result = work(db)
                    db.commit()
                    return result
                except (StaleDataError, IntegrityError) as e:
                    db.rollback()
                    if isinstance(e, IntegrityError) and not is_unique_violation(e):
                        raise
                    logger.warning(
                        "Write conflict for student %s (attempt %s/%s): %s",
                        student_id, attempt, attempts, e,
                    )
                except Exception:
                    db.rollback()
                    raise
                finally:
                    db.close()

        raise ConcurrencyConflict(student_id, attempts)


@lru_cache()
def get_engine() -> PointsEngine:
    """Process-wide engine bound to the application database."""
    return PointsEngine(SessionLocal)
