"""
Resilient dispatcher for collaborator-issued point awards.

Attendance check-ins and badge awards must succeed for the student
even when the points call does not. The dispatcher wraps the engine
call with a bounded retry on transient failures and, once retries are
exhausted, parks the request in the dead-letter table instead of
raising.

Business rejections (limit reached, validation errors) are returned
on the first attempt. Retrying them cannot change the answer. Any
other error is dead-lettered on the attempt that raised it.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from points_ledger.exceptions import ConcurrencyConflict, PointsError
from points_ledger.models.dead_letter import DeadLetter
from points_ledger.schemas.transaction import TransactionRequest, TransactionResult
from points_ledger.services.engine import PointsEngine

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    ConcurrencyConflict,
    OperationalError,
    InterfaceError,
    ConnectionError,
    TimeoutError,
)


@dataclass
class DispatchOutcome:
    result: TransactionResult | None
    attempts: int
    error: Exception | None = None
    dead_letter_id: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None

    @property
    def points_awarded(self) -> int:
        return self.result.effective_amount if self.result else 0


class PointsDispatcher:

    def __init__(
        self,
        engine: PointsEngine,
        max_attempts: int | None = None,
        retry_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.engine = engine
        if max_attempts is None:
            max_attempts = engine.settings.DISPATCH_MAX_ATTEMPTS
        self.max_attempts = max_attempts
        if retry_delay is None:
            retry_delay = engine.settings.DISPATCH_RETRY_DELAY_SECONDS
        self.retry_delay = retry_delay
        self.sleep = sleep

    def award(self, request: TransactionRequest, kind: str) -> DispatchOutcome:
        """
        Submit request, retrying transient failures with linear backoff.

        Waits attempt * retry_delay seconds between attempts. Never
        raises for engine failures; the outcome says what happened.
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                result = self.engine.submit(request)
                logger.info(
                    "Awarded %s %s points to student %s",
                    result.effective_amount, kind, request.student_id,
                )
                return DispatchOutcome(result=result, attempts=attempt)
            except TRANSIENT_ERRORS as e:
                last_error = e
                logger.warning(
                    "Failed to award %s points to student %s (attempt %s): %s",
                    kind, request.student_id, attempt, e,
                )
                if attempt < self.max_attempts:
                    self.sleep(attempt * self.retry_delay)
            except PointsError as e:
                logger.info(
                    "%s points for student %s rejected: %s",
                    kind.capitalize(), request.student_id, e.message,
                )
                return DispatchOutcome(result=None, attempts=attempt, error=e)
            except Exception as e:
                logger.exception(
                    "Unexpected error awarding %s points to student %s",
                    kind, request.student_id,
                )
                return DispatchOutcome(
                    result=None,
                    attempts=attempt,
                    error=e,
                    dead_letter_id=self._dead_letter(request, kind, e, attempt),
                )

        logger.error(
            "Max retries reached. Failed to award %s points to student %s",
            kind, request.student_id,
        )
        dead_letter_id = self._dead_letter(
            request, kind, last_error, self.max_attempts
        )
        return DispatchOutcome(
            result=None,
            attempts=self.max_attempts,
            error=last_error,
            dead_letter_id=dead_letter_id,
        )

    def _dead_letter(
        self,
        request: TransactionRequest,
        kind: str,
        error: Exception | None,
        attempts: int,
    ) -> int | None:
        payload = request.model_dump(mode="json")
        logger.error("FAILED TRANSACTION: %s", payload)
        try:
            with self.engine.session_factory() as db:
                letter = DeadLetter(
                    kind=kind,
                    student_id=request.student_id,
                    source_ref=request.source_ref,
                    payload=payload,
                    error=str(error),
                    attempts=attempts,
                )
                db.add(letter)
                db.commit()
                return letter.id
        except SQLAlchemyError:
            logger.exception("Could not record dead letter for %s award", kind)
            return None
