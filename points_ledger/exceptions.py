"""
Typed errors raised by the points engine.

Every error carries a stable machine-readable ``code`` and a
``details()`` dict so callers (the HTTP layer, the dispatcher,
upstream collaborators) can branch on the type instead of
parsing messages.

    PointsError
    |
    +-- ValidationError
    |   +-- InvalidSourceType
    |   +-- InvalidSourceRefFormat
    |
    +-- LimitReached
    +-- InsufficientBalance
    +-- WouldGoNegative
    +-- AlreadyReversed
    |
    +-- AccountNotFound
    +-- EntryNotFound
    +-- PolicyNotFound
    |
    +-- ConcurrencyConflict   (transient, safe to retry)

Only ConcurrencyConflict is transient. Everything else is a
business or caller error and must never be retried.
"""

from typing import Any


class PointsError(Exception):
    """Base class for all points engine errors."""

    code: str = "POINTS_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details()}


# --- Input errors ---

class ValidationError(PointsError):
    """Missing or malformed input. The caller's fault."""

    code = "VALIDATION_ERROR"


class InvalidSourceType(ValidationError):
    code = "INVALID_SOURCE_TYPE"

    def __init__(self, source: str, source_type: str):
        self.source = source
        self.source_type = source_type
        super().__init__(
            f"Invalid source type '{source_type}' for source '{source}'"
        )

    def details(self) -> dict[str, Any]:
        return {"source": self.source, "sourceType": self.source_type}


class InvalidSourceRefFormat(ValidationError):
    code = "INVALID_SOURCE_REF_FORMAT"

    def __init__(self, source: str, source_ref: str):
        self.source = source
        self.source_ref = source_ref
        super().__init__(f"Invalid {source} ID format: '{source_ref}'")

    def details(self) -> dict[str, Any]:
        return {"source": self.source, "sourceRef": self.source_ref}


# --- Business rejections ---

class LimitReached(PointsError):
    """The quota for a window is already used up."""

    code = "LIMIT_REACHED"

    def __init__(self, window: str, max_points: int, consumed: int):
        self.window = window
        self.max_points = max_points
        self.consumed = consumed
        super().__init__(
            f"{window.replace('_', ' ').capitalize()} point limit reached "
            f"(limit={max_points}, earned={consumed})"
        )

    def details(self) -> dict[str, Any]:
        return {
            "window": self.window,
            "limit": self.max_points,
            "earned": self.consumed,
        }


class InsufficientBalance(PointsError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient points: available={available}, "
            f"requested={requested}"
        )

    def details(self) -> dict[str, Any]:
        return {"available": self.available, "requested": self.requested}


class WouldGoNegative(PointsError):
    code = "WOULD_GO_NEGATIVE"

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            "Insufficient points for reversal, balance would go negative "
            f"(available={available}, required={required})"
        )

    def details(self) -> dict[str, Any]:
        return {"available": self.available, "required": self.required}


class AlreadyReversed(PointsError):
    code = "ALREADY_REVERSED"

    def __init__(self, entry_id: int, reversal_entry_id: int | None = None):
        self.entry_id = entry_id
        self.reversal_entry_id = reversal_entry_id
        super().__init__(f"Transaction {entry_id} has already been reversed")

    def details(self) -> dict[str, Any]:
        return {
            "transactionId": self.entry_id,
            "reversalTransactionId": self.reversal_entry_id,
        }


# --- Lookups ---

class AccountNotFound(PointsError):
    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(f"Point account not found for student '{student_id}'")

    def details(self) -> dict[str, Any]:
        return {"studentId": self.student_id}


class EntryNotFound(PointsError):
    code = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: int):
        self.entry_id = entry_id
        super().__init__(f"Transaction {entry_id} not found")


class PolicyNotFound(PointsError):
    code = "POLICY_NOT_FOUND"

    def __init__(self, policy_id: int):
        self.policy_id = policy_id
        super().__init__(f"Point limit {policy_id} not found")


# --- Transient ---

class ConcurrencyConflict(PointsError):
    """Lost a write race more times than the engine is willing to replay."""

    code = "CONCURRENCY_CONFLICT"

    def __init__(self, student_id: str, attempts: int):
        self.student_id = student_id
        self.attempts = attempts
        super().__init__(
            f"Could not commit points operation for student '{student_id}' "
            f"after {attempts} attempts"
        )
