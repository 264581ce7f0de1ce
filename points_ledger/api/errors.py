"""
Mapping from engine errors to HTTP responses.
"""

from fastapi import HTTPException

from points_ledger.exceptions import (
    AccountNotFound,
    AlreadyReversed,
    ConcurrencyConflict,
    EntryNotFound,
    PointsError,
    PolicyNotFound,
)


def http_error(error: PointsError) -> HTTPException:
    """
    Build the HTTPException for a typed engine error.

    The detail carries the error code and its structured fields, so
    a client can show e.g. the limit and already-earned figures for a
    LimitReached without parsing the message.
    """
    if isinstance(error, (AccountNotFound, EntryNotFound, PolicyNotFound)):
        status_code = 404
    elif isinstance(error, AlreadyReversed):
        status_code = 409
    elif isinstance(error, ConcurrencyConflict):
        status_code = 503
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail=error.to_dict())
