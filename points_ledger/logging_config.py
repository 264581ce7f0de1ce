"""Logging setup for the points ledger service."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stream handler on the package logger.

    Safe to call more than once; only the level is updated on
    repeat calls so handlers are never duplicated.
    """
    global _configured

    logger = logging.getLogger("points_ledger")
    logger.setLevel(level)

    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    _configured = True
