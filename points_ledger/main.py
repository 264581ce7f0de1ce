"""
Points Ledger — FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

from fastapi import FastAPI

from points_ledger.config import get_settings
from points_ledger.logging_config import configure_logging
from points_ledger.api.health import router as health_router
from points_ledger.api.transactions import router as transactions_router
from points_ledger.api.accounts import router as accounts_router
from points_ledger.api.limits import router as limits_router
from points_ledger.api.schools import router as schools_router

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Student points ledger with layered earning limits",
)

# Register routers
app.include_router(health_router)
app.include_router(transactions_router)
app.include_router(accounts_router)
app.include_router(limits_router)
app.include_router(schools_router)
