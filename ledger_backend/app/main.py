"""
FastAPI Application Entry Point.

This is the main application file for the Textile Ledger Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from ledger_backend.app.core.config import settings
from ledger_backend.app.api.v1.router import router as api_v1_router
from ledger_backend.app.db.session import engine, Base
from ledger_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from ledger_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from ledger_backend.app.models.account_group import AccountGroup
from ledger_backend.app.models.partner import Partner  # before ledger_accounts for FK
from ledger_backend.app.models.ledger_account import LedgerAccount
from ledger_backend.app.models.journal_entry import JournalEntry, JournalEntryLine
from ledger_backend.app.models.journal_entry_sequence import JournalEntrySequence
from ledger_backend.app.models.gst_settings import GSTSettings
from ledger_backend.app.models.inventory import Product, StockUnit, GoodsDispatchItem
from ledger_backend.app.models.audit_log import AuditLog

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup. The chart of accounts is seeded
    separately per company (seed_chart_of_accounts.py).
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Double-entry accounting backend for textile businesses",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Textile Ledger Backend API",
        "docs": "/docs",
        "health": "/health",
    }
