"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from ledger_backend.app.api.v1.endpoints import accounting

router = APIRouter()

# Accounting core endpoints
router.include_router(accounting.router)
