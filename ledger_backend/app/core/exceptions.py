"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes for the accounting core and the global
exception handlers that render them.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

from ledger_backend.app.core.observability import request_context

logger = logging.getLogger("ledger.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UnbalancedJournalError(AppException):
    """Raised when journal entry lines fail the double-entry balance check."""

    def __init__(self, total_debit: float, total_credit: float, difference: float, message: str = None):
        super().__init__(
            message=message or (
                f"Journal entry is not balanced. Debit: ₹{total_debit}, "
                f"Credit: ₹{total_credit}, Difference: ₹{difference}"
            ),
            error_code="ERR_JE_BALANCE",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={
                "total_debit": total_debit,
                "total_credit": total_credit,
                "difference": difference,
            }
        )
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = difference


class ConfigurationError(AppException):
    """
    Raised when a required account group or system ledger is missing.

    Indicates the chart of accounts was never seeded for the tenant.
    Not transient; callers should not retry.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONFIG_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ValidationError(AppException):
    """Raised when caller-supplied accounting data is unusable."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ComplianceError(AppException):
    """Raised when a posting breaches the Section 269ST cash limit."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_COMPLIANCE_269ST",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class StorageError(AppException):
    """Raised when the relational store rejects a read or write."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STORAGE_001",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "%s: %s", exc.error_code, exc.message,
        extra={"error_code": exc.error_code, "path": request.url.path, **request_context(request)}
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc, extra=request_context(request))

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
