"""
Observability for the ledger backend.

Configures the "ledger" logger hierarchy and adds correlation IDs and
structured logging context to requests.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ledger_backend.app.core.config import settings


logger = logging.getLogger("ledger")


def configure_logging(level: str = None) -> None:
    """Attach a single stream handler to the "ledger" logger."""
    logger.setLevel((level or settings.log_level).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        logger.addHandler(handler)


# Request headers copied into every request log and onto request.state
TENANT_HEADERS = {
    "company_id": "X-Company-ID",
    "user_id": "X-User-ID",
}


def request_context(request: Request) -> dict:
    """Correlation ID and tenant of the current request, for log `extra=`."""
    return {
        "correlation_id": getattr(request.state, "correlation_id", None),
        **getattr(request.state, "tenant", {}),
    }


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with a correlation ID and log it with its tenant.

    The correlation ID and the company / user identifiers are kept on
    `request.state`, so exception handlers log under the same context.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        tenant = {key: request.headers.get(header) for key, header in TENANT_HEADERS.items()}
        request.state.correlation_id = correlation_id
        request.state.tenant = tenant

        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = (time.perf_counter() - start_time) * 1000  # ms

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = f"{process_time:.2f}"

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "query": request.url.query or None,
            "status_code": response.status_code,
            "duration_ms": round(process_time, 2),
            "client_ip": request.client.host if request.client else None,
            **tenant,
        }
        message = "%s %s -> %s [company=%s user=%s]"
        args = (
            request.method, request.url.path, response.status_code,
            tenant["company_id"] or "-", tenant["user_id"] or "-",
        )

        if response.status_code >= 500:
            logger.error(message, *args, extra=log_data)
        elif response.status_code >= 400:
            logger.warning(message, *args, extra=log_data)
        else:
            logger.info(message, *args, extra=log_data)

        return response
