"""
Tenant context dependencies for FastAPI.

Authentication happens upstream; the gateway forwards the caller's company
and user as request headers. Every accounting route is scoped by them.
"""

from dataclasses import dataclass
from typing import Optional
from fastapi import Header, HTTPException, status


@dataclass(frozen=True)
class TenantContext:
    """Company and acting user of the current request."""
    company_id: int
    user_id: Optional[int] = None


async def get_tenant_context(
    x_company_id: Optional[str] = Header(None, alias="X-Company-ID"),
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
) -> TenantContext:
    """
    FastAPI dependency resolving the tenant of a request.

    Raises:
        HTTPException: 400 if the company header is missing or malformed
    """
    if not x_company_id or not x_company_id.isdigit():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Company-ID header is required",
        )

    user_id = None
    if x_user_id:
        if not x_user_id.isdigit():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="X-User-ID header must be numeric",
            )
        user_id = int(x_user_id)

    return TenantContext(company_id=int(x_company_id), user_id=user_id)
