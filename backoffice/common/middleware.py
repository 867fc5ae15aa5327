"""
Middleware for handling multi-tenancy
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from uuid import UUID
import logging

logger = logging.getLogger(__name__)


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Middleware that reads an optional X-Company-ID header and sets it on
    request.state.tenant_id.

    The tenant normally comes from the authenticated user; the header lets a
    superuser act inside a specific company. Whether the caller may use the
    requested company is decided by the auth dependencies.
    """

    async def dispatch(self, request: Request, call_next):
        tenant_header = request.headers.get("X-Company-ID")

        if not tenant_header:
            return await call_next(request)

        try:
            tenant_id = UUID(tenant_header)
        except ValueError:
            return JSONResponse(
                content={"error": "Invalid X-Company-ID format. Must be a valid UUID"},
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        request.state.tenant_id = tenant_id
        logger.debug(f"Request to {request.url.path} with tenant_id: {tenant_id}")

        response = await call_next(request)

        # Add tenant ID to response headers for debugging
        response.headers["X-Tenant-ID"] = str(tenant_id)

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers for production
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
