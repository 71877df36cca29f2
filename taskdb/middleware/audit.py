"""Audit logging middleware."""
import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("taskdb.audit")


class AuditMiddleware(BaseHTTPMiddleware):
    """Middleware logging every successful write request."""

    # Methods that modify data
    WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
    # Paths to exclude from audit logging
    EXCLUDED_PATHS = {"/api/health", "/metrics", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log audit information."""
        if request.url.path in self.EXCLUDED_PATHS or request.method not in self.WRITE_METHODS:
            return await call_next(request)

        response = await call_next(request)

        if 200 <= response.status_code < 300:
            logger.info(
                "%s %s project=%s status=%d client=%s",
                request.method,
                request.url.path,
                request.query_params.get("project") or "-",
                response.status_code,
                request.client.host if request.client else "-",
            )
        return response
