"""API middleware for the Product Catalog API.

Provides:
- Request ID correlation
- API key authentication and admin authorization
- Error handling
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.infrastructure.config import settings

logger = structlog.get_logger()

ROLE_ADMIN = "admin"
ROLE_CUSTOMER = "customer"


def error_body(
    message: str,
    error_code: str,
    request_id: str | None = None,
    details: list[dict] | None = None,
) -> dict:
    """Build the standard error envelope."""
    return {
        "success": False,
        "message": message,
        "error": error_code,
        "details": details or [],
        "requestId": request_id,
    }


# ============================================================================
# Request ID Middleware
# ============================================================================


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID for correlation.

    Generates or extracts a request ID and adds it to:
    - Request state for access in handlers
    - Response headers for client correlation
    - Log context for tracing
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request with correlation ID.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response with request ID header.
        """
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid4())
        request.state.request_id = request_id

        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        response = None

        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=getattr(response, "status_code", 500),
                duration_ms=round(duration_ms, 2),
            )

            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[self.HEADER_NAME] = request_id

        return response


# ============================================================================
# Authentication / Authorization Middleware
# ============================================================================


# Read-only methods are public on every route
PUBLIC_METHODS = {"GET", "HEAD", "OPTIONS"}


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware for API key authentication and admin authorization.

    Validates ``Authorization: Bearer <api_key>`` on mutating requests.
    The admin key may mutate the catalog; customer keys are recognised
    but rejected with 403.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Validate API key for protected endpoints.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response or 401/403 error.
        """
        if request.method in PUBLIC_METHODS:
            return await call_next(request)

        path = request.url.path.rstrip("/")
        request_id = getattr(request.state, "request_id", None)
        auth_header = request.headers.get("Authorization")

        if not auth_header:
            logger.warning("Missing authorization header", path=path, method=request.method)
            return self._unauthorized("Not authorized, no token", "UNAUTHORIZED", request_id)

        parts = auth_header.split(" ", 1)
        if len(parts) != 2 or parts[0].lower() != "bearer":
            logger.warning("Invalid authorization format", path=path, method=request.method)
            return self._unauthorized(
                "Invalid Authorization header format. Use 'Bearer <api_key>'",
                "UNAUTHORIZED",
                request_id,
            )

        api_key = parts[1].strip()

        if api_key == settings.admin_api_key:
            request.state.role = ROLE_ADMIN
            return await call_next(request)

        if api_key in settings.customer_api_keys:
            request.state.role = ROLE_CUSTOMER
            logger.warning("Admin access denied", path=path, method=request.method)
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content=error_body(
                    "Access denied. Admin privileges required", "FORBIDDEN", request_id
                ),
            )

        logger.warning("Invalid API key", path=path, method=request.method)
        return self._unauthorized("Invalid API key", "INVALID_API_KEY", request_id)

    @staticmethod
    def _unauthorized(message: str, error_code: str, request_id: str | None) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=error_body(message, error_code, request_id),
            headers={"WWW-Authenticate": "Bearer"},
        )


# ============================================================================
# Error Handling Middleware
# ============================================================================


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware for consistent error handling.

    Catches unhandled exceptions and returns standardized error responses.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Handle errors uniformly.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response or error response.
        """
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", None)

            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_body("An internal error occurred", "INTERNAL_ERROR", request_id),
            )


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application.

    Middleware is added in reverse order (last added = first executed).

    Args:
        app: FastAPI application instance.
    """
    # Error handling (innermost of the three, wraps handlers)
    app.add_middleware(ErrorHandlerMiddleware)

    # API key authentication
    app.add_middleware(AuthMiddleware)

    # Request ID correlation (outermost, runs first)
    app.add_middleware(RequestIdMiddleware)
