"""Product Catalog API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.api.health import router as health_router
from app.api.middleware import error_body, setup_middleware
from app.api.products import router as products_router
from app.domain.exceptions import DomainError, MediaServiceError
from app.infrastructure.config import settings
from app.infrastructure.logging_config import configure_logging
from app.infrastructure.media_client import close_media_client

configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    logger.info(
        "Starting Product Catalog API",
        version=settings.api_version,
        debug=settings.debug,
        catalog_store=settings.catalog_store,
    )

    yield

    await close_media_client()
    logger.info("Shutting down Product Catalog API")


app = FastAPI(
    title="Product Catalog API",
    description="Product catalog management backend",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, API key auth, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(products_router, prefix=settings.api_prefix)


@app.get("/", tags=["Health"])
async def welcome() -> dict:
    """Describe the service and its main endpoints."""
    return {
        "success": True,
        "message": "Welcome to the Product Catalog API",
        "version": settings.api_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": {
            "products": f"{settings.api_prefix}/products",
            "search": f"{settings.api_prefix}/products/search",
            "health": "/health",
        },
    }


# ============================================================================
# Custom Exception Handlers
# ============================================================================


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map domain errors to their status code and error envelope."""
    request_id = getattr(request.state, "request_id", None)

    if isinstance(exc, MediaServiceError):
        logger.error(
            "Media service error",
            path=request.url.path,
            method=request.method,
            error=exc.message,
            provider_status=exc.provider_status,
            public_id=exc.public_id,
        )
        message = exc.public_message
        details: list[dict] = []
    else:
        message = exc.message
        details = []
        if exc.status_code == 400 and "field" in exc.details:
            details = [{"field": str(exc.details["field"]), "message": exc.message}]
        elif exc.status_code == 400:
            details = [
                {"field": str(key), "message": str(value)} for key, value in exc.details.items()
            ]

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, exc.error_code, request_id, details),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request validation failures as 400 with per-field details."""
    request_id = getattr(request.state, "request_id", None)

    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=400,
        content=error_body("Validation failed", "VALIDATION_ERROR", request_id, details),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
    else:
        error_code = "NOT_FOUND" if exc.status_code == 404 else "ERROR"
        message = str(detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, error_code, request_id),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content=error_body("An internal error occurred", "INTERNAL_ERROR", request_id),
    )
