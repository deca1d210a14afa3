"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Storage bundle and services on app.state
- Exception handlers for API and OAuth errors
- API v1 router mounting
- Health check endpoint
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from dsu.api.v1.router import router as v1_router
from dsu.core.config import Settings
from dsu.core.config import settings as default_settings
from dsu.core.errors import APIError, InternalError, OAuthError
from dsu.core.logging_config import configure_logging
from dsu.core.rate_limiting import limiter, rate_limit_exceeded_handler
from dsu.core.responses import ErrorDetail, ErrorResponse
from dsu.services.container import build_services
from dsu.services.registry_seed import seed_registry
from dsu.storage import Storage
from dsu.storage.factory import create_storage

logger = structlog.get_logger()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    Headers added:
    - X-Frame-Options: Prevents clickjacking attacks
    - X-Content-Type-Options: Prevents MIME sniffing
    - Referrer-Policy: Controls referrer information leakage
    - Cache-Control: Prevents caching of health data and credentials
    - Content-Security-Policy: Restricts resource loading (API returns no HTML)
    - Strict-Transport-Security: Forces HTTPS (production only)
    """

    def __init__(self, app, environment: str) -> None:
        super().__init__(app)
        self.environment = environment

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Every /v1 response may carry health data or tokens
        if request.url.path.startswith("/v1"):
            response.headers.setdefault("Cache-Control", "no-store, max-age=0")

        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # HSTS only in production (assumes HTTPS via reverse proxy)
        if self.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def oauth_error_handler(_request: Request, exc: OAuthError) -> JSONResponse:
    """Render token-endpoint failures in the OAuth error shape.

    Args:
        request: The incoming request.
        exc: The OAuthError that was raised.

    Returns:
        JSONResponse with {"error", "error_description"}.
    """
    headers = {"Cache-Control": "no-store"}
    if exc.status_code == 401:
        headers["WWW-Authenticate"] = 'Basic realm="dsu"'
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "error_description": exc.message},
        headers=headers,
    )


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors.

    Server-side errors (ConsistencyError and friends) are logged and
    replaced by an opaque body; everything else is returned as raised.

    Args:
        request: The incoming request.
        exc: The APIError that was raised.

    Returns:
        JSONResponse with error envelope and appropriate status code.
    """
    if isinstance(exc, InternalError):
        logger.error(
            "Internal error",
            code=exc.code,
            message=exc.message,
            path=str(_request.url.path),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error=ErrorDetail(
                    code="INTERNAL_ERROR",
                    message="An unexpected error occurred",
                )
            ).model_dump(),
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        ).model_dump(),
    )


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors from FastAPI.

    Converts FastAPI's validation errors to our standard format with a 400.

    Args:
        request: The incoming request.
        exc: The RequestValidationError from Pydantic.

    Returns:
        JSONResponse with VALIDATION_ERROR code and field-level details.
    """
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                details=[
                    {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                    for e in exc.errors()
                ],
            )
        ).model_dump(),
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    WHY: Never expose internal error details to clients. Log for debugging.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse with generic error message (500).
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
            )
        ).model_dump(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Prepare storage on startup and release it on shutdown."""
    settings: Settings = app.state.settings
    storage: Storage = app.state.storage

    configure_logging(settings)
    await storage.initialize()
    if settings.seed_registry:
        await seed_registry(storage.registry, settings.registry_seed_file or None)
    logger.info("Application started", storage_backend=settings.storage_backend)

    try:
        yield
    finally:
        await storage.close()
        logger.info("Application stopped")


def create_app(
    settings: Settings | None = None, storage: Storage | None = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    WHY FACTORY FUNCTION:
    - Enables testing with different configurations and storage engines
    - Clear separation between app creation and startup
    - Standard FastAPI pattern

    Args:
        settings: Application settings; defaults to the environment.
        storage: Storage bundle; built from settings when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or default_settings
    storage = storage or create_storage(settings)

    app = FastAPI(
        title="DSU API",
        version="1.0.0",
        description="Personal health-data store",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.services = build_services(storage, settings)

    # Middleware order: Starlette uses LIFO, so the LAST added runs FIRST.
    # CORS must run first to handle preflight requests, so add it last.
    app.add_middleware(SecurityHeadersMiddleware, environment=settings.environment)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization", "X-Request-ID"],
    )

    # Register exception handlers
    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(OAuthError, oauth_error_handler)
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    # Rate limiting (Security)
    app.state.limiter = limiter

    app.include_router(v1_router)

    # Health check endpoint (outside versioned API)
    @app.get("/health")
    def health_check() -> dict:
        """Health check endpoint for monitoring.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    return app


# Create the application instance
# Used by uvicorn: uvicorn dsu.main:app
app = create_app()
