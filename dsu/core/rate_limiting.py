"""Rate limiting for the unauthenticated account endpoints.

Security: Slows credential stuffing on login and bulk account creation on
registration. Both endpoints run before any token exists, so requests are
keyed on the client address.

Usage in routers:
    from dsu.core.rate_limiting import limiter

    @router.post("")
    @limiter.limit(lambda: settings.rate_limit_auth)
    async def login(request: Request, ...):
        ...

The limit string is read on every request, so tests and operators can
change settings.rate_limit_auth without rebuilding the app.
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from dsu.core.config import settings
from dsu.core.responses import ErrorDetail, ErrorResponse

# In-memory counters: one process, one window per (route, address).
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)

_DEFAULT_RETRY_AFTER_SECONDS = 60


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the exceeded limit's window, in seconds."""
    item = getattr(getattr(exc, "limit", None), "limit", None)
    if item is None:
        return _DEFAULT_RETRY_AFTER_SECONDS
    return int(item.get_expiry())


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Render a 429 in the standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and a Retry-After header.
    """
    return JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="RATE_LIMITED",
                message=f"Rate limit exceeded: {exc.detail}",
            )
        ).model_dump(),
        headers={"Retry-After": str(_retry_after_seconds(exc))},
    )
