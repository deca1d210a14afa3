"""Authentication endpoint.

POST /v1/auth exchanges a username and password for an authentication
token. The token is returned in the body and set as an httpOnly cookie.

Security considerations:
- One generic failure message for unknown user, wrong password and
  unactivated account, with a bcrypt comparison on every path
- Rate limited per client address
"""

from typing import Annotated

from fastapi import APIRouter, Form, Request, Response

from dsu.api.deps import AppServices, AppSettings
from dsu.core.config import settings as default_settings
from dsu.core.rate_limiting import limiter
from dsu.core.security import set_auth_cookie

router = APIRouter()


@router.post("")
@limiter.limit(lambda: default_settings.rate_limit_auth)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    response: Response,
    services: AppServices,
    settings: AppSettings,
    username: Annotated[str | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
) -> dict:
    """Authenticate with form credentials.

    Returns:
        {"omh_auth_token": <token>} (the key follows the cookie name).
    """
    token = await services.authentication.login(username, password)
    set_auth_cookie(response, token.token, token.remaining_seconds(), settings)
    return {settings.auth_cookie_name: token.token}
