"""Shared dependencies for API endpoints.

Settings and the services live on app.state (built once by create_app);
handlers reach them through the functions below.

Credentials:
- Authentication token: the omh_auth_token cookie, query parameter, or
  form field. Presenting different values in different places is a 401.
- Authorization token: "Authorization: Bearer <access_token>". A malformed
  header, or several headers carrying different tokens, is a 403.

WHY DEPENDENCY INJECTION:
- No module-level singletons for storage or services
- Tests build an app around their own Storage bundle
- Consistent credential handling across all endpoints
"""

from typing import Annotated

from fastapi import Depends, Request

from dsu.core.config import Settings
from dsu.core.errors import AuthorizationError, UnauthorizedError
from dsu.services.container import Services

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
_BEARER_SCHEME = "bearer"


def get_settings(request: Request) -> Settings:
    """Application settings held by the app."""
    return request.app.state.settings


def get_services(request: Request) -> Services:
    """Services held by the app."""
    return request.app.state.services


AppSettings = Annotated[Settings, Depends(get_settings)]
AppServices = Annotated[Services, Depends(get_services)]


async def get_authentication_token(
    request: Request, settings: AppSettings
) -> str | None:
    """Collect the authentication token from cookie, query and form.

    Args:
        request: HTTP request (injected by FastAPI).
        settings: Application settings (cookie/parameter name).

    Returns:
        The token value, or None if none was presented.

    Raises:
        UnauthorizedError: If two sources carry different values.
    """
    name = settings.auth_cookie_name
    presented = [
        request.cookies.get(name),
        *request.query_params.getlist(name),
    ]

    content_type = request.headers.get("content-type", "")
    if request.method != "GET" and content_type.startswith(_FORM_CONTENT_TYPES):
        # Starlette caches the parsed form, so Form() parameters still work.
        form = await request.form()
        presented.extend(value for value in form.getlist(name) if isinstance(value, str))

    values = {value.strip() for value in presented if value and value.strip()}
    if len(values) > 1:
        raise UnauthorizedError("Multiple, different authentication tokens were given.")
    return values.pop() if values else None


AuthenticationTokenValue = Annotated[str | None, Depends(get_authentication_token)]


async def get_current_username(
    token: AuthenticationTokenValue, services: AppServices
) -> str:
    """Resolve the caller from a required authentication token.

    Raises:
        UnauthorizedError: If the token is missing, unknown or expired.
    """
    if token is None:
        raise UnauthorizedError()
    resolved = await services.authentication.authenticate(token)
    return resolved.username


async def get_optional_username(
    token: AuthenticationTokenValue, services: AppServices
) -> str | None:
    """Resolve the caller if an authentication token was presented.

    A presented but unknown or expired token is still a 401; only the
    complete absence of a token yields None.
    """
    if token is None:
        return None
    resolved = await services.authentication.authenticate(token)
    return resolved.username


def get_access_token(request: Request) -> str | None:
    """Extract a third party's bearer token from Authorization headers.

    Returns:
        The access token, or None if no Authorization header was sent.

    Raises:
        AuthorizationError: If a header is not a Bearer credential or
            several headers carry different tokens.
    """
    tokens = set()
    for header in request.headers.getlist("authorization"):
        scheme, _, value = header.strip().partition(" ")
        if scheme.lower() != _BEARER_SCHEME or not value.strip():
            raise AuthorizationError("The authorization header is malformed.")
        tokens.add(value.strip())
    if len(tokens) > 1:
        raise AuthorizationError("Multiple, different authorization tokens were given.")
    return tokens.pop() if tokens else None


# Reusable type aliases for dependency injection
CurrentUsername = Annotated[str, Depends(get_current_username)]
OptionalUsername = Annotated[str | None, Depends(get_optional_username)]
AccessToken = Annotated[str | None, Depends(get_access_token)]
