"""Delegated-authorization endpoints.

Flow:
1. GET /oauth/authorize: a third party asks for access to a set of schema
   ids; a short-lived authorization code is minted.
2. GET /oauth/authorization: the signed-in resource owner loads what is
   being asked for.
3. POST /oauth/authorization: the owner grants or denies, once. The
   response carries the third party's redirect URI with the code and
   state, or with error=access_denied.
4. POST /oauth/token: the third party exchanges the code (or a refresh
   token) for an access/refresh token pair.

The token endpoint reports failures in the OAuth error shape
({"error", "error_description"}) rather than the standard envelope. Client
credentials may be sent as form fields or with HTTP Basic authentication.
"""

import base64
import binascii
from typing import Annotated

from fastapi import APIRouter, Form, Request, Response

from dsu.api.deps import AppServices, CurrentUsername
from dsu.core.errors import OAuthError, ValidationError
from dsu.core.responses import DataResponse
from dsu.domain import AuthorizationCode, ThirdParty
from dsu.services.authorization_service import (
    GRANT_TYPE_AUTHORIZATION_CODE,
    GRANT_TYPE_REFRESH_TOKEN,
    TOKEN_TYPE_BEARER,
)

router = APIRouter()


def _describe(code: AuthorizationCode, third_party: ThirdParty) -> dict:
    return {
        "code": code.code,
        "client_id": third_party.id,
        "name": third_party.name,
        "description": third_party.description,
        "scopes": sorted(code.scopes),
        "state": code.state,
        "expiration_time": code.expiration_time,
    }


def _basic_credentials(request: Request) -> tuple[str | None, str | None]:
    """Client id and secret from an HTTP Basic Authorization header."""
    header = request.headers.get("authorization")
    if header is None:
        return None, None
    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic":
        raise OAuthError(
            "invalid_client", "Client authentication must use HTTP Basic.", 401
        )
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode()
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise OAuthError(
            "invalid_client", "The client credentials are malformed.", 401
        ) from exc
    client_id, separator, client_secret = decoded.partition(":")
    if not separator:
        raise OAuthError("invalid_client", "The client credentials are malformed.", 401)
    return client_id, client_secret


@router.get("/authorize")
async def authorize(
    services: AppServices,
    client_id: str | None = None,
    scope: str | None = None,
    response_type: str | None = None,
    state: str | None = None,
    redirect_uri: str | None = None,
) -> DataResponse[dict]:
    """Mint an authorization code for a third party's access request.

    Scopes are space separated, as in OAuth 2.0.
    """
    scopes = scope.split() if scope is not None else None
    code, third_party = await services.authorization.request_code(
        client_id,
        scopes,
        state=state,
        response_type=response_type,
        redirect_uri=redirect_uri,
    )
    return DataResponse(data=_describe(code, third_party))


@router.get("/authorization")
async def describe_authorization(
    username: CurrentUsername,  # noqa: ARG001 - owner must be signed in
    services: AppServices,
    code: str | None = None,
) -> DataResponse[dict]:
    """Show the signed-in owner what a code asks for."""
    if code is None or not code.strip():
        raise ValidationError("The authorization code is missing.")
    authorization_code, third_party = await services.authorization.describe_code(
        code.strip()
    )
    return DataResponse(data=_describe(authorization_code, third_party))


@router.post("/authorization")
async def decide_authorization(
    username: CurrentUsername,
    services: AppServices,
    code: Annotated[str | None, Form()] = None,
    granted: Annotated[bool | None, Form()] = None,
) -> DataResponse[dict]:
    """Record the signed-in owner's decision on a code.

    Returns:
        The decision and the URI to send the owner's browser to.
    """
    if code is None or not code.strip():
        raise ValidationError("The authorization code is missing.")
    if granted is None:
        raise ValidationError("The decision is missing.")
    verification, redirect_url = await services.authorization.verify(
        username, code.strip(), granted
    )
    return DataResponse(
        data={
            "code": verification.authorization_code,
            "granted": verification.granted,
            "redirect_uri": redirect_url,
        }
    )


@router.post("/token")
async def token(
    request: Request,
    response: Response,
    services: AppServices,
    grant_type: Annotated[str | None, Form()] = None,
    code: Annotated[str | None, Form()] = None,
    refresh_token: Annotated[str | None, Form()] = None,
    client_id: Annotated[str | None, Form()] = None,
    client_secret: Annotated[str | None, Form()] = None,
) -> dict:
    """Exchange a granted code or a refresh token for a token pair."""
    basic_id, basic_secret = _basic_credentials(request)
    if basic_id is not None:
        if client_id is not None and client_id != basic_id:
            raise OAuthError(
                "invalid_request", "Conflicting client IDs were given."
            )
        client_id, client_secret = basic_id, basic_secret

    if grant_type == GRANT_TYPE_AUTHORIZATION_CODE:
        issued = await services.authorization.exchange_code(
            client_id, client_secret, code
        )
    elif grant_type == GRANT_TYPE_REFRESH_TOKEN:
        issued = await services.authorization.refresh(
            client_id, client_secret, refresh_token
        )
    elif grant_type is None:
        raise OAuthError("invalid_request", "The grant type is missing.")
    else:
        raise OAuthError(
            "unsupported_grant_type", f"The grant type '{grant_type}' is not supported."
        )

    # Token responses must never be cached
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return {
        "access_token": issued.access_token,
        "refresh_token": issued.refresh_token,
        "expires_in": issued.expires_in(),
        "token_type": TOKEN_TYPE_BEARER,
    }

