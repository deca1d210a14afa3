"""Delegated-authorization protocol.

Lifecycle of one delegation attempt:

    request_code     -> AuthorizationCode (Requested)
    verify           -> AuthorizationCodeVerification (Verified / Denied)
    exchange_code    -> AuthorizationToken (Token-Issued, granted only)
    refresh          -> new AuthorizationToken, same code (Refreshed)

Scopes and the grantor are never copied onto tokens. check_access walks
token -> code -> scopes and token -> code -> verification -> owner on
every call.

Refreshing does not revoke the previous token pair, and the refresh path
is not gated by the previous access token's expiry.
"""

from urllib.parse import urlencode, urlsplit, urlunsplit

import structlog

from dsu.core.config import Settings
from dsu.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    OAuthError,
    ValidationError,
)
from dsu.domain import (
    AuthorizationCode,
    AuthorizationCodeVerification,
    AuthorizationToken,
    ThirdParty,
)
from dsu.domain.tokens import validate_scopes
from dsu.storage import (
    AuthorizationCodeBin,
    AuthorizationCodeVerificationBin,
    AuthorizationTokenBin,
    Registry,
    ThirdPartyBin,
)

logger = structlog.get_logger()

RESPONSE_TYPE_CODE = "code"
GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
GRANT_TYPE_REFRESH_TOKEN = "refresh_token"
TOKEN_TYPE_BEARER = "Bearer"


def _with_query(uri: str, params: dict[str, str]) -> str:
    """Append query parameters to a URI, keeping any it already has."""
    parts = urlsplit(uri)
    extra = urlencode(params)
    query = f"{parts.query}&{extra}" if parts.query else extra
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


class AuthorizationService:
    """Issues codes, records decisions, mints tokens, and checks access.

    Args:
        third_parties: Third-party storage.
        registry: Schema registry (scopes must name known schema ids).
        codes: Authorization-code storage.
        verifications: Decision storage.
        tokens: Authorization-token storage.
        settings: Application settings (code and token lifetimes).
    """

    def __init__(
        self,
        third_parties: ThirdPartyBin,
        registry: Registry,
        codes: AuthorizationCodeBin,
        verifications: AuthorizationCodeVerificationBin,
        tokens: AuthorizationTokenBin,
        settings: Settings,
    ) -> None:
        self._third_parties = third_parties
        self._registry = registry
        self._codes = codes
        self._verifications = verifications
        self._tokens = tokens
        self._settings = settings

    # ------------------------------------------------------------------
    # Requested
    # ------------------------------------------------------------------

    async def request_code(
        self,
        client_id: str | None,
        scopes: list[str] | None,
        state: str | None = None,
        response_type: str | None = RESPONSE_TYPE_CODE,
        redirect_uri: str | None = None,
        now: int | None = None,
    ) -> tuple[AuthorizationCode, ThirdParty]:
        """Mint a code for a third party's access request.

        Args:
            client_id: Requesting third party.
            scopes: Schema ids requested; must be non-empty and known.
            state: Opaque value echoed back with the decision.
            response_type: Must be "code".
            redirect_uri: Must be absent; the registered URI is always used.
            now: Creation time override (ms).

        Returns:
            The stored code and the third party it belongs to.

        Raises:
            ValidationError: If response_type, redirect_uri or scopes are invalid.
            NotFoundError: If the third party is unknown.
        """
        if response_type != RESPONSE_TYPE_CODE:
            raise ValidationError(
                f"The response type must be '{RESPONSE_TYPE_CODE}'."
            )
        if redirect_uri is not None:
            raise ValidationError(
                "A redirect URI may not be given; the registered one is used."
            )
        if client_id is None or not client_id.strip():
            raise ValidationError("The client ID is missing.")

        third_party = await self._third_parties.get_third_party(client_id.strip())
        if third_party is None:
            raise NotFoundError("Third party", client_id.strip())

        requested = validate_scopes(scopes)
        for scope in sorted(requested):
            _, total = await self._registry.get_schemas(scope, None, 0, 1)
            if total == 0:
                raise ValidationError(f"The scope '{scope}' is not a known schema ID.")

        code = AuthorizationCode.issue(
            third_party.id,
            requested,
            state,
            self._settings.authorization_code_lifetime_ms,
            now,
        )
        await self._codes.store_code(code)
        logger.info(
            "Authorization code issued",
            third_party_id=third_party.id,
            scopes=sorted(requested),
        )
        return code, third_party

    async def describe_code(self, code: str) -> tuple[AuthorizationCode, ThirdParty]:
        """Load what a resource owner needs to decide on a code.

        Raises:
            NotFoundError: If the code or its third party is unknown.
        """
        authorization_code = await self._codes.get_code(code)
        if authorization_code is None:
            raise NotFoundError("Authorization code", code)
        third_party = await self._third_parties.get_third_party(
            authorization_code.third_party_id
        )
        if third_party is None:
            raise NotFoundError("Third party", authorization_code.third_party_id)
        return authorization_code, third_party

    # ------------------------------------------------------------------
    # Verified / Denied
    # ------------------------------------------------------------------

    async def verify(
        self,
        owner: str,
        code: str,
        granted: bool,
        now: int | None = None,
    ) -> tuple[AuthorizationCodeVerification, str]:
        """Record the resource owner's one-time decision.

        Args:
            owner: Authenticated resource owner.
            code: Code being decided.
            granted: True to grant, False to deny.
            now: Decision time override (ms).

        Returns:
            The stored verification and the URI to send the owner back to
            (the third party's redirect URI with code/state, or
            error=access_denied/state).

        Raises:
            NotFoundError: If the code is unknown.
            ValidationError: If the code has expired.
            ConflictError: If a decision was already recorded for the code.
        """
        authorization_code, third_party = await self.describe_code(code)
        # An existing decision conflicts even once the code has expired.
        existing = await self._verifications.get_verification(authorization_code.code)
        if existing is not None:
            raise ConflictError(
                "CODE_ALREADY_VERIFIED",
                "A decision has already been recorded for this authorization code.",
            )
        if authorization_code.is_expired(now):
            raise ValidationError("The authorization code has expired.")

        verification = AuthorizationCodeVerification(
            authorization_code=authorization_code.code,
            owner=owner,
            granted=granted,
        )
        await self._verifications.store_verification(verification)
        logger.info(
            "Authorization code decided",
            third_party_id=third_party.id,
            owner=owner,
            granted=granted,
        )

        params = (
            {"code": authorization_code.code}
            if granted
            else {"error": "access_denied"}
        )
        if authorization_code.state is not None:
            params["state"] = authorization_code.state
        return verification, _with_query(third_party.redirect_uri, params)

    # ------------------------------------------------------------------
    # Token-Issued / Refreshed
    # ------------------------------------------------------------------

    async def _authenticate_client(
        self, client_id: str | None, client_secret: str | None
    ) -> ThirdParty:
        if not client_id or not client_secret:
            raise OAuthError(
                "invalid_request", "The client ID and secret are required."
            )
        third_party = await self._third_parties.get_third_party(client_id)
        if third_party is None or third_party.shared_secret != client_secret:
            raise OAuthError(
                "invalid_client", "The client credentials are invalid.", 401
            )
        return third_party

    async def mint_token(self, code: str, now: int | None = None) -> AuthorizationToken:
        """Mint a token pair for a code whose owner granted access.

        Raises:
            OAuthError: invalid_grant if the code is unknown, expired, or
                undecided; access_denied if the owner denied it.
        """
        authorization_code = await self._codes.get_code(code)
        if authorization_code is None:
            raise OAuthError("invalid_grant", "The authorization code is unknown.")
        if authorization_code.is_expired(now):
            raise OAuthError("invalid_grant", "The authorization code has expired.")

        verification = await self._verifications.get_verification(code)
        if verification is None:
            raise OAuthError(
                "invalid_grant", "The user has not yet responded to this request."
            )
        if not verification.granted:
            raise OAuthError("access_denied", "The user denied this request.")

        token = AuthorizationToken.mint(
            verification, self._settings.authorization_token_lifetime_ms, now
        )
        await self._tokens.store_token(token)
        return token

    async def exchange_code(
        self,
        client_id: str | None,
        client_secret: str | None,
        code: str | None,
        now: int | None = None,
    ) -> AuthorizationToken:
        """Token endpoint, authorization_code grant.

        Raises:
            OAuthError: On bad client credentials, a code belonging to a
                different client, or any mint_token failure.
        """
        third_party = await self._authenticate_client(client_id, client_secret)
        if not code:
            raise OAuthError("invalid_request", "The authorization code is missing.")

        authorization_code = await self._codes.get_code(code)
        if (
            authorization_code is None
            or authorization_code.third_party_id != third_party.id
        ):
            raise OAuthError("invalid_grant", "The authorization code is unknown.")

        token = await self.mint_token(code, now)
        logger.info("Authorization token minted", third_party_id=third_party.id)
        return token

    async def refresh(
        self,
        client_id: str | None,
        client_secret: str | None,
        refresh_token: str | None,
        now: int | None = None,
    ) -> AuthorizationToken:
        """Token endpoint, refresh_token grant.

        Inserts a new token pair for the same code. The presented pair is
        left as is.

        Raises:
            OAuthError: On bad client credentials, an unknown refresh token,
                or a token whose code belongs to a different client.
        """
        third_party = await self._authenticate_client(client_id, client_secret)
        if not refresh_token:
            raise OAuthError("invalid_request", "The refresh token is missing.")

        previous = await self._tokens.get_token_from_refresh_token(refresh_token)
        if previous is None:
            raise OAuthError("invalid_grant", "The refresh token is unknown.")
        authorization_code = await self._codes.get_code(previous.authorization_code)
        if (
            authorization_code is None
            or authorization_code.third_party_id != third_party.id
        ):
            raise OAuthError("invalid_grant", "The refresh token is unknown.")

        token = previous.refreshed(self._settings.authorization_token_lifetime_ms, now)
        await self._tokens.store_token(token)
        logger.info("Authorization token refreshed", third_party_id=third_party.id)
        return token

    # ------------------------------------------------------------------
    # Access check
    # ------------------------------------------------------------------

    async def check_access(
        self,
        access_token: str,
        schema_id: str,
        owner: str | None,
        now: int | None = None,
    ) -> str:
        """Confirm a third party may read an owner's data for a schema.

        Args:
            access_token: Presented bearer token.
            schema_id: Schema being read.
            owner: Data owner being read, or None to read the grantor's data.
            now: Evaluation time override (ms).

        Returns:
            The grantor's username.

        Raises:
            AuthorizationError: If the token is unknown or expired, the schema
                is outside the granted scopes, or the grantor is not the owner.
        """
        token = await self._tokens.get_token_from_access_token(access_token, now)
        if token is None:
            raise AuthorizationError("The authorization token is unknown or expired.")

        authorization_code = await self._codes.get_code(token.authorization_code)
        if authorization_code is None:
            raise AuthorizationError("The authorization token is unknown or expired.")
        if schema_id not in authorization_code.scopes:
            raise AuthorizationError(
                "The authorization token does not grant access to this schema."
            )

        verification = await self._verifications.get_verification(
            authorization_code.code
        )
        if verification is None or not verification.granted:
            raise AuthorizationError("The authorization token is unknown or expired.")
        if owner is not None and verification.owner != owner:
            raise AuthorizationError(
                "The authorization token does not grant access to this user's data."
            )
        return verification.owner
