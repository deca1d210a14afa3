"""Token and code entities for authentication and delegated authorization.

- AuthenticationToken: first-party session token issued at login
- AuthorizationCode: minted when a third party asks for scoped access
- AuthorizationCodeVerification: the resource owner's one-time decision
- AuthorizationToken: access/refresh pair minted from a granted decision

All times are milliseconds since the epoch. Entities are immutable;
refreshing an authorization token produces a new record.
"""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from dsu.core.clock import now_millis
from dsu.core.errors import ValidationError


def _require_text(value: str | None, name: str) -> str:
    if value is None:
        raise ValidationError(f"The {name} is missing.")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"The {name} is empty.")
    return trimmed


def _check_window(start: int, end: int, start_name: str, end_name: str) -> None:
    if start > now_millis():
        raise ValidationError(f"The {start_name} is in the future.")
    if end < start:
        raise ValidationError(f"The {end_name} is before the {start_name}.")


def validate_scopes(scopes: Iterable[str] | None) -> frozenset[str]:
    """Validate a requested scope set.

    Args:
        scopes: Schema ids the third party wants access to.

    Returns:
        The trimmed scopes as a frozenset.

    Raises:
        ValidationError: If scopes are missing, empty, or contain a blank entry.
    """
    if scopes is None:
        raise ValidationError("The scopes are missing.")
    if isinstance(scopes, str):
        scopes = [scopes]
    cleaned = frozenset(_require_text(scope, "scope") for scope in scopes)
    if not cleaned:
        raise ValidationError("At least one scope is required.")
    return cleaned


@dataclass(frozen=True)
class AuthenticationToken:
    """Short-lived session token for a user.

    Attributes:
        token: Token value (UUID string).
        username: User the token was issued to.
        granted: Issue time.
        expires: Expiration time.
    """

    token: str
    username: str
    granted: int
    expires: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "token", _require_text(self.token, "token"))
        object.__setattr__(self, "username", _require_text(self.username, "username"))
        _check_window(self.granted, self.expires, "grant time", "expiration time")

    @classmethod
    def issue(
        cls, username: str, lifetime_ms: int, now: int | None = None
    ) -> "AuthenticationToken":
        """Mint a fresh token for a user."""
        granted = now_millis() if now is None else now
        return cls(
            token=str(uuid.uuid4()),
            username=username,
            granted=granted,
            expires=granted + lifetime_ms,
        )

    def is_valid(self, now: int | None = None) -> bool:
        """Valid while expires is strictly after now."""
        return self.expires > (now_millis() if now is None else now)

    def remaining_seconds(self, now: int | None = None) -> int:
        current = now_millis() if now is None else now
        return max(0, (self.expires - current) // 1000)


@dataclass(frozen=True)
class AuthorizationCode:
    """A third party's request for scoped access to a user's data.

    Attributes:
        third_party_id: Requesting client.
        code: Code value (UUID string).
        creation_time: When the code was minted.
        expiration_time: Last instant the code may be used.
        scopes: Non-empty set of schema ids requested.
        state: Opaque value echoed back to the third party.
    """

    third_party_id: str
    code: str
    creation_time: int
    expiration_time: int
    scopes: frozenset[str]
    state: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "third_party_id", _require_text(self.third_party_id, "third-party ID")
        )
        object.__setattr__(self, "code", _require_text(self.code, "code"))
        object.__setattr__(self, "scopes", validate_scopes(self.scopes))
        _check_window(
            self.creation_time, self.expiration_time, "creation time", "expiration time"
        )

    @classmethod
    def issue(
        cls,
        third_party_id: str,
        scopes: Iterable[str] | None,
        state: str | None,
        lifetime_ms: int,
        now: int | None = None,
    ) -> "AuthorizationCode":
        """Mint a fresh code for a third party."""
        created = now_millis() if now is None else now
        return cls(
            third_party_id=third_party_id,
            code=str(uuid.uuid4()),
            creation_time=created,
            expiration_time=created + lifetime_ms,
            scopes=validate_scopes(scopes),
            state=state,
        )

    def is_expired(self, now: int | None = None) -> bool:
        return (now_millis() if now is None else now) > self.expiration_time


@dataclass(frozen=True)
class AuthorizationCodeVerification:
    """The resource owner's grant/deny decision for a code.

    Attributes:
        authorization_code: Code being decided.
        owner: Username of the resource owner who decided.
        granted: True if access was granted.
    """

    authorization_code: str
    owner: str
    granted: bool

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "authorization_code",
            _require_text(self.authorization_code, "authorization code"),
        )
        object.__setattr__(self, "owner", _require_text(self.owner, "owner"))
        if not isinstance(self.granted, bool):
            raise ValidationError("The grant decision must be a boolean.")


@dataclass(frozen=True)
class AuthorizationToken:
    """Access/refresh token pair backed by a granted authorization code.

    Scopes and the grantor are not copied; they are re-derived through the
    authorization_code reference on every access check.

    Attributes:
        authorization_code: Back-reference to the granted code.
        access_token: Bearer token value (UUID string).
        refresh_token: Refresh token value (UUID string).
        creation_time: When the pair was minted.
        expiration_time: When the access token stops working.
    """

    authorization_code: str
    access_token: str
    refresh_token: str
    creation_time: int
    expiration_time: int

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "authorization_code",
            _require_text(self.authorization_code, "authorization code"),
        )
        object.__setattr__(
            self, "access_token", _require_text(self.access_token, "access token")
        )
        object.__setattr__(
            self, "refresh_token", _require_text(self.refresh_token, "refresh token")
        )
        _check_window(
            self.creation_time, self.expiration_time, "creation time", "expiration time"
        )

    @classmethod
    def mint(
        cls,
        verification: AuthorizationCodeVerification,
        lifetime_ms: int,
        now: int | None = None,
    ) -> "AuthorizationToken":
        """Mint a token pair from a verification.

        Raises:
            ValidationError: If the verification did not grant access.
        """
        if not verification.granted:
            raise ValidationError("The user did not grant access to this code.")
        return cls._fresh(verification.authorization_code, lifetime_ms, now)

    def refreshed(self, lifetime_ms: int, now: int | None = None) -> "AuthorizationToken":
        """Return a new token pair for the same authorization code."""
        return self._fresh(self.authorization_code, lifetime_ms, now)

    @classmethod
    def _fresh(
        cls, authorization_code: str, lifetime_ms: int, now: int | None
    ) -> "AuthorizationToken":
        created = now_millis() if now is None else now
        return cls(
            authorization_code=authorization_code,
            access_token=str(uuid.uuid4()),
            refresh_token=str(uuid.uuid4()),
            creation_time=created,
            expiration_time=created + lifetime_ms,
        )

    def expires_in(self, now: int | None = None) -> int:
        """Seconds until the access token expires (never negative)."""
        current = now_millis() if now is None else now
        return max(0, (self.expiration_time - current) // 1000)
