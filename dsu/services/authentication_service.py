"""Authentication service: registration, activation, login, token lookup.

Login failures always use one generic message so callers cannot tell an
unknown username from a wrong password.
"""

import logging

from dsu.core.config import Settings
from dsu.core.errors import ConflictError, NotFoundError, UnauthorizedError
from dsu.core.security import check_password
from dsu.domain import AuthenticationToken, User
from dsu.domain.user import validate_username
from dsu.storage import AuthenticationTokenBin, UserBin

logger = logging.getLogger(__name__)

AUTHENTICATION_FAILURE = "The username and/or password is incorrect."
INVALID_AUTHENTICATION_TOKEN = "The authentication token is unknown or expired."


class AuthenticationService:
    """Issues and resolves first-party session tokens.

    Args:
        users: User storage.
        tokens: Authentication-token storage.
        settings: Application settings (token lifetime, activation flag).
    """

    def __init__(
        self,
        users: UserBin,
        tokens: AuthenticationTokenBin,
        settings: Settings,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._settings = settings

    async def register(
        self, username: str | None, password: str | None, email: str | None
    ) -> User:
        """Create a new account.

        The account starts unactivated; activation only gates login when
        settings.activation_required is set.

        Returns:
            The stored User (carrying its registration key).

        Raises:
            ValidationError: If any field is invalid.
            ConflictError: If the username is taken.
        """
        user = User.register(username, password, email)
        await self._users.add_user(user)
        logger.info("User registered: %s", user.username)
        return user

    async def activate(self, registration_key: str | None) -> User:
        """Activate the account holding a registration key.

        Raises:
            NotFoundError: If no account has this key.
            ConflictError: If the account is already activated.
        """
        if registration_key is None or not registration_key.strip():
            raise NotFoundError("Registration")
        user = await self._users.get_user_from_registration_key(
            registration_key.strip()
        )
        if user is None:
            raise NotFoundError("Registration")
        if user.is_activated:
            raise ConflictError(
                "ALREADY_ACTIVATED", "The account has already been activated."
            )
        activated = user.activated()
        await self._users.update_user(activated)
        logger.info("User activated: %s", user.username)
        return activated

    async def login(
        self, username: str | None, password: str | None
    ) -> AuthenticationToken:
        """Check credentials and mint a session token.

        One token is stored per successful login; earlier tokens stay valid
        until they expire.

        Raises:
            UnauthorizedError: With a generic message on any failure.
        """
        if not username or not username.strip() or password is None:
            check_password("", None)
            raise UnauthorizedError(AUTHENTICATION_FAILURE)

        user = await self._users.get_user(validate_username(username))
        # Security: always perform one bcrypt comparison to prevent timing attacks.
        if not check_password(password, None if user is None else user.password_hash):
            raise UnauthorizedError(AUTHENTICATION_FAILURE)
        if self._settings.activation_required and not user.is_activated:
            raise UnauthorizedError(AUTHENTICATION_FAILURE)

        token = AuthenticationToken.issue(
            user.username, self._settings.authentication_token_lifetime_ms
        )
        await self._tokens.store_token(token)
        return token

    async def authenticate(
        self, token: str | None, now: int | None = None
    ) -> AuthenticationToken:
        """Resolve a presented session token.

        Raises:
            UnauthorizedError: If the token is missing, unknown or expired.
        """
        if token is None or not token.strip():
            raise UnauthorizedError()
        resolved = await self._tokens.get_token(token.strip(), now)
        if resolved is None:
            raise UnauthorizedError(INVALID_AUTHENTICATION_TOKEN)
        return resolved
