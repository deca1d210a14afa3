"""User account entity.

A user is identified by a unique username. Passwords are kept only as a
bcrypt hash and never serialized. Activation state is the only thing that
changes after registration.
"""

import hashlib
import uuid
from dataclasses import dataclass, field, replace

from email_validator import EmailNotValidError
from email_validator import validate_email as _validate_email_address

from dsu.core.clock import now_millis
from dsu.core.errors import ValidationError
from dsu.core.security import MAX_PASSWORD_BYTES, hash_password


def validate_username(username: str | None) -> str:
    """Validate a username.

    Args:
        username: Candidate username.

    Returns:
        The trimmed username.

    Raises:
        ValidationError: If the username is missing or blank.
    """
    if username is None:
        raise ValidationError("The username is missing.")
    trimmed = username.strip()
    if not trimmed:
        raise ValidationError("The username is empty.")
    return trimmed


def validate_password(password: str | None) -> str:
    """Validate a plain-text password before hashing.

    Raises:
        ValidationError: If the password is missing, empty or too long.
    """
    if password is None:
        raise ValidationError("The password is missing.")
    if not password:
        raise ValidationError("The password is empty.")
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"The password may not exceed {MAX_PASSWORD_BYTES} bytes."
        )
    return password


def validate_email(email: str | None) -> str:
    """Validate and normalize an email address.

    Raises:
        ValidationError: If the address is missing or malformed.
    """
    if email is None or not email.strip():
        raise ValidationError("The email address is missing.")
    try:
        result = _validate_email_address(email.strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError("The email address is invalid.") from exc
    return result.normalized


def _registration_key(username: str, email: str, now: int) -> str:
    seed = f"{username}{email}{now}{uuid.uuid4()}"
    return hashlib.sha512(seed.encode()).hexdigest()


@dataclass(frozen=True)
class User:
    """A registered account.

    Attributes:
        username: Unique, trimmed, non-empty login name.
        password_hash: bcrypt hash of the password.
        email: Normalized contact address.
        registration_key: Key mailed to the user to activate the account.
        date_registered: Registration time (ms since epoch).
        date_activated: Activation time (ms since epoch), None until activated.
    """

    username: str
    password_hash: str = field(repr=False)
    email: str
    registration_key: str | None = None
    date_registered: int | None = None
    date_activated: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "username", validate_username(self.username))
        if not self.password_hash:
            raise ValidationError("The password hash is missing.")
        if self.email is None or not self.email.strip():
            raise ValidationError("The email address is missing.")

    @classmethod
    def register(
        cls,
        username: str | None,
        password: str | None,
        email: str | None,
        now: int | None = None,
    ) -> "User":
        """Create a new, not yet activated user.

        Args:
            username: Requested username.
            password: Plain-text password; hashed here.
            email: Contact address for the activation email.
            now: Registration time (ms); defaults to the current time.

        Returns:
            The new User.

        Raises:
            ValidationError: If any field is invalid.
        """
        username = validate_username(username)
        password = validate_password(password)
        email = validate_email(email)
        registered = now_millis() if now is None else now
        return cls(
            username=username,
            password_hash=hash_password(password),
            email=email,
            registration_key=_registration_key(username, email, registered),
            date_registered=registered,
        )

    @property
    def is_activated(self) -> bool:
        return self.date_activated is not None

    def activated(self, now: int | None = None) -> "User":
        """Return a copy of this user marked as activated."""
        return replace(self, date_activated=now_millis() if now is None else now)
