"""Third-party (client application) entity."""

import secrets
import uuid
from dataclasses import dataclass
from urllib.parse import urlparse

from dsu.core.errors import ValidationError


def _require_text(value: str | None, name: str) -> str:
    if value is None:
        raise ValidationError(f"The {name} is missing.")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"The {name} is empty.")
    return trimmed


def validate_redirect_uri(value: str | None) -> str:
    """Validate a third party's redirect URI.

    Returns:
        The trimmed URI.

    Raises:
        ValidationError: If the URI is missing or not absolute.
    """
    uri = _require_text(value, "redirect URI")
    parsed = urlparse(uri)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError("The redirect URI must be an absolute URI.")
    return uri


@dataclass(frozen=True)
class ThirdParty:
    """A registered client application.

    Attributes:
        owner: Username of the user who registered it.
        id: Client identifier (UUID string).
        shared_secret: Client secret presented at the token endpoint.
        name: Display name shown to resource owners.
        description: Display description shown to resource owners.
        redirect_uri: Where decisions are sent back to.
    """

    owner: str
    id: str
    shared_secret: str
    name: str
    description: str
    redirect_uri: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "owner", _require_text(self.owner, "owner"))
        object.__setattr__(self, "id", _require_text(self.id, "third-party ID"))
        object.__setattr__(
            self, "shared_secret", _require_text(self.shared_secret, "shared secret")
        )
        object.__setattr__(self, "name", _require_text(self.name, "name"))
        object.__setattr__(
            self, "description", _require_text(self.description, "description")
        )
        object.__setattr__(
            self, "redirect_uri", validate_redirect_uri(self.redirect_uri)
        )

    @classmethod
    def create(
        cls,
        owner: str,
        name: str | None,
        description: str | None,
        redirect_uri: str | None,
    ) -> "ThirdParty":
        """Register a new client with a fresh id and shared secret."""
        return cls(
            owner=owner,
            id=str(uuid.uuid4()),
            shared_secret=secrets.token_urlsafe(32),
            name=name,
            description=description,
            redirect_uri=redirect_uri,
        )
