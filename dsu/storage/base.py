"""Abstract storage ("bin") interfaces.

Every entity kind has one bin. Each bin has two implementations, one on a
relational engine (dsu.storage.sql) and one on a document store
(dsu.storage.mongo), and both must behave identically:

- store(entity): ConflictError if a unique key is occupied,
  ValidationError if the entity is None
- find by key: the entity, None if nothing matches, ConsistencyError if
  more than one record matches a key that should be unique
- token lookups used for live access filter expires > now in the query

WHY INTERFACES + FACTORY:
- Services depend on these ABCs only, never on an engine
- The engine is picked once at startup from configuration
- Tests run the same contract against both engines
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

from dsu.core.errors import ConsistencyError, ValidationError
from dsu.domain import (
    AuthenticationToken,
    AuthorizationCode,
    AuthorizationCodeVerification,
    AuthorizationToken,
    ColumnList,
    Data,
    Schema,
    ThirdParty,
    User,
)

T = TypeVar("T")


def require_entity(entity: T | None, name: str) -> T:
    """Reject a missing entity before any store access.

    Raises:
        ValidationError: If entity is None.
    """
    if entity is None:
        raise ValidationError(f"The {name} is null.")
    return entity


def at_most_one(matches: Sequence[T], entity: str, key: str) -> T | None:
    """Reduce a lookup result to a single entity.

    Args:
        matches: Records that matched the key (callers fetch at most two).
        entity: Entity kind, for the error message.
        key: Key that was looked up.

    Returns:
        The only match, or None.

    Raises:
        ConsistencyError: If more than one record matched.
    """
    if len(matches) > 1:
        raise ConsistencyError(entity, key)
    return matches[0] if matches else None


class UserBin(ABC):
    """Storage for user accounts. Unique on username and registration key."""

    @abstractmethod
    async def add_user(self, user: User) -> None: ...

    @abstractmethod
    async def get_user(self, username: str) -> User | None: ...

    @abstractmethod
    async def get_user_from_registration_key(
        self, registration_key: str
    ) -> User | None: ...

    @abstractmethod
    async def update_user(self, user: User) -> None:
        """Persist activation state for an existing user.

        Raises:
            NotFoundError: If the user does not exist.
        """


class ThirdPartyBin(ABC):
    """Storage for registered client applications. Unique on id."""

    @abstractmethod
    async def store_third_party(self, third_party: ThirdParty) -> None: ...

    @abstractmethod
    async def get_third_party(self, third_party_id: str) -> ThirdParty | None: ...


class AuthenticationTokenBin(ABC):
    """Storage for session tokens. Unique on token value."""

    @abstractmethod
    async def store_token(self, token: AuthenticationToken) -> None: ...

    @abstractmethod
    async def get_token(
        self, token: str, now: int | None = None
    ) -> AuthenticationToken | None:
        """Find an unexpired token (expires > now, evaluated in the query)."""


class AuthorizationCodeBin(ABC):
    """Storage for authorization codes. Unique on code value."""

    @abstractmethod
    async def store_code(self, code: AuthorizationCode) -> None: ...

    @abstractmethod
    async def get_code(self, code: str) -> AuthorizationCode | None: ...


class AuthorizationCodeVerificationBin(ABC):
    """Storage for owner decisions. At most one per code."""

    @abstractmethod
    async def store_verification(
        self, verification: AuthorizationCodeVerification
    ) -> None: ...

    @abstractmethod
    async def get_verification(
        self, code: str
    ) -> AuthorizationCodeVerification | None: ...


class AuthorizationTokenBin(ABC):
    """Storage for access/refresh token pairs.

    Unique on access token and on refresh token.
    """

    @abstractmethod
    async def store_token(self, token: AuthorizationToken) -> None: ...

    @abstractmethod
    async def get_token_from_access_token(
        self, access_token: str, now: int | None = None
    ) -> AuthorizationToken | None:
        """Find an unexpired token pair by its access token."""

    @abstractmethod
    async def get_token_from_refresh_token(
        self, refresh_token: str
    ) -> AuthorizationToken | None:
        """Find a token pair by its refresh token, expired or not."""


class DataBin(ABC):
    """Storage for data points. Append-only, no unique key."""

    @abstractmethod
    async def store_data(self, data: Sequence[Data]) -> None:
        """Insert a batch; either every record is stored or none is."""

    @abstractmethod
    async def get_data(
        self,
        owner: str,
        schema_id: str,
        version: int,
        columns: ColumnList | None,
        num_to_skip: int,
        num_to_return: int,
    ) -> tuple[list[Data], int]:
        """Page through an owner's points, newest first.

        Returns:
            The page and the total number of matching points.
        """


class Registry(ABC):
    """Storage for schemas. Unique on (id, version)."""

    @abstractmethod
    async def store_schema(self, schema: Schema) -> None: ...

    @abstractmethod
    async def get_schema(self, schema_id: str, version: int) -> Schema | None: ...

    @abstractmethod
    async def get_schemas(
        self,
        schema_id: str | None,
        version: int | None,
        num_to_skip: int,
        num_to_return: int,
    ) -> tuple[list[Schema], int]:
        """List schemas ordered by id then version.

        Returns:
            The page and the total number of matching schemas.
        """

    @abstractmethod
    async def get_schema_ids(
        self, num_to_skip: int, num_to_return: int
    ) -> tuple[list[str], int]:
        """List distinct schema ids in ascending order, with the total."""

    @abstractmethod
    async def get_schema_versions(
        self, schema_id: str, num_to_skip: int, num_to_return: int
    ) -> tuple[list[int], int]:
        """List versions of one schema id in ascending order, with the total."""


@dataclass
class Storage:
    """One bin per entity kind, plus engine lifecycle.

    Built once by dsu.storage.factory.create_storage and handed to services.
    """

    users: UserBin
    third_parties: ThirdPartyBin
    authentication_tokens: AuthenticationTokenBin
    authorization_codes: AuthorizationCodeBin
    verifications: AuthorizationCodeVerificationBin
    authorization_tokens: AuthorizationTokenBin
    data: DataBin
    registry: Registry
    engine: "StorageEngine"

    async def initialize(self) -> None:
        await self.engine.initialize()

    async def close(self) -> None:
        await self.engine.close()


class StorageEngine(ABC):
    """Connection-level lifecycle shared by an engine's bins."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables / unique indexes if they do not exist."""

    @abstractmethod
    async def close(self) -> None: ...
