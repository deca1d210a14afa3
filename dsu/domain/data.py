"""Data points and their meta-data.

A Data record is the unit of storage: one validated payload owned by one
user under one (schema_id, schema_version) pair, with optional meta-data.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from dsu.core.clock import now_millis
from dsu.core.errors import ValidationError

JSON_KEY_OWNER = "owner"
JSON_KEY_SCHEMA_ID = "schema_id"
JSON_KEY_SCHEMA_VERSION = "schema_version"
JSON_KEY_METADATA = "metadata"
JSON_KEY_DATA = "data"
JSON_KEY_ID = "id"
JSON_KEY_TIMESTAMP = "timestamp"


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; values without an offset are read as UTC.

    Raises:
        ValidationError: If the value is not a valid ISO-8601 string.
    """
    if not isinstance(value, str):
        raise ValidationError("The meta-data timestamp must be an ISO-8601 string.")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(
            f"The meta-data timestamp is not valid ISO-8601: {value}"
        ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class MetaData:
    """Optional descriptive information attached to a data point.

    Attributes:
        id: Client-chosen identifier for the point.
        timestamp: When the point was recorded; never in the future.
    """

    id: str | None = None
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if self.timestamp is not None:
            if self.timestamp.tzinfo is None:
                object.__setattr__(
                    self, "timestamp", self.timestamp.replace(tzinfo=UTC)
                )
            if self.timestamp_millis > now_millis():
                raise ValidationError("The meta-data timestamp is in the future.")

    @property
    def timestamp_millis(self) -> int | None:
        """Timestamp as ms since epoch, used as the sort key."""
        if self.timestamp is None:
            return None
        return int(self.timestamp.timestamp() * 1000)

    @classmethod
    def from_json(cls, value: Any) -> "MetaData":
        """Build meta-data from a decoded JSON object.

        Raises:
            ValidationError: If the value is not an object or fields are malformed.
        """
        if not isinstance(value, dict):
            raise ValidationError("The meta-data must be a JSON object.")
        point_id = value.get(JSON_KEY_ID)
        if point_id is not None and not isinstance(point_id, str):
            raise ValidationError("The meta-data ID must be a string.")
        raw_timestamp = value.get(JSON_KEY_TIMESTAMP)
        timestamp = None if raw_timestamp is None else parse_timestamp(raw_timestamp)
        return cls(id=point_id, timestamp=timestamp)

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.id is not None:
            result[JSON_KEY_ID] = self.id
        if self.timestamp is not None:
            result[JSON_KEY_TIMESTAMP] = self.timestamp.isoformat()
        return result


@dataclass(frozen=True)
class Data:
    """A validated data point.

    Attributes:
        owner: Username of the owning user.
        schema_id: Schema the payload was validated against.
        schema_version: Version of that schema.
        meta_data: Optional meta-data.
        data: The payload.
    """

    owner: str
    schema_id: str
    schema_version: int
    meta_data: MetaData | None
    data: Any

    def __post_init__(self) -> None:
        if self.owner is None or not self.owner.strip():
            raise ValidationError("The owner is missing.")
        if self.data is None:
            raise ValidationError("The data field is null.")

    def to_json(self) -> dict[str, Any]:
        """Serialize for API responses."""
        result: dict[str, Any] = {
            JSON_KEY_OWNER: self.owner,
            JSON_KEY_SCHEMA_ID: self.schema_id,
            JSON_KEY_SCHEMA_VERSION: self.schema_version,
        }
        if self.meta_data is not None:
            result[JSON_KEY_METADATA] = self.meta_data.to_json()
        result[JSON_KEY_DATA] = self.data
        return result
