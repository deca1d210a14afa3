"""Versioned data schemas.

A Schema pairs an (id, version) with a structural definition and the
validator compiled from it. Schemas are append-only: new versions are
added, existing versions never change.

The field validators are standalone so request handlers can reject a bad
id or version before looking anything up.
"""

from dataclasses import dataclass, field
from typing import Any

from jsonschema.protocols import Validator

from dsu.core.errors import ValidationError
from dsu.domain.data import Data, MetaData
from dsu.validation.engine import compile_definition, validate_payload

JSON_KEY_ID = "schema_id"
JSON_KEY_VERSION = "schema_version"
JSON_KEY_CHUNK_SIZE = "chunk_size"
JSON_KEY_TIME_AUTHORITATIVE = "time_authoritative"
JSON_KEY_TIME_ZONE_AUTHORITATIVE = "time_zone_authoritative"
JSON_KEY_SCHEMA = "schema"


def _positive_int(value: Any, name: str) -> int:
    if value is None:
        raise ValidationError(f"The {name} is missing.")
    if isinstance(value, bool):
        raise ValidationError(f"The {name} must be an integer.")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as exc:
            raise ValidationError(f"The {name} is not a number: {value}") from exc
    if not isinstance(value, int):
        raise ValidationError(f"The {name} must be an integer.")
    if value <= 0:
        raise ValidationError(f"The {name} must be positive.")
    return value


def validate_schema_id(schema_id: Any) -> str:
    """Validate a schema id.

    Returns:
        The trimmed id.

    Raises:
        ValidationError: If the id is missing, not a string, or blank.
    """
    if schema_id is None:
        raise ValidationError("The schema ID is missing.")
    if not isinstance(schema_id, str):
        raise ValidationError("The schema ID must be a string.")
    trimmed = schema_id.strip()
    if not trimmed:
        raise ValidationError("The schema ID is empty.")
    return trimmed


def validate_version(version: Any) -> int:
    """Validate a schema version (strictly positive integer)."""
    return _positive_int(version, "schema version")


def validate_chunk_size(chunk_size: Any) -> int:
    """Validate a chunk size (strictly positive integer)."""
    return _positive_int(chunk_size, "chunk size")


@dataclass(frozen=True)
class Schema:
    """A registry entry.

    Attributes:
        id: Schema id.
        version: Schema version, > 0.
        chunk_size: Maximum points per chunk for clients, > 0.
        time_authoritative: Whether point timestamps are authoritative.
        time_zone_authoritative: Whether point time zones are authoritative.
        definition: The JSON Schema document.
        validator: Validator compiled from the definition.
    """

    id: str
    version: int
    chunk_size: int
    time_authoritative: bool
    time_zone_authoritative: bool
    definition: dict
    validator: Validator = field(compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", validate_schema_id(self.id))
        object.__setattr__(self, "version", validate_version(self.version))
        object.__setattr__(self, "chunk_size", validate_chunk_size(self.chunk_size))
        if self.validator is None:
            raise ValidationError("The schema validator is missing.")

    def validate_data(
        self, owner: str, meta_data: MetaData | None, data: Any
    ) -> Data:
        """Validate a payload and wrap it as a Data record.

        Args:
            owner: Username that will own the record.
            meta_data: Optional meta-data for the point.
            data: Decoded JSON payload.

        Returns:
            The validated Data record.

        Raises:
            ValidationError: If the payload is null.
            DataValidationError: If the payload fails the schema.
        """
        if data is None:
            raise ValidationError("The data field is null.")
        validate_payload(self.validator, data)
        return Data(
            owner=owner,
            schema_id=self.id,
            schema_version=self.version,
            meta_data=meta_data,
            data=data,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            JSON_KEY_ID: self.id,
            JSON_KEY_VERSION: self.version,
            JSON_KEY_CHUNK_SIZE: self.chunk_size,
            JSON_KEY_TIME_AUTHORITATIVE: self.time_authoritative,
            JSON_KEY_TIME_ZONE_AUTHORITATIVE: self.time_zone_authoritative,
            JSON_KEY_SCHEMA: self.definition,
        }


def build_schema(
    schema_id: Any,
    version: Any,
    chunk_size: Any,
    time_authoritative: bool,
    time_zone_authoritative: bool,
    definition: Any,
) -> Schema:
    """Compile a definition and construct the Schema around it.

    Raises:
        ValidationError: If any field is invalid.
        SchemaDefinitionError: If the definition is malformed.
    """
    return Schema(
        id=validate_schema_id(schema_id),
        version=validate_version(version),
        chunk_size=validate_chunk_size(chunk_size),
        time_authoritative=bool(time_authoritative),
        time_zone_authoritative=bool(time_zone_authoritative),
        definition=definition,
        validator=compile_definition(definition),
    )


def schema_from_json(document: Any) -> Schema:
    """Build a Schema from its JSON document form (registry seed or storage).

    Raises:
        ValidationError: If the document is not an object or fields are invalid.
    """
    if not isinstance(document, dict):
        raise ValidationError("A schema document must be a JSON object.")
    return build_schema(
        document.get(JSON_KEY_ID),
        document.get(JSON_KEY_VERSION),
        document.get(JSON_KEY_CHUNK_SIZE),
        document.get(JSON_KEY_TIME_AUTHORITATIVE, False),
        document.get(JSON_KEY_TIME_ZONE_AUTHORITATIVE, False),
        document.get(JSON_KEY_SCHEMA),
    )
