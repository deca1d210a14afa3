"""Schema-definition compiler and data validator.

Structural validation is delegated to jsonschema (Draft 2020-12). The
draft is extended with one custom keyword:

    {"type": "string", "allowed_values": ["a", "b"]}

restricts a string to the listed values. The keyword is checked twice:
when a definition is compiled (it must be a list of strings, on a
string-typed schema) and when data is validated (a non-null string must
be one of the listed values).
"""

from collections.abc import Iterator
from typing import Any

from jsonschema import Draft202012Validator, validators
from jsonschema.exceptions import ValidationError as JsonSchemaError
from jsonschema.exceptions import best_match
from jsonschema.protocols import Validator

from dsu.core.errors import ValidationError

ALLOWED_VALUES = "allowed_values"


class SchemaDefinitionError(ValidationError):
    """A schema definition is malformed (400)."""

    def __init__(self, message: str, path: str = "") -> None:
        details = [{"path": path}] if path else None
        super().__init__(message=message, details=details)
        self.code = "INVALID_SCHEMA_DEFINITION"


class DataValidationError(ValidationError):
    """A payload does not satisfy its schema (400)."""

    def __init__(self, message: str, path: str = "") -> None:
        details = [{"path": path}] if path else None
        super().__init__(message=message, details=details)
        self.code = "INVALID_DATA"


def _allowed_values(
    validator: Validator, allowed: list[str], instance: Any, _schema: dict
) -> Iterator[JsonSchemaError]:
    if instance is None or not validator.is_type(instance, "string"):
        return
    if instance not in allowed:
        yield JsonSchemaError(
            f"{instance!r} is not one of the allowed values {allowed!r}"
        )


_DRAFT_META_SCHEMA_ID = Draft202012Validator.META_SCHEMA["$id"]


def _definition_meta_schema() -> dict:
    # The $dynamicAnchor makes every subschema of the standard meta-schema
    # resolve back here, so allowed_values is checked at any depth.
    return {
        "$schema": _DRAFT_META_SCHEMA_ID,
        "$id": "urn:dsu:schema-definition",
        "$dynamicAnchor": "meta",
        "$ref": _DRAFT_META_SCHEMA_ID,
        "properties": {
            ALLOWED_VALUES: {"type": "array", "items": {"type": "string"}},
        },
        "if": {"type": "object", "required": [ALLOWED_VALUES]},
        "then": {
            "required": ["type"],
            "properties": {
                "type": {
                    "enum": [
                        "string",
                        ["string"],
                        ["string", "null"],
                        ["null", "string"],
                    ]
                }
            },
        },
    }


_DEFINITION_CHECKER = Draft202012Validator(_definition_meta_schema())

DataValidator = validators.extend(
    Draft202012Validator, {ALLOWED_VALUES: _allowed_values}
)


def _path_of(error: JsonSchemaError) -> str:
    return "/".join(str(part) for part in error.absolute_path)


def check_definition(definition: Any) -> None:
    """Shape-check a schema definition, including allowed_values usage.

    Raises:
        SchemaDefinitionError: If the definition is not a valid schema.
    """
    if not isinstance(definition, dict):
        raise SchemaDefinitionError("The schema definition must be a JSON object.")
    error = best_match(_DEFINITION_CHECKER.iter_errors(definition))
    if error is not None:
        raise SchemaDefinitionError(
            f"The schema definition is invalid: {error.message}", _path_of(error)
        )


def compile_definition(definition: Any) -> Validator:
    """Check a definition and compile it into a reusable validator.

    Raises:
        SchemaDefinitionError: If the definition is not a valid schema.
    """
    check_definition(definition)
    return DataValidator(definition)


def validate_payload(validator: Validator, payload: Any) -> None:
    """Validate one payload against a compiled validator.

    Raises:
        DataValidationError: With the most relevant failure and its path.
    """
    error = best_match(validator.iter_errors(payload))
    if error is not None:
        path = _path_of(error)
        location = f" at '{path}'" if path else ""
        raise DataValidationError(
            f"The data is invalid{location}: {error.message}", path
        )
