"""Tests for Schema construction, data validation and registry seeding."""

import json

import pytest

from dsu.core.errors import NoSuchSchemaError, ValidationError
from dsu.domain import MetaData, build_schema
from dsu.domain.schema import (
    schema_from_json,
    validate_chunk_size,
    validate_schema_id,
    validate_version,
)
from dsu.services.registry_seed import default_seed_path, seed_registry
from dsu.validation.engine import DataValidationError, SchemaDefinitionError

_WEIGHT_DEFINITION = {
    "type": "object",
    "properties": {
        "value": {"type": "number"},
        "unit": {"type": "string", "allowed_values": ["kg", "lb"]},
    },
}


def _weight_schema():
    return build_schema("weight", 1, 100, True, True, _WEIGHT_DEFINITION)


class TestFieldValidators:
    """Tests for the standalone schema field validators."""

    @pytest.mark.parametrize("schema_id", [None, "", "  ", 5])
    def test_invalid_schema_id(self, schema_id):
        with pytest.raises(ValidationError):
            validate_schema_id(schema_id)

    def test_schema_id_trimmed(self):
        assert validate_schema_id(" weight ") == "weight"

    @pytest.mark.parametrize("version", [None, 0, -1, True, "abc", 1.5])
    def test_invalid_version(self, version):
        with pytest.raises(ValidationError):
            validate_version(version)

    def test_numeric_string_version_accepted(self):
        assert validate_version("3") == 3

    @pytest.mark.parametrize("chunk_size", [None, 0, -5])
    def test_invalid_chunk_size(self, chunk_size):
        with pytest.raises(ValidationError):
            validate_chunk_size(chunk_size)


class TestSchema:
    """Tests for Schema.validate_data and serialization."""

    def test_validate_data_builds_record(self):
        point = _weight_schema().validate_data("alice", None, {"value": 70, "unit": "kg"})
        assert point.owner == "alice"
        assert point.schema_id == "weight"
        assert point.schema_version == 1

    def test_empty_object_is_valid_weight(self):
        point = _weight_schema().validate_data("alice", MetaData(id="p1"), {})
        assert point.data == {}
        assert point.meta_data.id == "p1"

    def test_disallowed_unit_rejected(self):
        with pytest.raises(DataValidationError):
            _weight_schema().validate_data("alice", None, {"unit": "stone"})

    def test_null_payload_rejected(self):
        with pytest.raises(ValidationError):
            _weight_schema().validate_data("alice", None, None)

    def test_dependent_required_enforced(self):
        schema = build_schema(
            "pairs", 1, 1, True, True,
            {"type": "object", "dependentRequired": {"a": ["b"]}},
        )
        with pytest.raises(DataValidationError):
            schema.validate_data("alice", None, {"a": 1})

    def test_malformed_definition_rejected_at_build(self):
        with pytest.raises(SchemaDefinitionError):
            build_schema("bad", 1, 1, False, False, {"type": 12})

    def test_to_json_round_trip_through_document(self):
        schema = _weight_schema()
        rebuilt = schema_from_json(json.loads(json.dumps(schema.to_json())))
        assert rebuilt == schema

    def test_schema_from_json_requires_object(self):
        with pytest.raises(ValidationError):
            schema_from_json([])


class TestRegistrySeed:
    """Tests for loading schemas from a seed file."""

    async def test_bundled_seed_loads(self, storage):
        stored = await seed_registry(storage.registry)
        bundled = json.loads(default_seed_path().read_text(encoding="utf-8"))
        assert stored == len(bundled)
        assert await storage.registry.get_schema("weight", 1) is not None

    async def test_seeding_twice_skips_existing(self, storage):
        await seed_registry(storage.registry)
        assert await seed_registry(storage.registry) == 0

    async def test_custom_seed_file(self, storage, tmp_path):
        path = tmp_path / "schemas.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "schema_id": "steps",
                        "schema_version": 2,
                        "chunk_size": 10,
                        "time_authoritative": False,
                        "time_zone_authoritative": False,
                        "schema": {"type": "integer"},
                    }
                ]
            ),
            encoding="utf-8",
        )
        assert await seed_registry(storage.registry, path) == 1
        schema = await storage.registry.get_schema("steps", 2)
        assert schema.chunk_size == 10

    async def test_seed_file_must_be_array(self, storage, tmp_path):
        path = tmp_path / "schemas.json"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(ValidationError):
            await seed_registry(storage.registry, path)


class TestSchemaService:
    """Registry reads through the service, on both engines."""

    async def test_list_schemas_all(self, services):
        schemas, total = await services.schemas.list_schemas(None, None, 0, 10)
        assert total == 3
        assert [schema.id for schema in schemas] == ["blood_pressure", "mood", "weight"]

    async def test_list_schemas_filtered(self, services):
        schemas, total = await services.schemas.list_schemas("weight", 1, 0, 10)
        assert total == 1
        assert schemas[0].version == 1

    async def test_list_schemas_rejects_bad_paging(self, services):
        with pytest.raises(ValidationError):
            await services.schemas.list_schemas(None, None, 0, 101)

    async def test_list_versions_unknown_id(self, services):
        with pytest.raises(NoSuchSchemaError):
            await services.schemas.list_versions("nope", 0, 10)

    async def test_get_schema(self, services):
        schema = await services.schemas.get_schema("mood", 1)
        assert (schema.id, schema.version) == ("mood", 1)
