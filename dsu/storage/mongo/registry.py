"""Document storage for the schema registry.

Definitions are stored as JSON text: JSON Schema keywords such as
"$ref" and "$schema" are not safe as document field names.
"""

import json
from typing import Any

from pymongo import ASCENDING

from dsu.domain import Schema, build_schema
from dsu.storage.base import Registry, at_most_one, require_entity
from dsu.storage.mongo.database import MongoBin

_ORDER = [("schema_id", ASCENDING), ("schema_version", ASCENDING)]


def _to_schema(document: dict[str, Any]) -> Schema:
    return build_schema(
        document["schema_id"],
        document["schema_version"],
        document["chunk_size"],
        document["time_authoritative"],
        document["time_zone_authoritative"],
        json.loads(document["schema"]),
    )


class MongoRegistry(MongoBin, Registry):
    """Schemas in the ``registry`` collection, unique on (schema_id, schema_version)."""

    collection_name = "registry"

    async def store_schema(self, schema: Schema) -> None:
        schema = require_entity(schema, "schema")
        await self._insert(
            [
                {
                    "schema_id": schema.id,
                    "schema_version": schema.version,
                    "chunk_size": schema.chunk_size,
                    "time_authoritative": schema.time_authoritative,
                    "time_zone_authoritative": schema.time_zone_authoritative,
                    "schema": json.dumps(schema.definition),
                }
            ],
            "SCHEMA_EXISTS",
            f"Schema '{schema.id}' version {schema.version} already exists.",
        )

    async def get_schema(self, schema_id: str, version: int) -> Schema | None:
        documents = await self._find_at_most_two(
            {"schema_id": schema_id, "schema_version": version}
        )
        document = at_most_one(documents, "schema", f"{schema_id}:{version}")
        return None if document is None else _to_schema(document)

    async def get_schemas(
        self,
        schema_id: str | None,
        version: int | None,
        num_to_skip: int,
        num_to_return: int,
    ) -> tuple[list[Schema], int]:
        query: dict[str, Any] = {}
        if schema_id is not None:
            query["schema_id"] = schema_id
        if version is not None:
            query["schema_version"] = version

        total = await self._collection.count_documents(query)
        cursor = (
            self._collection.find(query, {"_id": 0})
            .sort(_ORDER)
            .skip(num_to_skip)
            .limit(num_to_return)
        )
        documents = await cursor.to_list(length=num_to_return)
        return [_to_schema(document) for document in documents], total

    async def get_schema_ids(
        self, num_to_skip: int, num_to_return: int
    ) -> tuple[list[str], int]:
        ids = sorted(await self._collection.distinct("schema_id"))
        return ids[num_to_skip : num_to_skip + num_to_return], len(ids)

    async def get_schema_versions(
        self, schema_id: str, num_to_skip: int, num_to_return: int
    ) -> tuple[list[int], int]:
        query = {"schema_id": schema_id}
        total = await self._collection.count_documents(query)
        cursor = (
            self._collection.find(query, {"_id": 0, "schema_version": 1})
            .sort("schema_version", ASCENDING)
            .skip(num_to_skip)
            .limit(num_to_return)
        )
        documents = await cursor.to_list(length=num_to_return)
        return [document["schema_version"] for document in documents], total
