"""SQL storage for the schema registry."""

from sqlalchemy import distinct, func, select

from dsu.domain import Schema, build_schema
from dsu.storage.base import Registry, at_most_one, require_entity
from dsu.storage.sql.database import SqlBin
from dsu.storage.sql.models import SchemaRow


def _to_schema(row: SchemaRow) -> Schema:
    return build_schema(
        row.schema_id,
        row.schema_version,
        row.chunk_size,
        row.time_authoritative,
        row.time_zone_authoritative,
        row.definition,
    )


class SqlRegistry(SqlBin, Registry):
    """Schemas in the ``registry`` table, unique on (schema_id, schema_version)."""

    async def store_schema(self, schema: Schema) -> None:
        schema = require_entity(schema, "schema")
        await self._insert(
            [
                SchemaRow(
                    schema_id=schema.id,
                    schema_version=schema.version,
                    chunk_size=schema.chunk_size,
                    time_authoritative=schema.time_authoritative,
                    time_zone_authoritative=schema.time_zone_authoritative,
                    definition=schema.definition,
                )
            ],
            "SCHEMA_EXISTS",
            f"Schema '{schema.id}' version {schema.version} already exists.",
        )

    async def get_schema(self, schema_id: str, version: int) -> Schema | None:
        rows = await self._fetch_at_most_two(
            select(SchemaRow).where(
                SchemaRow.schema_id == schema_id,
                SchemaRow.schema_version == version,
            )
        )
        row = at_most_one(rows, "schema", f"{schema_id}:{version}")
        return None if row is None else _to_schema(row)

    async def get_schemas(
        self,
        schema_id: str | None,
        version: int | None,
        num_to_skip: int,
        num_to_return: int,
    ) -> tuple[list[Schema], int]:
        criteria = []
        if schema_id is not None:
            criteria.append(SchemaRow.schema_id == schema_id)
        if version is not None:
            criteria.append(SchemaRow.schema_version == version)

        total = await self._scalar(
            select(func.count()).select_from(SchemaRow).where(*criteria)
        )
        rows = await self._fetch_all(
            select(SchemaRow)
            .where(*criteria)
            .order_by(SchemaRow.schema_id, SchemaRow.schema_version)
            .offset(num_to_skip)
            .limit(num_to_return)
        )
        return [_to_schema(row) for row in rows], total

    async def get_schema_ids(
        self, num_to_skip: int, num_to_return: int
    ) -> tuple[list[str], int]:
        total = await self._scalar(select(func.count(distinct(SchemaRow.schema_id))))
        ids = await self._fetch_all(
            select(SchemaRow.schema_id)
            .distinct()
            .order_by(SchemaRow.schema_id)
            .offset(num_to_skip)
            .limit(num_to_return)
        )
        return ids, total

    async def get_schema_versions(
        self, schema_id: str, num_to_skip: int, num_to_return: int
    ) -> tuple[list[int], int]:
        total = await self._scalar(
            select(func.count())
            .select_from(SchemaRow)
            .where(SchemaRow.schema_id == schema_id)
        )
        versions = await self._fetch_all(
            select(SchemaRow.schema_version)
            .where(SchemaRow.schema_id == schema_id)
            .order_by(SchemaRow.schema_version)
            .offset(num_to_skip)
            .limit(num_to_return)
        )
        return versions, total
