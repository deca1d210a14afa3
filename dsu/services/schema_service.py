"""Schema listing and lookup."""

from dsu.core.config import Settings
from dsu.core.errors import NoSuchSchemaError
from dsu.core.pagination import validate_paging
from dsu.domain import Schema
from dsu.domain.schema import validate_schema_id, validate_version
from dsu.storage import Registry


class SchemaService:
    """Read-only access to the registry with the paging contract applied.

    Args:
        registry: Schema registry.
        settings: Application settings (page-size cap).
    """

    def __init__(self, registry: Registry, settings: Settings) -> None:
        self._registry = registry
        self._settings = settings

    def _check_paging(self, num_to_skip: int, num_to_return: int) -> None:
        validate_paging(num_to_skip, num_to_return, self._settings.max_page_size)

    async def list_schema_ids(
        self, num_to_skip: int, num_to_return: int
    ) -> tuple[list[str], int]:
        """Distinct schema ids, ascending, with the total count."""
        self._check_paging(num_to_skip, num_to_return)
        return await self._registry.get_schema_ids(num_to_skip, num_to_return)

    async def list_versions(
        self, schema_id: str, num_to_skip: int, num_to_return: int
    ) -> tuple[list[int], int]:
        """Versions of one schema id, ascending, with the total count.

        Raises:
            NoSuchSchemaError: If no version of the id exists.
        """
        schema_id = validate_schema_id(schema_id)
        self._check_paging(num_to_skip, num_to_return)
        versions, total = await self._registry.get_schema_versions(
            schema_id, num_to_skip, num_to_return
        )
        if total == 0:
            raise NoSuchSchemaError(schema_id)
        return versions, total

    async def list_schemas(
        self,
        schema_id: str | None,
        version: int | None,
        num_to_skip: int,
        num_to_return: int,
    ) -> tuple[list[Schema], int]:
        """Schemas filtered by optional id/version, ordered by id then version."""
        if schema_id is not None:
            schema_id = validate_schema_id(schema_id)
        if version is not None:
            version = validate_version(version)
        self._check_paging(num_to_skip, num_to_return)
        return await self._registry.get_schemas(
            schema_id, version, num_to_skip, num_to_return
        )

    async def get_schema(self, schema_id: str, version: int) -> Schema:
        """Look up one schema version.

        Raises:
            ValidationError: If the id or version is malformed.
            NoSuchSchemaError: If the pair is not registered.
        """
        schema_id = validate_schema_id(schema_id)
        version = validate_version(version)
        schema = await self._registry.get_schema(schema_id, version)
        if schema is None:
            raise NoSuchSchemaError(schema_id, version)
        return schema
