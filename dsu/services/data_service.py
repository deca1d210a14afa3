"""Data ingestion and query.

Writes are validated element by element before anything is stored, then
inserted as one batch, so a bad element aborts the whole request.

Reads default to the caller's own data. Reading anyone else's data (or
reading with only a bearer token) goes through the authorization access
check.
"""

from typing import Any

import structlog

from dsu.core.config import Settings
from dsu.core.errors import (
    APIError,
    AuthorizationError,
    UnauthorizedError,
    ValidationError,
)
from dsu.core.pagination import validate_paging
from dsu.domain import ColumnList, Data, MetaData
from dsu.domain.data import JSON_KEY_DATA, JSON_KEY_METADATA
from dsu.domain.schema import validate_schema_id, validate_version
from dsu.services.authorization_service import AuthorizationService
from dsu.services.schema_service import SchemaService
from dsu.storage import DataBin

logger = structlog.get_logger()


def _parse_meta_data(value: Any) -> MetaData | None:
    if value is None:
        return None
    meta = MetaData.from_json(value)
    if meta.id is None and meta.timestamp is None:
        return None
    return meta


class DataService:
    """Validates, stores and queries data points.

    Args:
        schemas: Schema lookup (for existence and validators).
        data: Data storage.
        authorization: Access checks for third-party reads.
        settings: Application settings (page-size cap).
    """

    def __init__(
        self,
        schemas: SchemaService,
        data: DataBin,
        authorization: AuthorizationService,
        settings: Settings,
    ) -> None:
        self._schemas = schemas
        self._data = data
        self._authorization = authorization
        self._settings = settings

    async def write(
        self, owner: str, schema_id: str, version: int, payload: Any
    ) -> list[Data]:
        """Validate and store a batch of points for the caller.

        Args:
            owner: Authenticated caller; owns every stored point.
            schema_id: Schema to validate against.
            version: Schema version.
            payload: Decoded JSON; must be an array of objects, each with
                a "data" field and an optional "metadata" object.

        Returns:
            The stored points.

        Raises:
            NoSuchSchemaError: If the schema/version is not registered.
            ValidationError: If the payload shape or any point is invalid;
                details carry the index of the failing point.
        """
        schema = await self._schemas.get_schema(schema_id, version)

        if not isinstance(payload, list):
            raise ValidationError("The data must be a JSON array.")

        points: list[Data] = []
        for index, element in enumerate(payload):
            try:
                if not isinstance(element, dict):
                    raise ValidationError("The data point is not a JSON object.")
                if JSON_KEY_DATA not in element:
                    raise ValidationError("The data point has no data field.")
                meta = _parse_meta_data(element.get(JSON_KEY_METADATA))
                points.append(schema.validate_data(owner, meta, element[JSON_KEY_DATA]))
            except APIError as exc:
                exc.details = [*(exc.details or []), {"index": index}]
                raise

        await self._data.store_data(points)
        logger.info(
            "Data stored",
            owner=owner,
            schema_id=schema.id,
            schema_version=schema.version,
            count=len(points),
        )
        return points

    async def read(
        self,
        caller: str | None,
        schema_id: str,
        version: int,
        *,
        owner: str | None = None,
        access_token: str | None = None,
        column_list: list[str] | None = None,
        num_to_skip: int = 0,
        num_to_return: int | None = None,
    ) -> tuple[list[Data], int]:
        """Page through points, newest first.

        Args:
            caller: Username from the authentication token, if any.
            schema_id: Schema to read.
            version: Schema version.
            owner: Whose data to read; defaults to the caller, or to the
                grantor when only an access token is presented.
            access_token: Third-party bearer token; required when the owner
                is not the caller.
            column_list: Dot-separated paths into the data payload.
            num_to_skip: Points to skip after sorting.
            num_to_return: Page size (defaults to the cap).

        Returns:
            The page and the total number of matching points.

        Raises:
            UnauthorizedError: If neither a caller nor an access token is given.
            AuthorizationError: If the access check fails.
            NoSuchSchemaError: If the schema/version is not registered.
            ValidationError: If paging or columns are malformed.
        """
        schema_id = validate_schema_id(schema_id)
        version = validate_version(version)
        if num_to_return is None:
            num_to_return = self._settings.max_page_size
        validate_paging(num_to_skip, num_to_return, self._settings.max_page_size)
        columns = ColumnList(column_list) if column_list else None
        if owner is not None:
            owner = owner.strip() or None

        if caller is None and access_token is None:
            raise UnauthorizedError()

        await self._schemas.get_schema(schema_id, version)

        if owner is None:
            owner = caller
        if owner is None:
            owner = await self._authorization.check_access(
                access_token, schema_id, None
            )
        elif owner != caller:
            if access_token is None:
                raise AuthorizationError(
                    "An authorization token is required to read another user's data."
                )
            await self._authorization.check_access(access_token, schema_id, owner)

        return await self._data.get_data(
            owner, schema_id, version, columns, num_to_skip, num_to_return
        )
