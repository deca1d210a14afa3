"""Schema registry endpoints (read-only).

GET /v1                           schema ids, ascending
GET /v1/{schema_id}               versions of one id, ascending
GET /v1/{schema_id}/{version}     one schema document
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from dsu.api.deps import AppServices
from dsu.core.pagination import PaginationParams, pagination_params
from dsu.core.responses import DataResponse, ListResponse

router = APIRouter()

Paging = Annotated[PaginationParams, Depends(pagination_params)]


@router.get("")
async def list_schema_ids(
    services: AppServices, paging: Paging
) -> ListResponse[str]:
    """List the distinct schema ids in the registry."""
    ids, count = await services.schemas.list_schema_ids(
        paging.num_to_skip, paging.num_to_return
    )
    return ListResponse(data=ids, metadata=paging.meta(count))


@router.get("/{schema_id}")
async def list_schema_versions(
    schema_id: str, services: AppServices, paging: Paging
) -> ListResponse[int]:
    """List the versions registered for a schema id."""
    versions, count = await services.schemas.list_versions(
        schema_id, paging.num_to_skip, paging.num_to_return
    )
    return ListResponse(data=versions, metadata=paging.meta(count))


@router.get("/{schema_id}/{version}")
async def get_schema(
    schema_id: str, version: int, services: AppServices
) -> DataResponse[dict]:
    """Return one schema version, including its JSON Schema definition."""
    schema = await services.schemas.get_schema(schema_id, version)
    return DataResponse(data=schema.to_json())
