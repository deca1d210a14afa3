"""Data point endpoints.

POST /v1/{schema_id}/{version}/data  store a JSON array of points (204)
GET  /v1/{schema_id}/{version}/data  read points, newest first

Writes require an authentication token and always store points owned by
the caller. Reads accept an authentication token, a third party's bearer
token, or both; reading another user's data requires the bearer token.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, Response

from dsu.api.deps import AccessToken, AppServices, CurrentUsername, OptionalUsername
from dsu.core.pagination import PaginationParams, pagination_params
from dsu.core.responses import ListResponse

router = APIRouter()

Paging = Annotated[PaginationParams, Depends(pagination_params)]


@router.post("/{schema_id}/{version}/data", status_code=204)
async def write_data(
    schema_id: str,
    version: int,
    payload: Annotated[Any, Body()],
    username: CurrentUsername,
    services: AppServices,
) -> Response:
    """Validate and store a batch of points for the caller."""
    await services.data.write(username, schema_id, version, payload)
    return Response(status_code=204)


@router.get("/{schema_id}/{version}/data")
async def read_data(
    schema_id: str,
    version: int,
    username: OptionalUsername,
    access_token: AccessToken,
    services: AppServices,
    paging: Paging,
    owner: str | None = None,
    column_list: Annotated[
        list[str] | None,
        Query(
            description="Dot paths into the data payload; repeatable or comma-separated"
        ),
    ] = None,
) -> ListResponse[dict]:
    """Page through points for an owner (defaults to the caller)."""
    columns = (
        [column for value in column_list for column in value.split(",")]
        if column_list is not None
        else None
    )
    points, count = await services.data.read(
        username,
        schema_id,
        version,
        owner=owner,
        access_token=access_token,
        column_list=columns,
        num_to_skip=paging.num_to_skip,
        num_to_return=paging.num_to_return,
    )
    return ListResponse(
        data=[point.to_json() for point in points],
        metadata=paging.meta(count),
    )
