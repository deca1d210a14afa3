"""Response envelope models.

WHY RESPONSE ENVELOPES:
- Consistent structure across all endpoints
- Easy to distinguish success from error responses
- Paging metadata (pre-paging count) in a predictable location
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ListMeta(BaseModel):
    """Paging metadata for collections.

    Attributes:
        count: Total number of matching items before skip/limit.
        num_to_skip: Items skipped for this page.
        num_to_return: Page size requested.
        previous: URL of the previous page, if any.
        next: URL of the next page, if any.
    """

    count: int
    num_to_skip: int
    num_to_return: int
    previous: str | None = None
    next: str | None = None


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    Usage:
        @router.get("/{schema_id}/{version}")
        async def get_schema(...) -> DataResponse[SchemaDocument]:
            return DataResponse(data=document)
    """

    data: T


class ListResponse(BaseModel, Generic[T]):
    """Standard response envelope for collections.

    Usage:
        @router.get("/")
        async def list_ids(paging: Paging) -> ListResponse[str]:
            ids, count = await service.list_schema_ids(...)
            return ListResponse(data=ids, metadata=paging.meta(count))
    """

    data: list[T]
    metadata: ListMeta


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope.

    All errors use {"error": {...}} envelope.
    """

    error: ErrorDetail
