"""Paging utilities.

num_to_skip (default 0, >= 0) and num_to_return (default and cap:
settings.max_page_size). Requests above the cap are rejected, not truncated.

WHY MANDATORY PAGING:
- Bounds every query against either storage engine
- Lets clients compute "has more" from the pre-paging count
"""

from dataclasses import dataclass

from fastapi import Query, Request
from starlette.datastructures import URL

from dsu.core.errors import ValidationError
from dsu.core.responses import ListMeta


def validate_paging(num_to_skip: int, num_to_return: int, max_page_size: int) -> None:
    """Check skip/limit bounds.

    Usable standalone so services reject bad paging before touching storage.

    Args:
        num_to_skip: Number of results to skip.
        num_to_return: Number of results to return.
        max_page_size: Upper bound for num_to_return.

    Raises:
        ValidationError: If either value is out of range.
    """
    if num_to_skip < 0:
        raise ValidationError("The number to skip must be non-negative.")
    if num_to_return < 1:
        raise ValidationError("The number to return must be positive.")
    if num_to_return > max_page_size:
        raise ValidationError(
            f"The number to return may not exceed {max_page_size}.",
            details=[{"field": "num_to_return", "max": max_page_size}],
        )


@dataclass
class PaginationParams:
    """Paging query parameters.

    Attributes:
        num_to_skip: Number of items to skip.
        num_to_return: Maximum number of items to return.
        url: Request URL, used to build previous/next links.
    """

    num_to_skip: int
    num_to_return: int
    url: URL | None = None

    def meta(self, count: int) -> ListMeta:
        """Build list metadata for a page of results.

        Args:
            count: Total number of matching items before paging.

        Returns:
            ListMeta with previous/next links where neighbouring pages exist.
        """
        previous_link = None
        next_link = None
        if self.url is not None:
            if self.num_to_skip > 0:
                previous_link = str(
                    self.url.include_query_params(
                        num_to_skip=max(0, self.num_to_skip - self.num_to_return),
                        num_to_return=self.num_to_return,
                    )
                )
            if self.num_to_skip + self.num_to_return < count:
                next_link = str(
                    self.url.include_query_params(
                        num_to_skip=self.num_to_skip + self.num_to_return,
                        num_to_return=self.num_to_return,
                    )
                )
        return ListMeta(
            count=count,
            num_to_skip=self.num_to_skip,
            num_to_return=self.num_to_return,
            previous=previous_link,
            next=next_link,
        )


def pagination_params(
    request: Request,
    num_to_skip: int = Query(default=0, description="Number of results to skip"),
    num_to_return: int | None = Query(
        default=None,
        description="Number of results to return (defaults to the page-size cap)",
    ),
) -> PaginationParams:
    """FastAPI dependency for paging query parameters.

    Usage:
        @router.get("/")
        async def list_items(
            pagination: PaginationParams = Depends(pagination_params)
        ):
            items, count = await service.list(
                num_to_skip=pagination.num_to_skip,
                num_to_return=pagination.num_to_return,
            )
            ...

    Args:
        request: HTTP request (gives access to app settings and URL).
        num_to_skip: Items to skip (default 0, must be >= 0).
        num_to_return: Items per page (default and max: the configured cap).

    Returns:
        PaginationParams with validated values.

    Raises:
        ValidationError: If a value is out of range.
    """
    settings = request.app.state.settings
    max_page_size = settings.max_page_size
    if num_to_return is None:
        num_to_return = max_page_size
    validate_paging(num_to_skip, num_to_return, max_page_size)
    return PaginationParams(
        num_to_skip=num_to_skip,
        num_to_return=num_to_return,
        # Links must not echo a credential passed as a query parameter
        url=request.url.remove_query_params(settings.auth_cookie_name),
    )
