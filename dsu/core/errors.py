"""API error classes.

WHY CUSTOM ERROR CLASSES:
- Every layer (domain, storage, services) raises the same taxonomy
- Easy to map to HTTP status codes in exception handlers
- Consistency violations stay opaque to clients while still being typed
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Invalid input (400).

    Malformed or missing fields, payloads that fail schema validation,
    out-of-range paging parameters.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication failed (401).

    Messages are always generic so callers cannot enumerate usernames.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to access resource (403).

    Use when auth is valid but the caller lacks permission.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class AuthorizationError(ForbiddenError):
    """Delegated access check failed (403).

    Raised when a third party's access token is unknown or expired, when
    the requested schema is outside the granted scopes, or when the grantor
    is not the owner of the requested data.
    """

    def __init__(self, message: str = "The authorization token is invalid.") -> None:
        APIError.__init__(
            self,
            code="INVALID_AUTHORIZATION",
            message=message,
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class NoSuchSchemaError(NotFoundError):
    """Referenced schema id/version is not in the registry (404)."""

    def __init__(self, schema_id: str, version: int | None = None) -> None:
        if version is None:
            message = f"No schema exists with the ID '{schema_id}'."
        else:
            message = (
                f"No schema exists with the ID '{schema_id}' "
                f"and version '{version}'."
            )
        APIError.__init__(
            self,
            code="NO_SUCH_SCHEMA",
            message=message,
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Use for occupied unique keys. Accepts custom code for specific
    conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class OAuthError(APIError):
    """Token-endpoint failure rendered in the OAuth error shape.

    The body is {"error": <error>, "error_description": <message>} rather
    than the standard envelope, so third-party client libraries can read it.

    Args:
        error: OAuth error name (e.g., "invalid_grant").
        message: Human-readable description.
        status_code: 400, or 401 for client authentication failures.
    """

    def __init__(self, error: str, message: str, status_code: int = 400) -> None:
        super().__init__(code=error, message=message, status_code=status_code)
        self.error = error


class InternalError(APIError):
    """Unexpected server error (500).

    Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )


class ConsistencyError(InternalError):
    """More than one record matched a key that must be unique (500).

    Indicates storage-layer corruption. The message is logged but the
    handler replaces it with an opaque body.

    Args:
        entity: Entity kind being looked up (e.g., "user").
        key: The key that matched more than once.
    """

    def __init__(self, entity: str, key: str) -> None:
        super().__init__(message=f"Multiple {entity} records found for '{key}'")
        self.code = "CONSISTENCY_VIOLATION"
        self.entity = entity
        self.key = key
