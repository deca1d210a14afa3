"""User registration and account activation endpoints.

POST /v1/users creates an account; when activation is required an email
carrying the activation link is sent in the background.
GET /v1/users/activation?registration_id=... activates it.
"""

from fastapi import APIRouter, BackgroundTasks, Request
from pydantic import BaseModel, ConfigDict

from dsu.api.deps import AppServices, AppSettings
from dsu.core.config import settings as default_settings
from dsu.core.email import send_activation_email
from dsu.core.errors import NotFoundError
from dsu.core.rate_limiting import limiter
from dsu.core.responses import DataResponse

router = APIRouter()


class RegisterRequest(BaseModel):
    """Request body for POST /users.

    Field rules (length, email syntax, password size) are enforced by the
    User entity so every entry point reports them the same way.
    """

    model_config = ConfigDict(extra="forbid")

    username: str | None = None
    password: str | None = None
    email: str | None = None


@router.post("", status_code=201)
@limiter.limit(lambda: default_settings.rate_limit_auth)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    services: AppServices,
    settings: AppSettings,
) -> DataResponse[dict]:
    """Register a new account.

    Rate limited per client address.
    """
    user = await services.authentication.register(
        body.username, body.password, body.email
    )

    if settings.activation_required and user.registration_key is not None:
        background_tasks.add_task(
            send_activation_email,
            to_email=user.email,
            registration_key=user.registration_key,
            settings=settings,
        )

    return DataResponse(
        data={
            "username": user.username,
            "email": user.email,
            "date_registered": user.date_registered,
        }
    )


@router.get("/activation")
async def activate(
    services: AppServices,
    registration_id: str | None = None,
) -> DataResponse[dict]:
    """Activate the account holding a registration key."""
    if registration_id is None:
        raise NotFoundError("Registration")
    user = await services.authentication.activate(registration_id)
    return DataResponse(
        data={"username": user.username, "date_activated": user.date_activated}
    )
