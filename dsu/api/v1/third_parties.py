"""Third-party (client application) registration endpoint.

The shared secret is returned once, in the registration response.
"""

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from dsu.api.deps import AppServices, CurrentUsername
from dsu.core.responses import DataResponse

router = APIRouter()


class ThirdPartyCreate(BaseModel):
    """Request body for POST /third_parties."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    redirect_uri: str | None = None


@router.post("", status_code=201)
async def register_third_party(
    body: ThirdPartyCreate,
    username: CurrentUsername,
    services: AppServices,
) -> DataResponse[dict]:
    """Register a client application owned by the caller."""
    third_party = await services.third_parties.register(
        username, body.name, body.description, body.redirect_uri
    )
    return DataResponse(
        data={
            "client_id": third_party.id,
            "client_secret": third_party.shared_secret,
            "name": third_party.name,
            "description": third_party.description,
            "redirect_uri": third_party.redirect_uri,
        }
    )
