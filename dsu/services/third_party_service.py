"""Third-party registry service."""

import logging

from dsu.core.errors import NotFoundError
from dsu.domain import ThirdParty
from dsu.storage import ThirdPartyBin

logger = logging.getLogger(__name__)


class ThirdPartyService:
    """Registers and looks up client applications.

    Args:
        third_parties: Third-party storage.
    """

    def __init__(self, third_parties: ThirdPartyBin) -> None:
        self._third_parties = third_parties

    async def register(
        self,
        owner: str,
        name: str | None,
        description: str | None,
        redirect_uri: str | None,
    ) -> ThirdParty:
        """Register a new client owned by an authenticated user.

        Returns:
            The stored ThirdParty, including its id and shared secret.

        Raises:
            ValidationError: If a field is missing, blank or malformed.
        """
        third_party = ThirdParty.create(owner, name, description, redirect_uri)
        await self._third_parties.store_third_party(third_party)
        logger.info("Third party %s registered by %s", third_party.id, owner)
        return third_party

    async def get(self, third_party_id: str) -> ThirdParty:
        """Look up a client by id.

        Raises:
            NotFoundError: If the client is unknown.
        """
        third_party = await self._third_parties.get_third_party(third_party_id)
        if third_party is None:
            raise NotFoundError("Third party", third_party_id)
        return third_party
