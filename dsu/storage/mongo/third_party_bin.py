"""Document storage for registered third parties."""

from dsu.domain import ThirdParty
from dsu.storage.base import ThirdPartyBin, at_most_one, require_entity
from dsu.storage.mongo.database import MongoBin


class MongoThirdPartyBin(MongoBin, ThirdPartyBin):
    """Client applications in the ``third_parties`` collection."""

    collection_name = "third_parties"

    async def store_third_party(self, third_party: ThirdParty) -> None:
        third_party = require_entity(third_party, "third party")
        await self._insert(
            [
                {
                    "id": third_party.id,
                    "owner": third_party.owner,
                    "shared_secret": third_party.shared_secret,
                    "name": third_party.name,
                    "description": third_party.description,
                    "redirect_uri": third_party.redirect_uri,
                }
            ],
            "THIRD_PARTY_EXISTS",
            "A third party with this ID already exists.",
        )

    async def get_third_party(self, third_party_id: str) -> ThirdParty | None:
        documents = await self._find_at_most_two({"id": third_party_id})
        document = at_most_one(documents, "third party", third_party_id)
        return None if document is None else ThirdParty(**document)
