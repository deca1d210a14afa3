"""SQL storage for registered third parties."""

from sqlalchemy import select

from dsu.domain import ThirdParty
from dsu.storage.base import ThirdPartyBin, at_most_one, require_entity
from dsu.storage.sql.database import SqlBin
from dsu.storage.sql.models import ThirdPartyRow


class SqlThirdPartyBin(SqlBin, ThirdPartyBin):
    """Client applications in the ``third_parties`` table."""

    async def store_third_party(self, third_party: ThirdParty) -> None:
        third_party = require_entity(third_party, "third party")
        await self._insert(
            [
                ThirdPartyRow(
                    third_party_id=third_party.id,
                    owner=third_party.owner,
                    shared_secret=third_party.shared_secret,
                    name=third_party.name,
                    description=third_party.description,
                    redirect_uri=third_party.redirect_uri,
                )
            ],
            "THIRD_PARTY_EXISTS",
            "A third party with this ID already exists.",
        )

    async def get_third_party(self, third_party_id: str) -> ThirdParty | None:
        rows = await self._fetch_at_most_two(
            select(ThirdPartyRow).where(ThirdPartyRow.third_party_id == third_party_id)
        )
        row = at_most_one(rows, "third party", third_party_id)
        if row is None:
            return None
        return ThirdParty(
            owner=row.owner,
            id=row.third_party_id,
            shared_secret=row.shared_secret,
            name=row.name,
            description=row.description,
            redirect_uri=row.redirect_uri,
        )
