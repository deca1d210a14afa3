"""Document storage for access/refresh token pairs."""

from dsu.core.clock import now_millis
from dsu.domain import AuthorizationToken
from dsu.storage.base import AuthorizationTokenBin, at_most_one, require_entity
from dsu.storage.mongo.database import MongoBin


class MongoAuthorizationTokenBin(MongoBin, AuthorizationTokenBin):
    """Token pairs in ``authorization_tokens``. Refreshing inserts a new document."""

    collection_name = "authorization_tokens"

    async def store_token(self, token: AuthorizationToken) -> None:
        token = require_entity(token, "authorization token")
        await self._insert(
            [
                {
                    "authorization_code": token.authorization_code,
                    "access_token": token.access_token,
                    "refresh_token": token.refresh_token,
                    "creation_time": token.creation_time,
                    "expiration_time": token.expiration_time,
                }
            ],
            "DUPLICATE_TOKEN",
            "The access or refresh token already exists.",
        )

    async def get_token_from_access_token(
        self, access_token: str, now: int | None = None
    ) -> AuthorizationToken | None:
        current = now_millis() if now is None else now
        documents = await self._find_at_most_two(
            {"access_token": access_token, "expiration_time": {"$gt": current}}
        )
        document = at_most_one(documents, "authorization token", access_token)
        return None if document is None else AuthorizationToken(**document)

    async def get_token_from_refresh_token(
        self, refresh_token: str
    ) -> AuthorizationToken | None:
        documents = await self._find_at_most_two({"refresh_token": refresh_token})
        document = at_most_one(documents, "authorization token", refresh_token)
        return None if document is None else AuthorizationToken(**document)
