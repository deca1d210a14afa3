"""Document storage for session (authentication) tokens."""

from dsu.core.clock import now_millis
from dsu.domain import AuthenticationToken
from dsu.storage.base import AuthenticationTokenBin, at_most_one, require_entity
from dsu.storage.mongo.database import MongoBin


class MongoAuthenticationTokenBin(MongoBin, AuthenticationTokenBin):
    """Session tokens in the ``authentication_tokens`` collection."""

    collection_name = "authentication_tokens"

    async def store_token(self, token: AuthenticationToken) -> None:
        token = require_entity(token, "authentication token")
        await self._insert(
            [
                {
                    "token": token.token,
                    "username": token.username,
                    "granted": token.granted,
                    "expires": token.expires,
                }
            ],
            "DUPLICATE_TOKEN",
            "The authentication token already exists.",
        )

    async def get_token(
        self, token: str, now: int | None = None
    ) -> AuthenticationToken | None:
        current = now_millis() if now is None else now
        documents = await self._find_at_most_two(
            {"token": token, "expires": {"$gt": current}}
        )
        document = at_most_one(documents, "authentication token", token)
        return None if document is None else AuthenticationToken(**document)
