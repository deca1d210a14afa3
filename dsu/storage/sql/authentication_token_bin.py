"""SQL storage for session (authentication) tokens."""

from sqlalchemy import select

from dsu.core.clock import now_millis
from dsu.domain import AuthenticationToken
from dsu.storage.base import AuthenticationTokenBin, at_most_one, require_entity
from dsu.storage.sql.database import SqlBin
from dsu.storage.sql.models import AuthenticationTokenRow


class SqlAuthenticationTokenBin(SqlBin, AuthenticationTokenBin):
    """Session tokens in the ``authentication_tokens`` table."""

    async def store_token(self, token: AuthenticationToken) -> None:
        token = require_entity(token, "authentication token")
        await self._insert(
            [
                AuthenticationTokenRow(
                    token=token.token,
                    username=token.username,
                    granted=token.granted,
                    expires=token.expires,
                )
            ],
            "DUPLICATE_TOKEN",
            "The authentication token already exists.",
        )

    async def get_token(
        self, token: str, now: int | None = None
    ) -> AuthenticationToken | None:
        current = now_millis() if now is None else now
        rows = await self._fetch_at_most_two(
            select(AuthenticationTokenRow).where(
                AuthenticationTokenRow.token == token,
                AuthenticationTokenRow.expires > current,
            )
        )
        row = at_most_one(rows, "authentication token", token)
        if row is None:
            return None
        return AuthenticationToken(
            token=row.token,
            username=row.username,
            granted=row.granted,
            expires=row.expires,
        )
