"""SQL storage for access/refresh token pairs."""

from sqlalchemy import select

from dsu.core.clock import now_millis
from dsu.domain import AuthorizationToken
from dsu.storage.base import AuthorizationTokenBin, at_most_one, require_entity
from dsu.storage.sql.database import SqlBin
from dsu.storage.sql.models import AuthorizationTokenRow


def _to_token(row: AuthorizationTokenRow) -> AuthorizationToken:
    return AuthorizationToken(
        authorization_code=row.authorization_code,
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        creation_time=row.creation_time,
        expiration_time=row.expiration_time,
    )


class SqlAuthorizationTokenBin(SqlBin, AuthorizationTokenBin):
    """Token pairs in ``authorization_tokens``. Refreshing inserts a new row."""

    async def store_token(self, token: AuthorizationToken) -> None:
        token = require_entity(token, "authorization token")
        await self._insert(
            [
                AuthorizationTokenRow(
                    authorization_code=token.authorization_code,
                    access_token=token.access_token,
                    refresh_token=token.refresh_token,
                    creation_time=token.creation_time,
                    expiration_time=token.expiration_time,
                )
            ],
            "DUPLICATE_TOKEN",
            "The access or refresh token already exists.",
        )

    async def get_token_from_access_token(
        self, access_token: str, now: int | None = None
    ) -> AuthorizationToken | None:
        current = now_millis() if now is None else now
        rows = await self._fetch_at_most_two(
            select(AuthorizationTokenRow).where(
                AuthorizationTokenRow.access_token == access_token,
                AuthorizationTokenRow.expiration_time > current,
            )
        )
        row = at_most_one(rows, "authorization token", access_token)
        return None if row is None else _to_token(row)

    async def get_token_from_refresh_token(
        self, refresh_token: str
    ) -> AuthorizationToken | None:
        rows = await self._fetch_at_most_two(
            select(AuthorizationTokenRow).where(
                AuthorizationTokenRow.refresh_token == refresh_token
            )
        )
        row = at_most_one(rows, "authorization token", refresh_token)
        return None if row is None else _to_token(row)
