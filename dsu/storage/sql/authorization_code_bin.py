"""SQL storage for authorization codes and owner decisions."""

from sqlalchemy import select

from dsu.domain import AuthorizationCode, AuthorizationCodeVerification
from dsu.storage.base import (
    AuthorizationCodeBin,
    AuthorizationCodeVerificationBin,
    at_most_one,
    require_entity,
)
from dsu.storage.sql.database import SqlBin
from dsu.storage.sql.models import AuthorizationCodeRow, AuthorizationCodeVerificationRow


class SqlAuthorizationCodeBin(SqlBin, AuthorizationCodeBin):
    """Codes in the ``authorization_codes`` table. Scopes are a JSON list."""

    async def store_code(self, code: AuthorizationCode) -> None:
        code = require_entity(code, "authorization code")
        await self._insert(
            [
                AuthorizationCodeRow(
                    code=code.code,
                    third_party_id=code.third_party_id,
                    creation_time=code.creation_time,
                    expiration_time=code.expiration_time,
                    scopes=sorted(code.scopes),
                    state=code.state,
                )
            ],
            "DUPLICATE_CODE",
            "The authorization code already exists.",
        )

    async def get_code(self, code: str) -> AuthorizationCode | None:
        rows = await self._fetch_at_most_two(
            select(AuthorizationCodeRow).where(AuthorizationCodeRow.code == code)
        )
        row = at_most_one(rows, "authorization code", code)
        if row is None:
            return None
        return AuthorizationCode(
            third_party_id=row.third_party_id,
            code=row.code,
            creation_time=row.creation_time,
            expiration_time=row.expiration_time,
            scopes=frozenset(row.scopes),
            state=row.state,
        )


class SqlAuthorizationCodeVerificationBin(SqlBin, AuthorizationCodeVerificationBin):
    """Decisions in ``authorization_code_verifications``, one per code."""

    async def store_verification(
        self, verification: AuthorizationCodeVerification
    ) -> None:
        verification = require_entity(verification, "verification")
        await self._insert(
            [
                AuthorizationCodeVerificationRow(
                    authorization_code=verification.authorization_code,
                    owner=verification.owner,
                    granted=verification.granted,
                )
            ],
            "CODE_ALREADY_VERIFIED",
            "A decision has already been recorded for this authorization code.",
        )

    async def get_verification(
        self, code: str
    ) -> AuthorizationCodeVerification | None:
        rows = await self._fetch_at_most_two(
            select(AuthorizationCodeVerificationRow).where(
                AuthorizationCodeVerificationRow.authorization_code == code
            )
        )
        row = at_most_one(rows, "verification", code)
        if row is None:
            return None
        return AuthorizationCodeVerification(
            authorization_code=row.authorization_code,
            owner=row.owner,
            granted=row.granted,
        )
