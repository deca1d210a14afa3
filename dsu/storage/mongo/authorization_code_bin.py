"""Document storage for authorization codes and owner decisions."""

from dsu.domain import AuthorizationCode, AuthorizationCodeVerification
from dsu.storage.base import (
    AuthorizationCodeBin,
    AuthorizationCodeVerificationBin,
    at_most_one,
    require_entity,
)
from dsu.storage.mongo.database import MongoBin


class MongoAuthorizationCodeBin(MongoBin, AuthorizationCodeBin):
    """Codes in the ``authorization_codes`` collection."""

    collection_name = "authorization_codes"

    async def store_code(self, code: AuthorizationCode) -> None:
        code = require_entity(code, "authorization code")
        await self._insert(
            [
                {
                    "code": code.code,
                    "third_party_id": code.third_party_id,
                    "creation_time": code.creation_time,
                    "expiration_time": code.expiration_time,
                    "scopes": sorted(code.scopes),
                    "state": code.state,
                }
            ],
            "DUPLICATE_CODE",
            "The authorization code already exists.",
        )

    async def get_code(self, code: str) -> AuthorizationCode | None:
        documents = await self._find_at_most_two({"code": code})
        document = at_most_one(documents, "authorization code", code)
        if document is None:
            return None
        return AuthorizationCode(
            third_party_id=document["third_party_id"],
            code=document["code"],
            creation_time=document["creation_time"],
            expiration_time=document["expiration_time"],
            scopes=frozenset(document["scopes"]),
            state=document.get("state"),
        )


class MongoAuthorizationCodeVerificationBin(MongoBin, AuthorizationCodeVerificationBin):
    """Decisions in ``authorization_code_verifications``, one per code."""

    collection_name = "authorization_code_verifications"

    async def store_verification(
        self, verification: AuthorizationCodeVerification
    ) -> None:
        verification = require_entity(verification, "verification")
        await self._insert(
            [
                {
                    "authorization_code": verification.authorization_code,
                    "owner": verification.owner,
                    "granted": verification.granted,
                }
            ],
            "CODE_ALREADY_VERIFIED",
            "A decision has already been recorded for this authorization code.",
        )

    async def get_verification(
        self, code: str
    ) -> AuthorizationCodeVerification | None:
        documents = await self._find_at_most_two({"authorization_code": code})
        document = at_most_one(documents, "verification", code)
        return None if document is None else AuthorizationCodeVerification(**document)
