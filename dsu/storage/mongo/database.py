"""Motor client, index setup and shared bin plumbing for document storage.

Uniqueness is enforced with unique indexes created at startup; duplicate
inserts surface as DuplicateKeyError (or a BulkWriteError carrying code
11000) and are translated to ConflictError here.
"""

import logging
from collections.abc import Sequence
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.errors import BulkWriteError, DuplicateKeyError

from dsu.core.errors import ConflictError
from dsu.storage.base import StorageEngine

logger = logging.getLogger(__name__)

_DUPLICATE_KEY = 11000

# Collection name -> indexes. Every natural key gets a unique index.
INDEXES: dict[str, list[IndexModel]] = {
    "users": [
        IndexModel([("username", ASCENDING)], unique=True),
        IndexModel([("registration_key", ASCENDING)], unique=True, sparse=True),
    ],
    "third_parties": [
        IndexModel([("id", ASCENDING)], unique=True),
    ],
    "authentication_tokens": [
        IndexModel([("token", ASCENDING)], unique=True),
    ],
    "authorization_codes": [
        IndexModel([("code", ASCENDING)], unique=True),
    ],
    "authorization_code_verifications": [
        IndexModel([("authorization_code", ASCENDING)], unique=True),
    ],
    "authorization_tokens": [
        IndexModel([("access_token", ASCENDING)], unique=True),
        IndexModel([("refresh_token", ASCENDING)], unique=True),
        IndexModel([("authorization_code", ASCENDING)]),
    ],
    "data": [
        IndexModel(
            [
                ("owner", ASCENDING),
                ("schema_id", ASCENDING),
                ("schema_version", ASCENDING),
                ("metadata_timestamp_ms", DESCENDING),
            ]
        ),
    ],
    "registry": [
        IndexModel(
            [("schema_id", ASCENDING), ("schema_version", ASCENDING)], unique=True
        ),
    ],
}


class MongoEngine(StorageEngine):
    """Owns the motor client and database handle.

    Args:
        client: Motor client (or a compatible test double).
        database_name: Database holding the DSU collections.
    """

    def __init__(self, client: AsyncIOMotorClient, database_name: str) -> None:
        self.client = client
        self.database: AsyncIOMotorDatabase = client[database_name]

    async def initialize(self) -> None:
        for name, indexes in INDEXES.items():
            await self.database[name].create_indexes(indexes)
        logger.info("Mongo storage initialized")

    async def close(self) -> None:
        self.client.close()


class MongoBin:
    """Shared helpers for document-store bins.

    Subclasses set collection_name.

    Args:
        database: Motor database handle from MongoEngine.
    """

    collection_name: str = ""

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._collection = database[self.collection_name]

    async def _insert(
        self,
        documents: Sequence[dict[str, Any]],
        conflict_code: str,
        conflict_message: str,
    ) -> None:
        """Insert documents with a single driver call.

        Raises:
            ConflictError: If a unique index rejects a document.
        """
        try:
            if len(documents) == 1:
                await self._collection.insert_one(documents[0])
            else:
                await self._collection.insert_many(list(documents), ordered=True)
        except DuplicateKeyError as exc:
            raise ConflictError(conflict_code, conflict_message) from exc
        except BulkWriteError as exc:
            write_errors = exc.details.get("writeErrors", [])
            if any(error.get("code") == _DUPLICATE_KEY for error in write_errors):
                raise ConflictError(conflict_code, conflict_message) from exc
            raise

    async def _find_at_most_two(self, query: dict[str, Any]) -> list[dict[str, Any]]:
        """Run a key lookup, fetching enough documents to detect ambiguity."""
        cursor = self._collection.find(query, {"_id": 0}).limit(2)
        return await cursor.to_list(length=2)
