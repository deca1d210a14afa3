"""Document storage for user accounts."""

from typing import Any

from dsu.core.errors import NotFoundError
from dsu.domain import User
from dsu.storage.base import UserBin, at_most_one, require_entity
from dsu.storage.mongo.database import MongoBin


def _to_document(user: User) -> dict[str, Any]:
    document: dict[str, Any] = {
        "username": user.username,
        "password_hash": user.password_hash,
        "email": user.email,
        "date_registered": user.date_registered,
        "date_activated": user.date_activated,
    }
    # Omitted rather than null so the sparse unique index ignores it
    if user.registration_key is not None:
        document["registration_key"] = user.registration_key
    return document


def _to_user(document: dict[str, Any]) -> User:
    return User(
        username=document["username"],
        password_hash=document["password_hash"],
        email=document["email"],
        registration_key=document.get("registration_key"),
        date_registered=document.get("date_registered"),
        date_activated=document.get("date_activated"),
    )


class MongoUserBin(MongoBin, UserBin):
    """User accounts in the ``users`` collection."""

    collection_name = "users"

    async def add_user(self, user: User) -> None:
        user = require_entity(user, "user")
        await self._insert(
            [_to_document(user)],
            "USERNAME_TAKEN",
            "A user with this username already exists.",
        )

    async def get_user(self, username: str) -> User | None:
        documents = await self._find_at_most_two({"username": username})
        document = at_most_one(documents, "user", username)
        return None if document is None else _to_user(document)

    async def get_user_from_registration_key(
        self, registration_key: str
    ) -> User | None:
        documents = await self._find_at_most_two(
            {"registration_key": registration_key}
        )
        document = at_most_one(documents, "user", registration_key)
        return None if document is None else _to_user(document)

    async def update_user(self, user: User) -> None:
        user = require_entity(user, "user")
        result = await self._collection.update_one(
            {"username": user.username},
            {"$set": {"date_activated": user.date_activated}},
        )
        if result.matched_count == 0:
            raise NotFoundError("User", user.username)
