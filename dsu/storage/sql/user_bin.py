"""SQL storage for user accounts."""

from sqlalchemy import select, update

from dsu.core.errors import NotFoundError
from dsu.domain import User
from dsu.storage.base import UserBin, at_most_one, require_entity
from dsu.storage.sql.database import SqlBin
from dsu.storage.sql.models import UserRow


def _to_user(row: UserRow) -> User:
    return User(
        username=row.username,
        password_hash=row.password_hash,
        email=row.email,
        registration_key=row.registration_key,
        date_registered=row.date_registered,
        date_activated=row.date_activated,
    )


class SqlUserBin(SqlBin, UserBin):
    """User accounts in the ``users`` table."""

    async def add_user(self, user: User) -> None:
        user = require_entity(user, "user")
        await self._insert(
            [
                UserRow(
                    username=user.username,
                    password_hash=user.password_hash,
                    email=user.email,
                    registration_key=user.registration_key,
                    date_registered=user.date_registered,
                    date_activated=user.date_activated,
                )
            ],
            "USERNAME_TAKEN",
            "A user with this username already exists.",
        )

    async def get_user(self, username: str) -> User | None:
        rows = await self._fetch_at_most_two(
            select(UserRow).where(UserRow.username == username)
        )
        row = at_most_one(rows, "user", username)
        return None if row is None else _to_user(row)

    async def get_user_from_registration_key(
        self, registration_key: str
    ) -> User | None:
        rows = await self._fetch_at_most_two(
            select(UserRow).where(UserRow.registration_key == registration_key)
        )
        row = at_most_one(rows, "user", registration_key)
        return None if row is None else _to_user(row)

    async def update_user(self, user: User) -> None:
        user = require_entity(user, "user")
        async with self._sessions.begin() as session:
            result = await session.execute(
                update(UserRow)
                .where(UserRow.username == user.username)
                .values(date_activated=user.date_activated)
            )
        if result.rowcount == 0:
            raise NotFoundError("User", user.username)
