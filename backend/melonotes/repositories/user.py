"""User Repository."""

from typing import Optional

from melonotes.repositories.base import Repository, utcnow
from melonotes.storage.base import USER, Query, Record


class UserRepository(Repository):
    kind = USER
    resource = "User"
    fields = ("username", "password", "created_at")

    async def get_by_username(self, username: str) -> Optional[Record]:
        matches = await self.storage.query(USER, Query.where(username=username))
        return matches[0] if matches else None

    async def create(self, username: str, password_hash: str) -> Record:
        return await super().create(
            {"username": username, "password": password_hash, "created_at": utcnow()}
        )
