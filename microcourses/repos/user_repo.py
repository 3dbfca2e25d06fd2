from __future__ import annotations

from typing import Protocol
from uuid import UUID

from microcourses.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def add(self, user: User) -> None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}
        self._emails: set[str] = set()

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def add(self, user: User) -> None:
        if user.email in self._emails:
            raise ValueError("email already exists")
        self._by_id[user.id] = user
        self._emails.add(user.email)
