"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock or in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import date
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.us_user.domain.models import User, UserSearchQuery


class UserRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, user_id: int) -> User | None: ...

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None: ...

    async def exists_by_id(self, db: AsyncSession, user_id: int) -> bool: ...

    async def search(
        self, db: AsyncSession, query: UserSearchQuery
    ) -> tuple[list[User], int]: ...

    async def insert(
        self,
        db: AsyncSession,
        name: str,
        surname: str,
        birth_date: date,
        email: str,
        active: bool,
    ) -> User: ...

    async def update(
        self,
        db: AsyncSession,
        user_id: int,
        name: str,
        surname: str,
        birth_date: date,
        email: str,
        active: bool,
    ) -> User | None: ...

    async def delete(self, db: AsyncSession, user_id: int) -> bool: ...

    async def set_active(self, db: AsyncSession, user_id: int, active: bool) -> bool: ...
