"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock or in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import date
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.us_card.domain.models import Card


class CardRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, card_id: int) -> Card | None: ...

    async def get_by_number(self, db: AsyncSession, number: str) -> Card | None: ...

    async def list_by_user(self, db: AsyncSession, user_id: int) -> list[Card]: ...

    async def list_ids_by_user(self, db: AsyncSession, user_id: int) -> list[int]: ...

    async def count_by_user(self, db: AsyncSession, user_id: int) -> int: ...

    async def insert(
        self,
        db: AsyncSession,
        user_id: int,
        number: str,
        holder: str,
        expiration_date: date,
        active: bool,
    ) -> Card: ...

    async def update(
        self,
        db: AsyncSession,
        card_id: int,
        number: str,
        holder: str,
        expiration_date: date,
        active: bool,
    ) -> Card | None: ...

    async def delete(self, db: AsyncSession, card_id: int) -> bool: ...

    async def set_active(self, db: AsyncSession, card_id: int, active: bool) -> bool: ...
