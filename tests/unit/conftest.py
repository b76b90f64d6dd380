"""In-memory stand-ins for the store and the cache backend.

FakeStore mimics the two PostgreSQL tables closely enough for the service
laws to be exercised: unique email, unique card number, and the cascade
from users to payment_cards. Repositories ignore the ``db`` argument; the
session mock only records commit/rollback.
"""

from dataclasses import replace
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.us_cache.backend import CacheUnavailableError
from src.us_cache.entity_cache import EntityCache
from src.us_card.application.service import CardApplicationService
from src.us_card.domain.models import Card
from src.us_user.application.service import UserApplicationService
from src.us_user.domain.models import User, UserSearchQuery


class FakeStore:
    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.cards: dict[int, Card] = {}
        self._next_user_id = 1
        self._next_card_id = 1

    def add_user(self, **overrides: object) -> User:
        values = {
            "name": "Alice",
            "surname": "Smith",
            "birth_date": date(1990, 1, 1),
            "email": f"user{self._next_user_id}@example.com",
            "active": True,
        }
        values.update(overrides)
        now = datetime.now(UTC)
        user = User(id=self._next_user_id, created_at=now, updated_at=now, **values)  # type: ignore[arg-type]
        self.users[user.id] = user
        self._next_user_id += 1
        return user

    def add_card(self, user_id: int, **overrides: object) -> Card:
        values = {
            "number": f"4000-0000-0000-{self._next_card_id:04d}",
            "holder": "ALICE SMITH",
            "expiration_date": date(2099, 12, 31),
            "active": True,
        }
        values.update(overrides)
        now = datetime.now(UTC)
        card = Card(
            id=self._next_card_id, user_id=user_id, created_at=now, updated_at=now, **values  # type: ignore[arg-type]
        )
        self.cards[card.id] = card
        self._next_card_id += 1
        return card

    def cards_of(self, user_id: int) -> list[Card]:
        return sorted(
            (c for c in self.cards.values() if c.user_id == user_id), key=lambda c: c.id
        )

    def user_view(self, user_id: int) -> User | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        return replace(user, cards=[replace(c) for c in self.cards_of(user_id)])


class FakeUserRepository:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def get_by_id(self, db, user_id: int) -> User | None:  # type: ignore[no-untyped-def]
        return self._store.user_view(user_id)

    async def get_by_email(self, db, email: str) -> User | None:  # type: ignore[no-untyped-def]
        for user in self._store.users.values():
            if user.email == email:
                return self._store.user_view(user.id)
        return None

    async def exists_by_id(self, db, user_id: int) -> bool:  # type: ignore[no-untyped-def]
        return user_id in self._store.users

    async def search(self, db, query: UserSearchQuery) -> tuple[list[User], int]:  # type: ignore[no-untyped-def]
        def matches(user: User) -> bool:
            if query.name and query.name.lower() not in user.name.lower():
                return False
            if query.surname and query.surname.lower() not in user.surname.lower():
                return False
            return query.active is None or user.active == query.active

        hits = sorted(
            (u for u in self._store.users.values() if matches(u)),
            key=lambda u: getattr(u, query.sort_field.value),
            reverse=query.sort_direction.value == "desc",
        )
        page = hits[query.offset: query.offset + query.size]
        return [self._store.user_view(u.id) for u in page], len(hits)  # type: ignore[misc]

    async def insert(self, db, name, surname, birth_date, email, active) -> User:  # type: ignore[no-untyped-def]
        user = self._store.add_user(
            name=name, surname=surname, birth_date=birth_date, email=email, active=active
        )
        return replace(user)

    async def update(self, db, user_id, name, surname, birth_date, email, active) -> User | None:  # type: ignore[no-untyped-def]
        user = self._store.users.get(user_id)
        if user is None:
            return None
        self._store.users[user_id] = replace(
            user, name=name, surname=surname, birth_date=birth_date, email=email, active=active
        )
        return self._store.user_view(user_id)

    async def delete(self, db, user_id: int) -> bool:  # type: ignore[no-untyped-def]
        if self._store.users.pop(user_id, None) is None:
            return False
        for card in self._store.cards_of(user_id):
            del self._store.cards[card.id]
        return True

    async def set_active(self, db, user_id: int, active: bool) -> bool:  # type: ignore[no-untyped-def]
        user = self._store.users.get(user_id)
        if user is None:
            return False
        self._store.users[user_id] = replace(user, active=active)
        return True


class FakeCardRepository:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def get_by_id(self, db, card_id: int) -> Card | None:  # type: ignore[no-untyped-def]
        card = self._store.cards.get(card_id)
        return replace(card) if card else None

    async def get_by_number(self, db, number: str) -> Card | None:  # type: ignore[no-untyped-def]
        for card in self._store.cards.values():
            if card.number == number:
                return replace(card)
        return None

    async def list_by_user(self, db, user_id: int) -> list[Card]:  # type: ignore[no-untyped-def]
        return [replace(c) for c in self._store.cards_of(user_id)]

    async def list_ids_by_user(self, db, user_id: int) -> list[int]:  # type: ignore[no-untyped-def]
        return [c.id for c in self._store.cards_of(user_id)]

    async def count_by_user(self, db, user_id: int) -> int:  # type: ignore[no-untyped-def]
        return len(self._store.cards_of(user_id))

    async def insert(self, db, user_id, number, holder, expiration_date, active) -> Card:  # type: ignore[no-untyped-def]
        card = self._store.add_card(
            user_id, number=number, holder=holder, expiration_date=expiration_date, active=active
        )
        return replace(card)

    async def update(self, db, card_id, number, holder, expiration_date, active) -> Card | None:  # type: ignore[no-untyped-def]
        card = self._store.cards.get(card_id)
        if card is None:
            return None
        self._store.cards[card_id] = replace(
            card, number=number, holder=holder, expiration_date=expiration_date, active=active
        )
        return replace(self._store.cards[card_id])

    async def delete(self, db, card_id: int) -> bool:  # type: ignore[no-untyped-def]
        return self._store.cards.pop(card_id, None) is not None

    async def set_active(self, db, card_id: int, active: bool) -> bool:  # type: ignore[no-untyped-def]
        card = self._store.cards.get(card_id)
        if card is None:
            return False
        self._store.cards[card_id] = replace(card, active=active)
        return True


class FakeCacheBackend:
    """Dict-backed CacheBackend; ``failing=True`` makes every call raise."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.failing = False

    def _check(self) -> None:
        if self.failing:
            raise CacheUnavailableError("connection refused")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, *keys: str) -> None:
        self._check()
        for key in keys:
            self.data.pop(key, None)

    async def delete_namespace(self, namespace: str) -> None:
        self._check()
        for key in [k for k in self.data if k.startswith(f"{namespace}:")]:
            del self.data[key]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def backend() -> FakeCacheBackend:
    return FakeCacheBackend()


@pytest.fixture
def cache(backend: FakeCacheBackend) -> EntityCache:
    return EntityCache(backend=backend, prefix="test")


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def user_service(store: FakeStore, cache: EntityCache) -> UserApplicationService:
    return UserApplicationService(
        repo=FakeUserRepository(store), card_repo=FakeCardRepository(store), cache=cache
    )


@pytest.fixture
def card_service(store: FakeStore, cache: EntityCache) -> CardApplicationService:
    return CardApplicationService(
        repo=FakeCardRepository(store), user_repo=FakeUserRepository(store), cache=cache
    )
