"""UserRepository — concrete implementation of UserRepositoryProtocol.

All queries use raw text() SQL (no ORM). Users are returned with their cards
attached, loaded by one extra query per call (never one per user).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from datetime import date

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_card.domain.models import Card
from src.us_card.infrastructure.persistence import CARD_COLUMNS, row_to_card
from src.us_user.domain.models import User, UserSearchQuery

_USER_COLUMNS = "id, name, surname, birth_date, email, active, created_at, updated_at"

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_GET_USER_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE id = :user_id
""")

_GET_USER_BY_EMAIL_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE email = :email
""")

_EXISTS_USER_SQL = text("""
    SELECT EXISTS (SELECT 1 FROM users WHERE id = :user_id)
""")

_INSERT_USER_SQL = text(f"""
    INSERT INTO users (name, surname, birth_date, email, active)
    VALUES (:name, :surname, :birth_date, :email, :active)
    RETURNING {_USER_COLUMNS}
""")

_UPDATE_USER_SQL = text(f"""
    UPDATE users
    SET name = :name,
        surname = :surname,
        birth_date = :birth_date,
        email = :email,
        active = :active
    WHERE id = :user_id
    RETURNING {_USER_COLUMNS}
""")

# payment_cards rows go with it: FK ON DELETE CASCADE, same statement
_DELETE_USER_SQL = text("""
    DELETE FROM users WHERE id = :user_id
""")

_SET_USER_ACTIVE_SQL = text("""
    UPDATE users SET active = :active WHERE id = :user_id
""")

_CARDS_FOR_USERS_SQL = text(f"""
    SELECT {CARD_COLUMNS}
    FROM payment_cards
    WHERE user_id IN :user_ids
    ORDER BY id
""").bindparams(bindparam("user_ids", expanding=True))

_SEARCH_FILTER = """
    WHERE
        (CAST(:name_pattern AS TEXT) IS NULL
            OR LOWER(name) LIKE CAST(:name_pattern AS TEXT) ESCAPE '!')
        AND (CAST(:surname_pattern AS TEXT) IS NULL
            OR LOWER(surname) LIKE CAST(:surname_pattern AS TEXT) ESCAPE '!')
        AND (CAST(:active AS BOOLEAN) IS NULL OR active = CAST(:active AS BOOLEAN))
"""

_COUNT_USERS_SQL = text(f"SELECT COUNT(*) FROM users {_SEARCH_FILTER}")


def _search_sql(query: UserSearchQuery) -> str:
    # sort field/direction are enum members, never raw client input
    direction = query.sort_direction.value.upper()
    return f"""
        SELECT {_USER_COLUMNS}
        FROM users
        {_SEARCH_FILTER}
        ORDER BY {query.sort_field.value} {direction}, id {direction}
        LIMIT :limit OFFSET :offset
    """


def _like_pattern(value: str | None) -> str | None:
    """Case-insensitive substring pattern; blank filters mean 'no filter'."""
    if value is None or not value.strip():
        return None
    escaped = value.lower().replace("!", "!!").replace("%", "!%").replace("_", "!_")
    return f"%{escaped}%"


def _row_to_user(row: object, cards: list[Card]) -> User:
    return User(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        surname=row.surname,  # type: ignore[attr-defined]
        birth_date=row.birth_date,  # type: ignore[attr-defined]
        email=row.email,  # type: ignore[attr-defined]
        active=row.active,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
        cards=cards,
    )


class UserRepository:
    async def get_by_id(self, db: AsyncSession, user_id: int) -> User | None:
        result = await db.execute(_GET_USER_SQL, {"user_id": user_id})
        row = result.fetchone()
        if row is None:
            return None
        return (await self._attach_cards(db, [row]))[0]

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(_GET_USER_BY_EMAIL_SQL, {"email": email})
        row = result.fetchone()
        if row is None:
            return None
        return (await self._attach_cards(db, [row]))[0]

    async def exists_by_id(self, db: AsyncSession, user_id: int) -> bool:
        result = await db.execute(_EXISTS_USER_SQL, {"user_id": user_id})
        return bool(result.scalar_one())

    async def search(
        self, db: AsyncSession, query: UserSearchQuery
    ) -> tuple[list[User], int]:
        params = {
            "name_pattern": _like_pattern(query.name),
            "surname_pattern": _like_pattern(query.surname),
            "active": query.active,
        }
        count_result = await db.execute(_COUNT_USERS_SQL, params)
        total = int(count_result.scalar_one())
        if total == 0:
            return [], 0

        result = await db.execute(
            text(_search_sql(query)),
            {**params, "limit": query.size, "offset": query.offset},
        )
        users = await self._attach_cards(db, result.fetchall())
        return users, total

    async def insert(
        self,
        db: AsyncSession,
        name: str,
        surname: str,
        birth_date: date,
        email: str,
        active: bool,
    ) -> User:
        result = await db.execute(
            _INSERT_USER_SQL,
            {
                "name": name,
                "surname": surname,
                "birth_date": birth_date,
                "email": email,
                "active": active,
            },
        )
        return _row_to_user(result.fetchone(), cards=[])

    async def update(
        self,
        db: AsyncSession,
        user_id: int,
        name: str,
        surname: str,
        birth_date: date,
        email: str,
        active: bool,
    ) -> User | None:
        result = await db.execute(
            _UPDATE_USER_SQL,
            {
                "user_id": user_id,
                "name": name,
                "surname": surname,
                "birth_date": birth_date,
                "email": email,
                "active": active,
            },
        )
        row = result.fetchone()
        if row is None:
            return None
        return (await self._attach_cards(db, [row]))[0]

    async def delete(self, db: AsyncSession, user_id: int) -> bool:
        result = await db.execute(_DELETE_USER_SQL, {"user_id": user_id})
        return result.rowcount > 0

    async def set_active(self, db: AsyncSession, user_id: int, active: bool) -> bool:
        result = await db.execute(_SET_USER_ACTIVE_SQL, {"user_id": user_id, "active": active})
        return result.rowcount > 0

    async def _attach_cards(self, db: AsyncSession, rows: list) -> list[User]:
        if not rows:
            return []
        result = await db.execute(
            _CARDS_FOR_USERS_SQL, {"user_ids": [row.id for row in rows]}
        )
        cards_by_user: dict[int, list[Card]] = {}
        for card_row in result.fetchall():
            card = row_to_card(card_row)
            cards_by_user.setdefault(card.user_id, []).append(card)
        return [_row_to_user(row, cards_by_user.get(row.id, [])) for row in rows]
