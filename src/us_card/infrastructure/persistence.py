"""CardRepository — concrete implementation of CardRepositoryProtocol.

All queries use raw text() SQL. Activate/deactivate is a single UPDATE that
never loads the card; a row count of 0 means the card does not exist.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from datetime import date

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_card.domain.models import Card

CARD_COLUMNS = "id, user_id, number, holder, expiration_date, active, created_at, updated_at"

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_GET_CARD_SQL = text(f"""
    SELECT {CARD_COLUMNS}
    FROM payment_cards
    WHERE id = :card_id
""")

_GET_CARD_BY_NUMBER_SQL = text(f"""
    SELECT {CARD_COLUMNS}
    FROM payment_cards
    WHERE number = :number
""")

_LIST_CARDS_BY_USER_SQL = text(f"""
    SELECT {CARD_COLUMNS}
    FROM payment_cards
    WHERE user_id = :user_id
    ORDER BY id
""")

_LIST_CARD_IDS_BY_USER_SQL = text("""
    SELECT id FROM payment_cards WHERE user_id = :user_id ORDER BY id
""")

_COUNT_CARDS_BY_USER_SQL = text("""
    SELECT COUNT(*) FROM payment_cards WHERE user_id = :user_id
""")

_INSERT_CARD_SQL = text(f"""
    INSERT INTO payment_cards (user_id, number, holder, expiration_date, active)
    VALUES (:user_id, :number, :holder, :expiration_date, :active)
    RETURNING {CARD_COLUMNS}
""")

_UPDATE_CARD_SQL = text(f"""
    UPDATE payment_cards
    SET number = :number,
        holder = :holder,
        expiration_date = :expiration_date,
        active = :active
    WHERE id = :card_id
    RETURNING {CARD_COLUMNS}
""")

_DELETE_CARD_SQL = text("""
    DELETE FROM payment_cards WHERE id = :card_id
""")

_SET_CARD_ACTIVE_SQL = text("""
    UPDATE payment_cards SET active = :active WHERE id = :card_id
""")


def row_to_card(row: object) -> Card:
    return Card(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        number=row.number,  # type: ignore[attr-defined]
        holder=row.holder,  # type: ignore[attr-defined]
        expiration_date=row.expiration_date,  # type: ignore[attr-defined]
        active=row.active,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class CardRepository:
    async def get_by_id(self, db: AsyncSession, card_id: int) -> Card | None:
        result = await db.execute(_GET_CARD_SQL, {"card_id": card_id})
        row = result.fetchone()
        return row_to_card(row) if row else None

    async def get_by_number(self, db: AsyncSession, number: str) -> Card | None:
        result = await db.execute(_GET_CARD_BY_NUMBER_SQL, {"number": number})
        row = result.fetchone()
        return row_to_card(row) if row else None

    async def list_by_user(self, db: AsyncSession, user_id: int) -> list[Card]:
        result = await db.execute(_LIST_CARDS_BY_USER_SQL, {"user_id": user_id})
        return [row_to_card(row) for row in result.fetchall()]

    async def list_ids_by_user(self, db: AsyncSession, user_id: int) -> list[int]:
        result = await db.execute(_LIST_CARD_IDS_BY_USER_SQL, {"user_id": user_id})
        return [row.id for row in result.fetchall()]

    async def count_by_user(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(_COUNT_CARDS_BY_USER_SQL, {"user_id": user_id})
        return int(result.scalar_one())

    async def insert(
        self,
        db: AsyncSession,
        user_id: int,
        number: str,
        holder: str,
        expiration_date: date,
        active: bool,
    ) -> Card:
        result = await db.execute(
            _INSERT_CARD_SQL,
            {
                "user_id": user_id,
                "number": number,
                "holder": holder,
                "expiration_date": expiration_date,
                "active": active,
            },
        )
        return row_to_card(result.fetchone())

    async def update(
        self,
        db: AsyncSession,
        card_id: int,
        number: str,
        holder: str,
        expiration_date: date,
        active: bool,
    ) -> Card | None:
        result = await db.execute(
            _UPDATE_CARD_SQL,
            {
                "card_id": card_id,
                "number": number,
                "holder": holder,
                "expiration_date": expiration_date,
                "active": active,
            },
        )
        row = result.fetchone()
        return row_to_card(row) if row else None

    async def delete(self, db: AsyncSession, card_id: int) -> bool:
        result = await db.execute(_DELETE_CARD_SQL, {"card_id": card_id})
        return result.rowcount > 0

    async def set_active(self, db: AsyncSession, card_id: int, active: bool) -> bool:
        result = await db.execute(_SET_CARD_ACTIVE_SQL, {"card_id": card_id, "active": active})
        return result.rowcount > 0
