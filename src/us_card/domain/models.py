"""Domain models for us_card — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class Card:
    id: int
    user_id: int             # owner; cascade-deleted with the user
    number: str              # XXXX-XXXX-XXXX-XXXX, globally unique
    holder: str
    expiration_date: date
    active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
