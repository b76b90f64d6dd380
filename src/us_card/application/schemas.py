"""Pydantic request/response schemas for us_card.

CardResponse is also the cached representation of a card (single-card and
per-owner list regions), so its field set is the cache schema.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from src.us_card.domain.constants import CARD_NUMBER_PATTERN
from src.us_card.domain.models import Card
from src.us_common.datetime_utils import utc_today


class CardRequest(BaseModel):
    number: str = Field(..., pattern=CARD_NUMBER_PATTERN, examples=["4111-1111-1111-1111"])
    holder: str = Field(..., min_length=1, max_length=255)
    expiration_date: date
    active: bool

    @field_validator("holder")
    @classmethod
    def holder_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Holder is required")
        return v.strip()

    @field_validator("expiration_date")
    @classmethod
    def expiration_in_future(cls, v: date) -> date:
        if v <= utc_today():
            raise ValueError("Expiration date must be in future")
        return v


class CardResponse(BaseModel):
    id: int
    user_id: int
    number: str
    holder: str
    expiration_date: date
    active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, card: Card) -> "CardResponse":
        return cls(
            id=card.id,
            user_id=card.user_id,
            number=card.number,
            holder=card.holder,
            expiration_date=card.expiration_date,
            active=card.active,
            created_at=card.created_at,
            updated_at=card.updated_at,
        )
