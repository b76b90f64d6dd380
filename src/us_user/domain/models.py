"""Domain models for us_user — pure dataclasses, no SQLAlchemy dependency."""

import json
from dataclasses import dataclass, field
from datetime import date, datetime

from src.us_card.domain.models import Card
from src.us_common.enums import SortDirection, UserSortField


@dataclass
class User:
    id: int
    name: str
    surname: str
    birth_date: date
    email: str               # unique, compared case-sensitively as stored
    active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cards: list[Card] = field(default_factory=list)


@dataclass(frozen=True)
class UserSearchQuery:
    """Filters + page + sort of a user search; also the search-page cache key."""

    name: str | None = None
    surname: str | None = None
    active: bool | None = None
    page: int = 0
    size: int = 20
    sort_field: UserSortField = UserSortField.ID
    sort_direction: SortDirection = SortDirection.ASC

    @property
    def offset(self) -> int:
        return self.page * self.size

    def cache_key(self) -> str:
        """Deterministic key covering every parameter that shapes the page."""
        return json.dumps(
            [
                self.name,
                self.surname,
                self.active,
                self.page,
                self.size,
                self.sort_field.value,
                self.sort_direction.value,
            ],
            separators=(",", ":"),
        )
