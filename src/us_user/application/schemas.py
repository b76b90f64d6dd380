"""Pydantic request/response schemas for us_user.

UserResponse and UserPageResponse are also the cached representations of a
single user and of a search page; each cache region stores exactly one of
these shapes as plain JSON.
"""

import math
from datetime import date, datetime

from pydantic import BaseModel, EmailStr, Field, TypeAdapter, ValidationError, field_validator

from src.us_card.application.schemas import CardResponse
from src.us_common.datetime_utils import utc_today
from src.us_common.enums import SortDirection, UserSortField
from src.us_common.errors import ValidationFailedError
from src.us_user.domain.models import User, UserSearchQuery

_EMAIL: TypeAdapter[str] = TypeAdapter(EmailStr)


class UserRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=255)
    surname: str = Field(..., min_length=3, max_length=255)
    birth_date: date
    email: str = Field(..., max_length=255)
    active: bool

    @field_validator("email")
    @classmethod
    def email_well_formed(cls, v: str) -> str:
        # stored exactly as submitted; lookups compare case-sensitively
        try:
            _EMAIL.validate_python(v)
        except ValidationError:
            raise ValueError("Email is not valid") from None
        return v

    @field_validator("birth_date")
    @classmethod
    def birth_date_in_past(cls, v: date) -> date:
        if v >= utc_today():
            raise ValueError("Birth date must be in past")
        return v


class UserResponse(BaseModel):
    id: int
    name: str
    surname: str
    birth_date: date
    email: str
    active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cards: list[CardResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            surname=user.surname,
            birth_date=user.birth_date,
            email=user.email,
            active=user.active,
            created_at=user.created_at,
            updated_at=user.updated_at,
            cards=[CardResponse.from_domain(c) for c in user.cards],
        )


class UserPageResponse(BaseModel):
    items: list[UserResponse]
    page: int
    size: int
    total_elements: int
    total_pages: int

    @classmethod
    def from_result(
        cls, users: list[User], total: int, query: UserSearchQuery
    ) -> "UserPageResponse":
        return cls(
            items=[UserResponse.from_domain(u) for u in users],
            page=query.page,
            size=query.size,
            total_elements=total,
            total_pages=math.ceil(total / query.size) if query.size else 0,
        )


def parse_sort(sort: str) -> tuple[UserSortField, SortDirection]:
    """Parse 'field' or 'field,asc|desc' into whitelisted enum members.

    Raises:
        ValidationFailedError: unknown field or direction.
    """
    field_part, _, direction_part = sort.partition(",")
    try:
        field = UserSortField(field_part.strip().lower())
        direction = SortDirection((direction_part.strip() or "asc").lower())
    except ValueError:
        raise ValidationFailedError(
            [{"field": "sort", "rejected_value": sort, "message": "Unsupported sort"}]
        ) from None
    return field, direction
