"""Global enums — must match DB values and token claims exactly."""

from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class UserSortField(str, Enum):
    """Columns a user search may be ordered by (whitelisted for raw SQL)."""
    ID = "id"
    NAME = "name"
    SURNAME = "surname"
    EMAIL = "email"
    BIRTH_DATE = "birth_date"
    CREATED_AT = "created_at"
