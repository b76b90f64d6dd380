"""JWT access-token verification.

Tokens are issued by the upstream auth service and signed with the shared
HS256 JWT_SECRET. Claims consumed here:
    userId  int   — subject id
    email   str   — informational only
    role    str   — USER | ADMIN

``create_access_token`` mints the same shape and exists for local tooling
and tests; this service never issues tokens to clients.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from config.settings import settings
from src.us_common.enums import Role

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


class InvalidTokenError(Exception):
    """Token is malformed, expired, badly signed, or missing a claim."""


def create_access_token(
    user_id: int,
    role: Role,
    email: str = "",
    expires_in: timedelta | None = None,
) -> str:
    """Mint an access token in the upstream auth service's format."""
    now = datetime.now(UTC)
    payload = {
        "userId": user_id,
        "email": email,
        "role": role.value,
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else _ACCESS_EXPIRE),
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_access_token(token: str) -> tuple[int, Role]:
    """Verify ``token`` and return (user_id, role).

    Raises:
        InvalidTokenError: signature/expiry check failed or claims are unusable.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    user_id = payload.get("userId")
    # bool is an int subclass; a `true` claim is not a user id
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise InvalidTokenError("userId claim missing or not an integer")

    try:
        role = Role(payload.get("role"))
    except ValueError as exc:
        raise InvalidTokenError(f"unknown role claim: {payload.get('role')!r}") from exc

    return user_id, role
