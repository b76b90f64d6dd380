"""Authorization policy: (identity, operation, owner id) -> Allow | Deny.

``decide`` is a pure function over its arguments — no I/O, no request state.
Operations whose rule depends on ownership take the owner's user id; for card
operations the caller looks the card up first and passes its ``user_id``,
never an id supplied by the client.

Rules (Admin = Subject with role ADMIN, Self = Subject whose id == owner id):

    READ_USER           Admin | Service | Self
    SEARCH_USERS        Admin
    CREATE_USER         Service
    UPDATE_USER         Admin | Self
    DELETE_USER         Admin | Service
    SET_USER_ACTIVITY   Admin
    GET_USER_BY_EMAIL   Service
    ADD_CARD            Admin | Self
    LIST_CARDS          Admin | Self
    READ_CARD           Admin | Self (card owner)
    UPDATE_CARD         Admin | Self (card owner)
    DELETE_CARD         Admin
    SET_CARD_ACTIVITY   Admin

Anonymous is denied everything with UNAUTHENTICATED; any other denial is
FORBIDDEN. The two reasons map to 401 and 403 respectively.
"""

from dataclasses import dataclass
from enum import Enum

from src.us_common.errors import ForbiddenError, UnauthenticatedError
from src.us_gateway.auth.identity import Anonymous, Identity, Service, Subject


class Operation(str, Enum):
    READ_USER = "READ_USER"
    SEARCH_USERS = "SEARCH_USERS"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"
    SET_USER_ACTIVITY = "SET_USER_ACTIVITY"
    GET_USER_BY_EMAIL = "GET_USER_BY_EMAIL"
    ADD_CARD = "ADD_CARD"
    LIST_CARDS = "LIST_CARDS"
    READ_CARD = "READ_CARD"
    UPDATE_CARD = "UPDATE_CARD"
    DELETE_CARD = "DELETE_CARD"
    SET_CARD_ACTIVITY = "SET_CARD_ACTIVITY"


class DenyReason(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Deny:
    reason: DenyReason


Decision = Allow | Deny

ALLOW = Allow()


@dataclass(frozen=True)
class _Rule:
    admin: bool = False
    service: bool = False
    owner: bool = False


_RULES: dict[Operation, _Rule] = {
    Operation.READ_USER: _Rule(admin=True, service=True, owner=True),
    Operation.SEARCH_USERS: _Rule(admin=True),
    Operation.CREATE_USER: _Rule(service=True),
    Operation.UPDATE_USER: _Rule(admin=True, owner=True),
    Operation.DELETE_USER: _Rule(admin=True, service=True),
    Operation.SET_USER_ACTIVITY: _Rule(admin=True),
    Operation.GET_USER_BY_EMAIL: _Rule(service=True),
    Operation.ADD_CARD: _Rule(admin=True, owner=True),
    Operation.LIST_CARDS: _Rule(admin=True, owner=True),
    Operation.READ_CARD: _Rule(admin=True, owner=True),
    Operation.UPDATE_CARD: _Rule(admin=True, owner=True),
    Operation.DELETE_CARD: _Rule(admin=True),
    Operation.SET_CARD_ACTIVITY: _Rule(admin=True),
}


def decide(
    identity: Identity,
    operation: Operation,
    owner_id: int | None = None,
) -> Decision:
    """Return the policy decision for ``identity`` performing ``operation``.

    ``owner_id`` is the user id owning the target resource; ``None`` means the
    operation has no owner-scoped target (or it is not known yet), in which
    case the Self clause can never match.
    """
    if isinstance(identity, Anonymous):
        return Deny(DenyReason.UNAUTHENTICATED)

    rule = _RULES[operation]

    if isinstance(identity, Service):
        return ALLOW if rule.service else Deny(DenyReason.FORBIDDEN)

    if isinstance(identity, Subject):
        if identity.is_admin and rule.admin:
            return ALLOW
        if rule.owner and owner_id is not None and identity.id == owner_id:
            return ALLOW

    return Deny(DenyReason.FORBIDDEN)


def authorize(
    identity: Identity,
    operation: Operation,
    owner_id: int | None = None,
) -> None:
    """Raise UnauthenticatedError / ForbiddenError unless ``decide`` allows."""
    decision = decide(identity, operation, owner_id)
    if isinstance(decision, Deny):
        if decision.reason is DenyReason.UNAUTHENTICATED:
            raise UnauthenticatedError()
        raise ForbiddenError(operation.value)


def require_authenticated(identity: Identity) -> None:
    """Reject Anonymous before any lookup, so missing resources are not revealed."""
    if isinstance(identity, Anonymous):
        raise UnauthenticatedError()
