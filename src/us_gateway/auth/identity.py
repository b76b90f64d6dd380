"""Caller identity variants produced by the resolver.

Exactly one of these is attached to every inbound operation and passed
explicitly into the application services; nothing reads identity from
ambient request state.
"""

from dataclasses import dataclass

from src.us_common.enums import Role


@dataclass(frozen=True)
class Subject:
    """Authenticated end user."""

    id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True)
class Service:
    """Trusted inter-service caller (registration flow, order service...)."""


@dataclass(frozen=True)
class Anonymous:
    """No usable credentials were presented."""


Identity = Subject | Service | Anonymous

ANONYMOUS = Anonymous()
SERVICE = Service()


def describe(identity: Identity) -> str:
    """Short log-friendly label: 'user:5', 'admin:1', 'service', 'anonymous'."""
    if isinstance(identity, Subject):
        return f"{identity.role.value.lower()}:{identity.id}"
    if isinstance(identity, Service):
        return "service"
    return "anonymous"
