"""FastAPI dependencies: get_identity, require_service.

Usage in any router:
    from src.us_gateway.auth.dependencies import get_identity

    @router.get("/things/{id}")
    async def get_thing(identity: Annotated[Identity, Depends(get_identity)]):
        ...

get_identity never rejects a request; authorization happens inside the
application services, which receive the identity as an explicit argument.
require_service is the coarse gate in front of the /internal routes.
"""

from fastapi import Depends, Header

from src.us_common.errors import ForbiddenError, UnauthenticatedError
from src.us_gateway.auth.identity import Anonymous, Identity, Service
from src.us_gateway.auth.resolver import resolve_identity


async def get_identity(
    authorization: str | None = Header(None),
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
    x_service_key: str | None = Header(None),
) -> Identity:
    """Resolve the caller identity from Authorization / gateway / service headers."""
    return resolve_identity(
        authorization=authorization,
        user_id_header=x_user_id,
        role_header=x_user_role,
        service_key=x_service_key,
    )


async def require_service(
    identity: Identity = Depends(get_identity),
) -> Identity:
    """Gate for /internal routes: only inter-service callers get through.

    Raises HTTP 401 (UnauthenticatedError) without credentials and
    HTTP 403 (ForbiddenError) for any non-service identity.
    """
    if isinstance(identity, Anonymous):
        raise UnauthenticatedError()
    if not isinstance(identity, Service):
        raise ForbiddenError("INTERNAL_API")
    return identity
