"""us_user internal endpoints — inter-service calls only (X-Service-Key).

POST   /internal/users             — create during registration (auth service)
DELETE /internal/users/{user_id}   — registration rollback (auth service)
GET    /internal/users/by-email    — login lookup (auth service)
GET    /internal/users/{user_id}   — read one (order service)

The router-level require_service gate rejects non-service callers up front;
the application service still applies the same policy as the public routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_common.database import get_db_session
from src.us_common.response import ApiResponse, success_response
from src.us_gateway.auth.dependencies import require_service
from src.us_gateway.auth.identity import Identity
from src.us_user.application.schemas import UserRequest
from src.us_user.application.service import UserApplicationService

router = APIRouter(prefix="/internal/users", tags=["internal"])

_service = UserApplicationService()

ServiceIdentity = Annotated[Identity, Depends(require_service)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserRequest,
    request: Request,
    identity: ServiceIdentity,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_user(db, identity, body)
    resp = success_response(result.model_dump(mode="json"), request)
    resp.message = "User created"
    return resp


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    identity: ServiceIdentity,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Response:
    await _service.delete_user(db, identity, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/by-email")
async def get_user_by_email(
    request: Request,
    identity: ServiceIdentity,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    email: str = Query(...),
) -> ApiResponse:
    result = await _service.get_user_by_email(db, identity, email)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    request: Request,
    identity: ServiceIdentity,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_user(db, identity, user_id)
    return success_response(result.model_dump(mode="json"), request)
