"""us_user public REST endpoints.

GET    /users                    — search (ADMIN), cached per filter/page/sort
GET    /users/by-email/{email}   — lookup by email (SERVICE)
GET    /users/{user_id}          — read one (ADMIN, SERVICE, self)
POST   /users                    — create (SERVICE)
PUT    /users/{user_id}          — full update (ADMIN, self)
DELETE /users/{user_id}          — delete with cards (ADMIN, SERVICE)
PATCH  /users/{user_id}/activity — activate/deactivate (ADMIN)

Authorization is decided inside UserApplicationService from the identity
passed in explicitly.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_common.database import get_db_session
from src.us_common.response import ApiResponse, success_response
from src.us_gateway.auth.dependencies import get_identity
from src.us_gateway.auth.identity import Identity
from src.us_user.application.schemas import UserRequest, parse_sort
from src.us_user.application.service import UserApplicationService
from src.us_user.domain.constants import MAX_PAGE_SIZE
from src.us_user.domain.models import UserSearchQuery

router = APIRouter(prefix="/users", tags=["users"])

_service = UserApplicationService()


@router.get("")
async def search_users(
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    name: str | None = Query(None, description="Case-insensitive substring of name"),
    surname: str | None = Query(None, description="Case-insensitive substring of surname"),
    active: bool | None = Query(None),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    sort: str = Query("id,asc", description="field[,asc|desc]"),
) -> ApiResponse:
    sort_field, sort_direction = parse_sort(sort)
    query = UserSearchQuery(
        name=name,
        surname=surname,
        active=active,
        page=page,
        size=size,
        sort_field=sort_field,
        sort_direction=sort_direction,
    )
    result = await _service.search_users(db, identity, query)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/by-email/{email}")
async def get_user_by_email(
    email: str,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_user_by_email(db, identity, email)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_user(db, identity, user_id)
    return success_response(result.model_dump(mode="json"), request)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserRequest,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_user(db, identity, body)
    resp = success_response(result.model_dump(mode="json"), request)
    resp.message = "User created"
    return resp


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: UserRequest,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_user(db, identity, user_id, body)
    return success_response(result.model_dump(mode="json"), request)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Response:
    await _service.delete_user(db, identity, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}/activity")
async def set_user_activity(
    user_id: int,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    is_active: bool = Query(..., alias="isActive"),
) -> ApiResponse:
    await _service.set_user_activity(db, identity, user_id, is_active)
    return success_response({"id": user_id, "active": is_active}, request)
