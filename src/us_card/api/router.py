"""us_card REST endpoints.

POST   /users/{user_id}/cards   — add a card (ADMIN, self), max 5 per user
GET    /users/{user_id}/cards   — list a user's cards (ADMIN, self)
GET    /cards/{card_id}         — read one (ADMIN, card owner)
PUT    /cards/{card_id}         — full update (ADMIN, card owner)
DELETE /cards/{card_id}         — delete (ADMIN)
PATCH  /cards/{card_id}/activity — activate/deactivate (ADMIN)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_card.application.schemas import CardRequest
from src.us_card.application.service import CardApplicationService
from src.us_common.database import get_db_session
from src.us_common.response import ApiResponse, success_response
from src.us_gateway.auth.dependencies import get_identity
from src.us_gateway.auth.identity import Identity

router = APIRouter(tags=["cards"])

_service = CardApplicationService()


@router.post("/users/{user_id}/cards", status_code=status.HTTP_201_CREATED)
async def add_card(
    user_id: int,
    body: CardRequest,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.add_card(db, identity, user_id, body)
    resp = success_response(result.model_dump(mode="json"), request)
    resp.message = "Card added"
    return resp


@router.get("/users/{user_id}/cards")
async def list_cards(
    user_id: int,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    cards = await _service.list_cards(db, identity, user_id)
    return success_response([c.model_dump(mode="json") for c in cards], request)


@router.get("/cards/{card_id}")
async def get_card(
    card_id: int,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_card(db, identity, card_id)
    return success_response(result.model_dump(mode="json"), request)


@router.put("/cards/{card_id}")
async def update_card(
    card_id: int,
    body: CardRequest,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_card(db, identity, card_id, body)
    return success_response(result.model_dump(mode="json"), request)


@router.delete("/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(
    card_id: int,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Response:
    await _service.delete_card(db, identity, card_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/cards/{card_id}/activity")
async def set_card_activity(
    card_id: int,
    request: Request,
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    is_active: bool = Query(..., alias="isActive"),
) -> ApiResponse:
    await _service.set_card_activity(db, identity, card_id, is_active)
    return success_response({"id": card_id, "active": is_active}, request)
