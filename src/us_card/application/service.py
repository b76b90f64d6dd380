"""CardApplicationService — authorization, invariants, store, cache.

Invariants enforced here before any write:
  - the owner exists
  - card numbers are globally unique
  - an owner holds at most MAX_CARDS_PER_USER cards

Ownership for read/update authorization comes from the stored card, never
from the request. Cache synchronization runs only after a successful commit.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_authz.policy import Operation, authorize, require_authenticated
from src.us_cache.entity_cache import EntityCache
from src.us_card.application.schemas import CardRequest, CardResponse
from src.us_card.domain.constants import (
    CARD_NUMBER_UNIQUE_CONSTRAINT,
    CARD_OWNER_FK_CONSTRAINT,
    MAX_CARDS_PER_USER,
)
from src.us_card.domain.models import Card
from src.us_card.domain.repository import CardRepositoryProtocol
from src.us_card.infrastructure.persistence import CardRepository
from src.us_common.database import violates_constraint
from src.us_common.errors import (
    CardLimitExceededError,
    CardNotFoundError,
    CardNumberExistsError,
    UserNotFoundError,
)
from src.us_gateway.auth.identity import Identity, describe
from src.us_user.domain.repository import UserRepositoryProtocol
from src.us_user.infrastructure.persistence import UserRepository

logger = logging.getLogger(__name__)


class CardApplicationService:
    def __init__(
        self,
        repo: CardRepositoryProtocol | None = None,
        user_repo: UserRepositoryProtocol | None = None,
        cache: EntityCache | None = None,
    ) -> None:
        self._repo: CardRepositoryProtocol = repo or CardRepository()
        self._user_repo: UserRepositoryProtocol = user_repo or UserRepository()
        self._cache = cache or EntityCache()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_cards(
        self, db: AsyncSession, identity: Identity, user_id: int
    ) -> list[CardResponse]:
        authorize(identity, Operation.LIST_CARDS, owner_id=user_id)

        cached = await self._cache.get_user_cards(user_id)
        if cached is not None:
            return cached

        if not await self._user_repo.exists_by_id(db, user_id):
            raise UserNotFoundError(user_id)
        cards = [CardResponse.from_domain(c) for c in await self._repo.list_by_user(db, user_id)]
        await self._cache.put_user_cards(user_id, cards)
        return cards

    async def get_card(
        self, db: AsyncSession, identity: Identity, card_id: int
    ) -> CardResponse:
        require_authenticated(identity)

        card = await self._cache.get_card(card_id)
        if card is None:
            stored = await self._repo.get_by_id(db, card_id)
            if stored is None:
                raise CardNotFoundError(card_id)
            card = CardResponse.from_domain(stored)
            await self._cache.put_card(card)

        authorize(identity, Operation.READ_CARD, owner_id=card.user_id)
        return card

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_card(
        self, db: AsyncSession, identity: Identity, user_id: int, body: CardRequest
    ) -> CardResponse:
        authorize(identity, Operation.ADD_CARD, owner_id=user_id)

        if not await self._user_repo.exists_by_id(db, user_id):
            raise UserNotFoundError(user_id)
        if await self._repo.get_by_number(db, body.number) is not None:
            raise CardNumberExistsError(body.number)
        if await self._repo.count_by_user(db, user_id) >= MAX_CARDS_PER_USER:
            raise CardLimitExceededError(user_id, MAX_CARDS_PER_USER)

        try:
            card = await self._repo.insert(
                db, user_id, body.number, body.holder, body.expiration_date, body.active
            )
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if violates_constraint(exc, CARD_NUMBER_UNIQUE_CONSTRAINT):
                raise CardNumberExistsError(body.number) from None
            if violates_constraint(exc, CARD_OWNER_FK_CONSTRAINT):
                # owner deleted between the existence check and the INSERT
                raise UserNotFoundError(user_id) from None
            raise
        except Exception:
            await db.rollback()
            raise

        resp = CardResponse.from_domain(card)
        await self._cache.put_card(resp)
        await self._cache.after_card_write(user_id)
        logger.info("Card %s added to user %s by=%s", card.id, user_id, describe(identity))
        return resp

    async def update_card(
        self, db: AsyncSession, identity: Identity, card_id: int, body: CardRequest
    ) -> CardResponse:
        require_authenticated(identity)

        existing = await self._load(db, card_id)
        authorize(identity, Operation.UPDATE_CARD, owner_id=existing.user_id)

        holder = await self._repo.get_by_number(db, body.number)
        if holder is not None and holder.id != card_id:
            raise CardNumberExistsError(body.number)

        try:
            card = await self._repo.update(
                db, card_id, body.number, body.holder, body.expiration_date, body.active
            )
            if card is None:
                raise CardNotFoundError(card_id)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if violates_constraint(exc, CARD_NUMBER_UNIQUE_CONSTRAINT):
                raise CardNumberExistsError(body.number) from None
            raise
        except Exception:
            await db.rollback()
            raise

        resp = CardResponse.from_domain(card)
        await self._cache.put_card(resp)
        await self._cache.after_card_write(card.user_id)
        return resp

    async def delete_card(
        self, db: AsyncSession, identity: Identity, card_id: int
    ) -> None:
        authorize(identity, Operation.DELETE_CARD)

        existing = await self._load(db, card_id)
        try:
            if not await self._repo.delete(db, card_id):
                raise CardNotFoundError(card_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await self._cache.evict_cards(card_id)
        await self._cache.after_card_write(existing.user_id)
        logger.info("Card %s deleted by=%s", card_id, describe(identity))

    async def set_card_activity(
        self, db: AsyncSession, identity: Identity, card_id: int, active: bool
    ) -> None:
        authorize(identity, Operation.SET_CARD_ACTIVITY)

        existing = await self._load(db, card_id)
        try:
            if not await self._repo.set_active(db, card_id, active):
                raise CardNotFoundError(card_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await self._cache.evict_cards(card_id)
        await self._cache.after_card_write(existing.user_id)

    # ------------------------------------------------------------------

    async def _load(self, db: AsyncSession, card_id: int) -> Card:
        """Authoritative lookup; ownership decisions never trust the cache."""
        card = await self._repo.get_by_id(db, card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return card
