"""UserApplicationService — authorization, invariants, store, cache.

Every mutating method follows the same order:
  1. authorize(identity, operation, owner)
  2. business-invariant checks against the store (email uniqueness...)
  3. store mutation + commit (rollback on any failure)
  4. cache synchronization — only after the commit succeeded

A failure in 1-3 leaves both store and cache untouched. The email check is
check-then-act; the UNIQUE constraint is the final authority and its
violation is translated to the same EmailExistsError.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_authz.policy import Operation, authorize
from src.us_cache.entity_cache import EntityCache
from src.us_card.domain.repository import CardRepositoryProtocol
from src.us_card.infrastructure.persistence import CardRepository
from src.us_common.database import violates_constraint
from src.us_common.errors import EmailExistsError, UserNotFoundError
from src.us_gateway.auth.identity import Identity, describe
from src.us_user.application.schemas import UserPageResponse, UserRequest, UserResponse
from src.us_user.domain.constants import EMAIL_UNIQUE_CONSTRAINT
from src.us_user.domain.models import UserSearchQuery
from src.us_user.domain.repository import UserRepositoryProtocol
from src.us_user.infrastructure.persistence import UserRepository

logger = logging.getLogger(__name__)


class UserApplicationService:
    def __init__(
        self,
        repo: UserRepositoryProtocol | None = None,
        card_repo: CardRepositoryProtocol | None = None,
        cache: EntityCache | None = None,
    ) -> None:
        self._repo: UserRepositoryProtocol = repo or UserRepository()
        self._card_repo: CardRepositoryProtocol = card_repo or CardRepository()
        self._cache = cache or EntityCache()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_user(
        self, db: AsyncSession, identity: Identity, user_id: int
    ) -> UserResponse:
        authorize(identity, Operation.READ_USER, owner_id=user_id)

        async def load() -> UserResponse | None:
            user = await self._repo.get_by_id(db, user_id)
            return UserResponse.from_domain(user) if user else None

        resp = await self._cache.layer.read_through(self._cache.user, user_id, load)
        if resp is None:
            raise UserNotFoundError(user_id)
        return resp

    async def search_users(
        self, db: AsyncSession, identity: Identity, query: UserSearchQuery
    ) -> UserPageResponse:
        authorize(identity, Operation.SEARCH_USERS)

        cached = await self._cache.get_user_page(query)
        if cached is not None:
            return cached

        users, total = await self._repo.search(db, query)
        page = UserPageResponse.from_result(users, total, query)
        await self._cache.put_user_page(query, page)
        return page

    async def get_user_by_email(
        self, db: AsyncSession, identity: Identity, email: str
    ) -> UserResponse:
        authorize(identity, Operation.GET_USER_BY_EMAIL)

        user = await self._repo.get_by_email(db, email)
        if user is None:
            raise UserNotFoundError(email)
        return UserResponse.from_domain(user)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_user(
        self, db: AsyncSession, identity: Identity, body: UserRequest
    ) -> UserResponse:
        authorize(identity, Operation.CREATE_USER)

        if await self._repo.get_by_email(db, body.email) is not None:
            raise EmailExistsError(body.email)

        try:
            user = await self._repo.insert(
                db, body.name, body.surname, body.birth_date, body.email, body.active
            )
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if violates_constraint(exc, EMAIL_UNIQUE_CONSTRAINT):
                raise EmailExistsError(body.email) from None
            raise
        except Exception:
            await db.rollback()
            raise

        resp = UserResponse.from_domain(user)
        await self._cache.put_user(resp)
        await self._cache.evict_user_pages()
        logger.info("User created: id=%s by=%s", user.id, describe(identity))
        return resp

    async def update_user(
        self, db: AsyncSession, identity: Identity, user_id: int, body: UserRequest
    ) -> UserResponse:
        authorize(identity, Operation.UPDATE_USER, owner_id=user_id)

        if not await self._repo.exists_by_id(db, user_id):
            raise UserNotFoundError(user_id)
        holder = await self._repo.get_by_email(db, body.email)
        if holder is not None and holder.id != user_id:
            raise EmailExistsError(body.email)

        try:
            user = await self._repo.update(
                db, user_id, body.name, body.surname, body.birth_date, body.email, body.active
            )
            if user is None:
                # deleted between the existence check and the UPDATE
                raise UserNotFoundError(user_id)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if violates_constraint(exc, EMAIL_UNIQUE_CONSTRAINT):
                raise EmailExistsError(body.email) from None
            raise
        except Exception:
            await db.rollback()
            raise

        resp = UserResponse.from_domain(user)
        await self._cache.put_user(resp)
        await self._cache.evict_user_pages()
        return resp

    async def delete_user(
        self, db: AsyncSession, identity: Identity, user_id: int
    ) -> None:
        """Delete the user; the store cascades the delete to all owned cards."""
        authorize(identity, Operation.DELETE_USER, owner_id=user_id)

        if not await self._repo.exists_by_id(db, user_id):
            raise UserNotFoundError(user_id)
        # read before the cascade removes them: their point entries must go too
        card_ids = await self._card_repo.list_ids_by_user(db, user_id)

        try:
            if not await self._repo.delete(db, user_id):
                raise UserNotFoundError(user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await self._cache.evict_cards(*card_ids)
        await self._cache.evict_user_cards(user_id)
        await self._cache.after_user_write(user_id)
        logger.info(
            "User deleted: id=%s cards=%d by=%s", user_id, len(card_ids), describe(identity)
        )

    async def set_user_activity(
        self, db: AsyncSession, identity: Identity, user_id: int, active: bool
    ) -> None:
        authorize(identity, Operation.SET_USER_ACTIVITY, owner_id=user_id)

        try:
            if not await self._repo.set_active(db, user_id, active):
                raise UserNotFoundError(user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await self._cache.after_user_write(user_id)
        logger.info("User %s active=%s by=%s", user_id, active, describe(identity))
