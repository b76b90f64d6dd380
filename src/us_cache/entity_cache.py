"""Cache regions for users and cards, and the operations services call on them.

    region       key                      value                 TTL setting
    user         <user_id>                UserResponse          CACHE_USER_TTL_SECONDS
    users        <UserSearchQuery key>    UserPageResponse      CACHE_USER_SEARCH_TTL_SECONDS
    user_cards   <user_id>                list[CardResponse]    CACHE_USER_CARDS_TTL_SECONDS
    card         <card_id>                CardResponse          CACHE_CARD_TTL_SECONDS

Point regions (user, card) and per-owner card lists are kept in sync by key.
The users region cannot be invalidated by row, so every user or card write
clears the whole region. User entries embed their cards, which means card
writes must also evict the owner's user entry.

Services call these methods only after the store transaction has committed.
"""

from config.settings import settings
from src.us_cache.backend import CacheBackend, RedisCacheBackend
from src.us_cache.layer import CacheLayer, CacheRegion
from src.us_card.application.schemas import CardResponse
from src.us_user.application.schemas import UserPageResponse, UserResponse
from src.us_user.domain.models import UserSearchQuery


class EntityCache:
    def __init__(
        self,
        backend: CacheBackend | None = None,
        prefix: str = settings.CACHE_KEY_PREFIX,
    ) -> None:
        self._layer = CacheLayer(backend or RedisCacheBackend(), prefix)
        self.user: CacheRegion[UserResponse] = CacheRegion(
            "user", settings.CACHE_USER_TTL_SECONDS, UserResponse
        )
        self.users: CacheRegion[UserPageResponse] = CacheRegion(
            "users", settings.CACHE_USER_SEARCH_TTL_SECONDS, UserPageResponse
        )
        self.user_cards: CacheRegion[list[CardResponse]] = CacheRegion(
            "user_cards", settings.CACHE_USER_CARDS_TTL_SECONDS, list[CardResponse]
        )
        self.card: CacheRegion[CardResponse] = CacheRegion(
            "card", settings.CACHE_CARD_TTL_SECONDS, CardResponse
        )

    @property
    def layer(self) -> CacheLayer:
        return self._layer

    # --- single user ---

    async def get_user(self, user_id: int) -> UserResponse | None:
        return await self._layer.get(self.user, user_id)

    async def put_user(self, user: UserResponse) -> None:
        await self._layer.put(self.user, user.id, user)

    async def evict_user(self, user_id: int) -> None:
        await self._layer.evict(self.user, user_id)

    # --- user search pages ---

    async def get_user_page(self, query: UserSearchQuery) -> UserPageResponse | None:
        return await self._layer.get(self.users, query.cache_key())

    async def put_user_page(self, query: UserSearchQuery, page: UserPageResponse) -> None:
        if not page.items:
            return
        await self._layer.put(self.users, query.cache_key(), page)

    async def evict_user_pages(self) -> None:
        await self._layer.evict_all(self.users)

    # --- cards of one owner ---

    async def get_user_cards(self, user_id: int) -> list[CardResponse] | None:
        return await self._layer.get(self.user_cards, user_id)

    async def put_user_cards(self, user_id: int, cards: list[CardResponse]) -> None:
        await self._layer.put(self.user_cards, user_id, cards)

    async def evict_user_cards(self, user_id: int) -> None:
        await self._layer.evict(self.user_cards, user_id)

    # --- single card ---

    async def get_card(self, card_id: int) -> CardResponse | None:
        return await self._layer.get(self.card, card_id)

    async def put_card(self, card: CardResponse) -> None:
        await self._layer.put(self.card, card.id, card)

    async def evict_cards(self, *card_ids: int) -> None:
        await self._layer.evict(self.card, *card_ids)

    # --- composite invalidation ---

    async def after_user_write(self, user_id: int) -> None:
        """A user row changed without a fresh value at hand: drop what embeds it."""
        await self.evict_user(user_id)
        await self.evict_user_pages()

    async def after_card_write(self, owner_id: int) -> None:
        """A card of ``owner_id`` changed: drop every entry that embeds its cards."""
        await self.evict_user_cards(owner_id)
        await self.evict_user(owner_id)
        await self.evict_user_pages()
