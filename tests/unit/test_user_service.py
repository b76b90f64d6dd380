"""Unit tests for UserApplicationService: authorization, invariants, cache laws."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.us_common.enums import Role
from src.us_common.errors import (
    EmailExistsError,
    ForbiddenError,
    UnauthenticatedError,
    UserNotFoundError,
)
from src.us_gateway.auth.identity import ANONYMOUS, SERVICE, Subject
from src.us_user.application.schemas import UserRequest
from src.us_user.application.service import UserApplicationService
from src.us_user.domain.models import UserSearchQuery

ADMIN = Subject(id=1000, role=Role.ADMIN)


def _request(**overrides: object) -> UserRequest:
    values = {
        "name": "Alice",
        "surname": "Smith",
        "birth_date": date(1990, 5, 17),
        "email": "alice@example.com",
        "active": True,
    }
    values.update(overrides)
    return UserRequest(**values)  # type: ignore[arg-type]


def _unique_violation(constraint: str) -> IntegrityError:
    orig = Exception(f'duplicate key value violates unique constraint "{constraint}"')
    return IntegrityError("INSERT ...", {}, orig)


class TestCreate:
    async def test_service_creates_and_owner_reads_back(
        self, user_service: UserApplicationService, db, backend
    ) -> None:
        created = await user_service.create_user(db, SERVICE, _request())

        fetched = await user_service.get_user(db, Subject(created.id, Role.USER), created.id)

        assert fetched == created
        assert f"test:user:{created.id}" in backend.data
        db.commit.assert_awaited_once()

    async def test_admin_cannot_create(self, user_service, store, db) -> None:
        with pytest.raises(ForbiddenError):
            await user_service.create_user(db, ADMIN, _request())
        assert store.users == {}

    async def test_duplicate_email_conflict_persists_nothing(
        self, user_service, store, db
    ) -> None:
        store.add_user(email="alice@example.com")

        with pytest.raises(EmailExistsError) as exc_info:
            await user_service.create_user(db, SERVICE, _request(name="Other"))

        assert exc_info.value.http_status == 409
        assert len(store.users) == 1
        db.commit.assert_not_awaited()

    async def test_unique_violation_at_commit_time_translated(self, cache, db) -> None:
        repo = AsyncMock()
        repo.get_by_email.return_value = None
        repo.insert.side_effect = _unique_violation("uq_users_email")
        svc = UserApplicationService(repo=repo, card_repo=AsyncMock(), cache=cache)

        with pytest.raises(EmailExistsError):
            await svc.create_user(db, SERVICE, _request())

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_constraint_name_attribute_recognised(self, cache, db) -> None:
        orig = SimpleNamespace(constraint_name="uq_users_email", __cause__=None)
        repo = AsyncMock()
        repo.get_by_email.return_value = None
        repo.insert.side_effect = IntegrityError("INSERT ...", {}, orig)  # type: ignore[arg-type]
        svc = UserApplicationService(repo=repo, card_repo=AsyncMock(), cache=cache)

        with pytest.raises(EmailExistsError):
            await svc.create_user(db, SERVICE, _request())

    async def test_creation_evicts_search_pages(self, user_service, store, db) -> None:
        store.add_user(name="Bob", surname="Brown")
        first = await user_service.search_users(db, ADMIN, UserSearchQuery())
        assert first.total_elements == 1

        await user_service.create_user(db, SERVICE, _request())
        second = await user_service.search_users(db, ADMIN, UserSearchQuery())

        assert second.total_elements == 2


class TestRead:
    async def test_anonymous_rejected_before_lookup(self, user_service, db) -> None:
        with pytest.raises(UnauthenticatedError):
            await user_service.get_user(db, ANONYMOUS, 12345)

    async def test_other_user_forbidden(self, user_service, store, db) -> None:
        user = store.add_user()
        with pytest.raises(ForbiddenError):
            await user_service.get_user(db, Subject(user.id + 1, Role.USER), user.id)

    async def test_missing_user_not_found(self, user_service, db) -> None:
        with pytest.raises(UserNotFoundError) as exc_info:
            await user_service.get_user(db, ADMIN, 404)
        assert exc_info.value.http_status == 404

    async def test_second_read_served_from_cache(self, cache, store, db) -> None:
        user = store.add_user()
        repo = AsyncMock()
        repo.get_by_id.return_value = store.user_view(user.id)
        svc = UserApplicationService(repo=repo, card_repo=AsyncMock(), cache=cache)

        await svc.get_user(db, ADMIN, user.id)
        await svc.get_user(db, ADMIN, user.id)

        repo.get_by_id.assert_awaited_once()

    async def test_get_by_email_service_only(self, user_service, store, db) -> None:
        user = store.add_user(email="svc@example.com")
        found = await user_service.get_user_by_email(db, SERVICE, "svc@example.com")
        assert found.id == user.id
        with pytest.raises(ForbiddenError):
            await user_service.get_user_by_email(db, ADMIN, "svc@example.com")
        with pytest.raises(UserNotFoundError):
            await user_service.get_user_by_email(db, SERVICE, "nobody@example.com")

    async def test_mixed_case_email_found_as_submitted(self, user_service, db) -> None:
        created = await user_service.create_user(db, SERVICE, _request(email="Ann@Example.COM"))

        found = await user_service.get_user_by_email(db, SERVICE, "Ann@Example.COM")

        assert found.id == created.id
        assert found.email == "Ann@Example.COM"

    async def test_search_admin_only(self, user_service, store, db) -> None:
        user = store.add_user()
        with pytest.raises(ForbiddenError):
            await user_service.search_users(db, Subject(user.id, Role.USER), UserSearchQuery())

    async def test_search_filters_and_pages(self, user_service, store, db) -> None:
        store.add_user(name="Alice", surname="Smith")
        store.add_user(name="Alina", surname="Stone", active=False)
        store.add_user(name="Bob", surname="Brown")

        page = await user_service.search_users(
            db, ADMIN, UserSearchQuery(name="ALI", size=1)
        )

        assert page.total_elements == 2
        assert page.total_pages == 2
        assert [u.name for u in page.items] == ["Alice"]


class TestUpdate:
    async def test_read_after_write_survives_store_loss(
        self, user_service, store, db
    ) -> None:
        user = store.add_user()
        owner = Subject(user.id, Role.USER)

        updated = await user_service.update_user(
            db, owner, user.id, _request(name="Alicia", email=user.email)
        )
        # only the cache can answer from now on
        del store.users[user.id]

        assert (await user_service.get_user(db, owner, user.id)).name == "Alicia"
        assert (await user_service.get_user(db, owner, user.id)) == updated

    async def test_other_user_forbidden_and_store_unchanged(
        self, user_service, store, db
    ) -> None:
        user = store.add_user(name="Alice")
        with pytest.raises(ForbiddenError):
            await user_service.update_user(
                db, Subject(user.id + 1, Role.USER), user.id, _request(name="Hacked")
            )
        assert store.users[user.id].name == "Alice"

    async def test_email_of_other_user_conflicts(self, user_service, store, db) -> None:
        store.add_user(email="taken@example.com")
        user = store.add_user(email="mine@example.com")

        with pytest.raises(EmailExistsError):
            await user_service.update_user(
                db, ADMIN, user.id, _request(email="taken@example.com")
            )
        assert store.users[user.id].email == "mine@example.com"

    async def test_keeping_own_email_is_not_a_conflict(self, user_service, store, db) -> None:
        user = store.add_user(email="mine@example.com")
        result = await user_service.update_user(
            db, ADMIN, user.id, _request(email="mine@example.com", surname="Jones")
        )
        assert result.surname == "Jones"

    async def test_missing_user_not_found(self, user_service, db) -> None:
        with pytest.raises(UserNotFoundError):
            await user_service.update_user(db, ADMIN, 77, _request())

    async def test_update_evicts_search_pages(self, user_service, store, db) -> None:
        user = store.add_user(name="Alice")
        await user_service.search_users(db, ADMIN, UserSearchQuery())

        await user_service.update_user(
            db, ADMIN, user.id, _request(name="Zelda", email=user.email)
        )
        page = await user_service.search_users(db, ADMIN, UserSearchQuery())

        assert page.items[0].name == "Zelda"


class TestActivity:
    async def test_toggle_visible_on_next_read(self, user_service, store, db) -> None:
        user = store.add_user(active=True)
        assert (await user_service.get_user(db, ADMIN, user.id)).active is True

        await user_service.set_user_activity(db, ADMIN, user.id, False)

        assert (await user_service.get_user(db, ADMIN, user.id)).active is False

    async def test_owner_cannot_toggle(self, user_service, store, db) -> None:
        user = store.add_user()
        with pytest.raises(ForbiddenError):
            await user_service.set_user_activity(db, Subject(user.id, Role.USER), user.id, False)

    async def test_missing_user_rolls_back(self, user_service, db) -> None:
        with pytest.raises(UserNotFoundError):
            await user_service.set_user_activity(db, ADMIN, 55, True)
        db.rollback.assert_awaited_once()


class TestDelete:
    async def test_delete_cascades_and_evicts_everything(
        self, user_service, card_service, store, db, backend
    ) -> None:
        user = store.add_user()
        card = store.add_card(user.id)
        await user_service.get_user(db, ADMIN, user.id)
        await card_service.list_cards(db, ADMIN, user.id)
        await card_service.get_card(db, ADMIN, card.id)
        assert backend.data

        await user_service.delete_user(db, SERVICE, user.id)

        assert backend.data == {}
        assert store.cards == {}
        with pytest.raises(UserNotFoundError):
            await user_service.get_user(db, ADMIN, user.id)

    async def test_owner_cannot_delete_self(self, user_service, store, db) -> None:
        user = store.add_user()
        with pytest.raises(ForbiddenError):
            await user_service.delete_user(db, Subject(user.id, Role.USER), user.id)
        assert user.id in store.users

    async def test_missing_user_not_found(self, user_service, db) -> None:
        with pytest.raises(UserNotFoundError):
            await user_service.delete_user(db, ADMIN, 99)


class TestCacheUnavailable:
    async def test_operations_succeed_from_store(self, user_service, store, db, backend) -> None:
        backend.failing = True

        created = await user_service.create_user(db, SERVICE, _request())
        fetched = await user_service.get_user(db, ADMIN, created.id)
        await user_service.set_user_activity(db, ADMIN, created.id, False)

        assert fetched.email == "alice@example.com"
        assert store.users[created.id].active is False

    async def test_commit_failure_leaves_cache_untouched(self, store, cache, backend) -> None:
        user = store.add_user()
        db = MagicMock()
        db.commit = AsyncMock(side_effect=RuntimeError("connection lost"))
        db.rollback = AsyncMock()
        repo = AsyncMock()
        repo.exists_by_id.return_value = True
        repo.get_by_email.return_value = None
        repo.update.return_value = store.user_view(user.id)
        svc = UserApplicationService(repo=repo, card_repo=AsyncMock(), cache=cache)

        with pytest.raises(RuntimeError):
            await svc.update_user(db, ADMIN, user.id, _request())

        db.rollback.assert_awaited_once()
        assert backend.data == {}
