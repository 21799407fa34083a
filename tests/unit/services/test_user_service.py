"""
Tests for UserService: business rules, transaction scoping and
optimistic locking.
"""
import asyncio
from datetime import datetime, timezone

import pytest

from msdata.errors import ConflictError, DuplicateEmailError, NotFoundError, ValidationError
from msdata.infra.db.repositories import UserCommandRepository
from msdata.services.user_service import UserService


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_assigns_id_version_and_equal_timestamps(self, service):
        user = await service.create_user("ana", "ana@example.com")

        assert user.id is not None
        assert user.version == 0
        assert user.created_at == user.updated_at
        assert user.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_created_user_visible_on_query_side(self, service):
        user = await service.create_user("ana", "ana@example.com")

        found = await service.find_user_by_id(user.id)
        assert found is not None
        assert found.name == "ana"
        assert found.email == "ana@example.com"
        assert found.created_at == user.created_at

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected_and_nothing_created(self, service):
        await service.create_user("ana", "ana@example.com")
        before = await service.count_users()

        with pytest.raises(DuplicateEmailError, match="Email already exists: ana@example.com"):
            await service.create_user("other", "ana@example.com")

        assert await service.count_users() == before

    @pytest.mark.asyncio
    async def test_duplicate_email_is_a_validation_error(self, service):
        await service.create_user("ana", "ana@example.com")
        with pytest.raises(ValidationError):
            await service.create_user("ana 2", "ana@example.com")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,email", [("", "a@example.com"), ("   ", "a@example.com"), ("ana", "")])
    async def test_blank_fields_rejected(self, service, name, email):
        with pytest.raises(ValidationError, match="is required"):
            await service.create_user(name, email)
        assert await service.count_users() == 0

    @pytest.mark.asyncio
    async def test_name_too_long_rejected(self, service):
        with pytest.raises(ValidationError, match="at most 100"):
            await service.create_user("x" * 101, "a@example.com")


class TestUpdateUserName:

    @pytest.mark.asyncio
    async def test_rename_visible_on_query_side(self, service):
        user = await service.create_user("ana", "ana@example.com")

        updated = await service.update_user_name(user.id, "X")
        found = await service.find_user_by_id(user.id)

        assert updated.version == 1
        assert found.name == "X"
        assert found.updated_at > user.updated_at
        assert found.created_at == user.created_at

    @pytest.mark.asyncio
    async def test_updated_at_strictly_increases_with_frozen_clock(self, database):
        instant = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
        service = UserService(database, clock=lambda: instant)

        user = await service.create_user("ana", "ana@example.com")
        first = await service.update_user_name(user.id, "b")
        second = await service.update_user_name(user.id, "c")

        assert user.updated_at < first.updated_at < second.updated_at
        assert second.version == 2

    @pytest.mark.asyncio
    async def test_missing_id_raises_not_found(self, service):
        await service.create_user("ana", "ana@example.com")

        with pytest.raises(NotFoundError, match="User not found: 999"):
            await service.update_user_name(999, "X")

        users = await service.search_users_by_name("ana")
        assert [u.name for u in users] == ["ana"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [0, 2 ** 63, 10 ** 20])
    async def test_id_outside_store_range_raises_not_found(self, service, user_id):
        with pytest.raises(NotFoundError):
            await service.update_user_name(user_id, "X")

    @pytest.mark.asyncio
    async def test_stale_expected_version_conflicts_without_writing(self, service):
        user = await service.create_user("ana", "ana@example.com")
        await service.update_user_name(user.id, "first", expected_version=0)

        with pytest.raises(ConflictError):
            await service.update_user_name(user.id, "second", expected_version=0)

        found = await service.find_user_by_id(user.id)
        assert found.name == "first"

    @pytest.mark.asyncio
    async def test_concurrent_updates_first_committer_wins(self, service):
        user = await service.create_user("ana", "ana@example.com")

        results = await asyncio.gather(
            service.update_user_name(user.id, "left", expected_version=user.version),
            service.update_user_name(user.id, "right", expected_version=user.version),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], ConflictError)

        found = await service.find_user_by_id(user.id)
        assert found.name == winners[0].name

    @pytest.mark.asyncio
    async def test_version_guard_catches_commit_between_load_and_save(self, service, database, clock):
        user = await service.create_user("ana", "ana@example.com")

        with pytest.raises(ConflictError):
            async with database.command_transaction() as session:
                repo = UserCommandRepository(session)
                stale = await repo.find_by_id(user.id)

                # Someone else commits while we hold version 0
                await service.update_user_name(user.id, "winner")

                stale.rename("loser", clock())
                await repo.save(stale)

        found = await service.find_user_by_id(user.id)
        assert found.name == "winner"


class TestDeleteUser:

    @pytest.mark.asyncio
    async def test_delete_removes_user_and_decrements_count(self, service):
        user = await service.create_user("ana", "ana@example.com")
        await service.create_user("bob", "bob@example.com")
        before = await service.count_users()

        await service.delete_user(user.id)

        assert await service.find_user_by_id(user.id) is None
        assert await service.count_users() == before - 1

    @pytest.mark.asyncio
    async def test_missing_id_raises_not_found(self, service):
        await service.create_user("ana", "ana@example.com")

        with pytest.raises(NotFoundError):
            await service.delete_user(12345)

        assert await service.count_users() == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [-1, 2 ** 63, 10 ** 20])
    async def test_id_outside_store_range_raises_not_found(self, service, user_id):
        await service.create_user("ana", "ana@example.com")

        with pytest.raises(NotFoundError, match=f"User not found: {user_id}"):
            await service.delete_user(user_id)

        assert await service.count_users() == 1

    @pytest.mark.asyncio
    async def test_email_reusable_after_delete(self, service):
        user = await service.create_user("ana", "ana@example.com")
        await service.delete_user(user.id)

        again = await service.create_user("ana", "ana@example.com")
        assert again.id is not None


class TestQueries:

    @pytest.mark.asyncio
    async def test_find_by_email(self, service):
        await service.create_user("ana", "ana@example.com")

        found = await service.find_user_by_email("ana@example.com")
        assert found is not None and found.name == "ana"
        assert await service.find_user_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_search_returns_exactly_substring_matches(self, service):
        for i, name in enumerate(["ana", "mariana", "bob", "juanan", "carlos", "pedro"]):
            await service.create_user(name, f"user{i}@example.com")

        result = await service.search_users_by_name("ana")

        assert sorted(u.name for u in result) == ["ana", "juanan", "mariana"]

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, service):
        await service.create_user("100% real", "a@example.com")
        await service.create_user("1000 real", "b@example.com")

        result = await service.search_users_by_name("100%")

        assert [u.name for u in result] == ["100% real"]

    @pytest.mark.asyncio
    async def test_empty_search_matches_everyone(self, service):
        for name in ["ana", "bob"]:
            await service.create_user(name, f"{name}@example.com")

        result = await service.search_users_by_name("")

        assert [u.name for u in result] == ["ana", "bob"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [0, -1, 2 ** 63, 10 ** 20, -(10 ** 20)])
    async def test_find_by_id_outside_store_range_is_absent(self, service, user_id):
        assert await service.find_user_by_id(user_id) is None

    @pytest.mark.asyncio
    async def test_list_users_page_beyond_offset_range(self, service):
        with pytest.raises(ValidationError, match="page is out of range"):
            await service.list_users(page=10 ** 20, size=10)

    @pytest.mark.asyncio
    async def test_recent_users_newest_first_and_bounded(self, service):
        for i in range(4):
            await service.create_user(f"user{i}", f"user{i}@example.com")

        recent = await service.get_recent_users(2)

        assert [u.name for u in recent] == ["user3", "user2"]
        assert recent[0].created_at > recent[1].created_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1, 101])
    async def test_recent_users_limit_validated(self, service, limit):
        with pytest.raises(ValidationError, match="limit"):
            await service.get_recent_users(limit)

    @pytest.mark.asyncio
    async def test_list_users_pages(self, service):
        for i in range(5):
            await service.create_user(f"user{i}", f"user{i}@example.com")

        page = await service.list_users(page=2, size=2)

        assert [u.name for u in page.items] == ["user2", "user3"]
        assert page.total == 5
        assert page.pages == 3

    @pytest.mark.asyncio
    async def test_list_users_past_last_page_is_empty(self, service):
        await service.create_user("ana", "ana@example.com")

        page = await service.list_users(page=3, size=10)

        assert page.items == []
        assert page.total == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page,size", [(0, 10), (1, 0), (1, 101)])
    async def test_list_users_arguments_validated(self, service, page, size):
        with pytest.raises(ValidationError):
            await service.list_users(page=page, size=size)

    @pytest.mark.asyncio
    async def test_count_empty_store(self, service):
        assert await service.count_users() == 0
