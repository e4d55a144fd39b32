"""
User store CRUD, capacity and email-conflict behaviour
"""

import pytest
from pydantic import ValidationError

from userstore.core.config import Settings
from userstore.core.exceptions import CapacityExceededError, EmailConflictError
from userstore.db.kv_store import InMemoryKeyValueStore
from userstore.models.user import User, UserRecord, UserRole
from userstore.services.user_store import UserStore

from tests.helpers import assert_indexes_consistent


@pytest.mark.asyncio
async def test_create_user_is_resolvable_by_id_and_email(store):
    user = await store.create_user("  Anita@Example.COM ", "Anita Sharma", "secret1")

    assert user.id.startswith("user_")
    assert user.email == "anita@example.com"
    assert isinstance(user, User)
    assert not hasattr(user, "password")

    assert store.get_user_by_id(user.id) == user
    record = store.get_user_by_email("ANITA@example.com ")
    assert isinstance(record, UserRecord)
    assert record.id == user.id
    assert record.password == "secret1"


@pytest.mark.asyncio
async def test_create_user_fills_defaults(store):
    user = await store.create_user("demo@example.com", "Demo Person", "pw")

    assert user.role == UserRole.USER
    assert user.is_active is True
    assert user.last_login is None
    assert user.avatar.startswith("https://ui-avatars.com/api/?name=Demo%20Person")
    assert user.preferences.currency == "INR"
    assert user.preferences.theme == "light"
    assert user.profile.interests == []
    assert user.stats.total_orders == 0
    assert user.stats.loyalty_points == 0


@pytest.mark.asyncio
async def test_identifiers_are_unique(store):
    users = [await store.create_user(f"u{i}@example.com", f"User {i}", "pw") for i in range(20)]

    assert len({u.id for u in users}) == 20
    assert store.get_user_count() == 20


@pytest.mark.asyncio
async def test_create_rejects_duplicate_email(store):
    first = await store.create_user("same@example.com", "First", "pw")

    with pytest.raises(EmailConflictError):
        await store.create_user(" SAME@example.com", "Second", "pw")

    assert store.get_user_count() == 1
    assert store.email_index == {"same@example.com": first.id}


@pytest.mark.asyncio
async def test_create_at_capacity_fails_and_leaves_table_unchanged(kv):
    store = UserStore(kv, Settings(KV_BACKEND="memory", SEED_DEFAULT_USERS=False, MAX_USERS=3))
    await store.initialize()
    try:
        for i in range(3):
            await store.create_user(f"u{i}@example.com", f"User {i}", "pw")
        before = {u.id for u in store.get_all_users()}

        with pytest.raises(CapacityExceededError) as exc_info:
            await store.create_user("extra@example.com", "Extra", "pw")

        assert exc_info.value.max_users == 3
        assert {u.id for u in store.get_all_users()} == before
        assert store.get_user_by_email("extra@example.com") is None
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_create_rejects_unknown_role(store):
    with pytest.raises(ValueError):
        await store.create_user("x@example.com", "X", "pw", role="superuser")
    assert store.get_user_count() == 0


@pytest.mark.asyncio
async def test_read_returns_copies(store):
    user = await store.create_user("copy@example.com", "Copy Me", "pw")

    fetched = store.get_user_by_id(user.id)
    fetched.name = "Changed"
    fetched.preferences.favorite_categories.append("cricket")
    record = store.get_user_by_email("copy@example.com")
    record.password = "tampered"

    assert store.get_user_by_id(user.id).name == "Copy Me"
    assert store.get_user_by_id(user.id).preferences.favorite_categories == []
    assert store.get_user_by_email("copy@example.com").password == "pw"


@pytest.mark.asyncio
async def test_missing_ids_return_absence(store):
    assert store.get_user_by_id("user_missing") is None
    assert store.get_user_by_email("nobody@example.com") is None
    assert await store.update_user("user_missing", {"name": "X"}) is None
    assert await store.delete_user("user_missing") is False
    assert await store.activate_user("user_missing") is False
    assert await store.deactivate_user("user_missing") is False
    await store.update_last_login("user_missing")


@pytest.mark.asyncio
async def test_update_merges_fields(store):
    user = await store.create_user("p@example.com", "Priya Patel", "pw")

    updated = await store.update_user(user.id, {
        "name": "Priya Nair",
        "preferences": {"theme": "dark", "favorite_categories": ["football"]},
        "profile": {"phone": "+91 90000 00000"},
        "stats": {"total_orders": 2, "total_spent": 4999.0},
    })

    assert updated.name == "Priya Nair"
    assert updated.email == "p@example.com"
    assert updated.preferences.theme == "dark"
    assert updated.preferences.currency == "INR"
    assert updated.preferences.favorite_categories == ["football"]
    assert updated.profile.phone == "+91 90000 00000"
    assert updated.stats.total_orders == 2
    assert updated.stats.loyalty_points == 0
    assert store.get_user_by_id(user.id) == updated


@pytest.mark.asyncio
async def test_update_can_clear_optional_section_fields(store):
    user = await store.create_user("p@example.com", "Priya Patel", "pw")
    await store.update_user(user.id, {
        "profile": {"phone": "+91 90000 00000", "gender": "female"},
        "stats": {"total_orders": 1, "last_order_date": "2026-01-15T10:00:00"},
    })

    updated = await store.update_user(user.id, {
        "profile": {"phone": None},
        "stats": {"last_order_date": None, "total_orders": None},
    })

    assert updated.profile.phone is None
    assert updated.profile.gender == "female"
    assert updated.stats.last_order_date is None
    assert updated.stats.total_orders == 1


@pytest.mark.asyncio
async def test_update_moves_email_index_entry(store):
    user = await store.create_user("old@example.com", "Mover", "pw")

    updated = await store.update_user(user.id, {"email": " NEW@example.com"})

    assert updated.email == "new@example.com"
    assert store.get_user_by_email("old@example.com") is None
    assert store.get_user_by_email("new@example.com").id == user.id
    assert_indexes_consistent(store)


@pytest.mark.asyncio
async def test_update_email_conflict_leaves_both_unchanged(store):
    a = await store.create_user("a@example.com", "User A", "pw")
    b = await store.create_user("b@example.com", "User B", "pw")

    with pytest.raises(EmailConflictError):
        await store.update_user(a.id, {"email": "B@example.com", "name": "Renamed"})

    assert store.get_user_by_id(a.id).email == "a@example.com"
    assert store.get_user_by_id(a.id).name == "User A"
    assert store.get_user_by_id(b.id).email == "b@example.com"
    assert store.get_user_by_email("b@example.com").id == b.id
    assert_indexes_consistent(store)


@pytest.mark.asyncio
async def test_update_to_own_email_is_not_a_conflict(store):
    user = await store.create_user("me@example.com", "Me", "pw")

    updated = await store.update_user(user.id, {"email": "ME@example.com"})

    assert updated.email == "me@example.com"


@pytest.mark.asyncio
async def test_update_rejects_immutable_fields(store):
    user = await store.create_user("fixed@example.com", "Fixed", "pw")

    with pytest.raises(ValidationError):
        await store.update_user(user.id, {"id": "user_other"})
    with pytest.raises(ValidationError):
        await store.update_user(user.id, {"password": "new"})

    assert store.get_user_by_id(user.id).id == user.id


@pytest.mark.asyncio
async def test_update_role_moves_role_bucket(store):
    user = await store.create_user("r@example.com", "Role Change", "pw")

    assert await store.update_user_role(user.id, UserRole.MODERATOR) is True

    assert store.get_user_by_id(user.id).role == UserRole.MODERATOR
    assert user.id in store.role_index["moderator"]
    assert user.id not in store.role_index["user"]
    assert await store.update_user_role("user_missing", "admin") is False


@pytest.mark.asyncio
async def test_delete_removes_user_and_index_entries(store):
    keep = await store.create_user("keep@example.com", "Kavya Mehta", "pw")
    gone = await store.create_user("gone@example.com", "Zubin Mehta", "pw", role=UserRole.ADMIN)

    assert await store.delete_user(gone.id) is True

    assert store.get_user_by_id(gone.id) is None
    assert "gone@example.com" not in store.email_index
    assert gone.id not in store.role_index.get("admin", set())
    assert "zubin" not in store.name_index
    assert store.name_index["mehta"] == {keep.id}
    assert await store.delete_user(gone.id) is False
    assert_indexes_consistent(store)


@pytest.mark.asyncio
async def test_activate_and_deactivate(store):
    user = await store.create_user("act@example.com", "Active", "pw")

    assert await store.deactivate_user(user.id) is True
    assert store.get_user_by_id(user.id).is_active is False
    assert await store.activate_user(user.id) is True
    assert store.get_user_by_id(user.id).is_active is True


@pytest.mark.asyncio
async def test_update_last_login_sets_timestamp(store):
    user = await store.create_user("login@example.com", "Login", "pw")

    await store.update_last_login(user.id)

    refreshed = store.get_user_by_id(user.id)
    assert refreshed.last_login is not None
    assert refreshed.last_login >= refreshed.created_at


@pytest.mark.asyncio
async def test_every_write_persists(kv, store):
    user = await store.create_user("persist@example.com", "Persist", "pw")
    first = await kv.get(store.settings.users_key)

    await store.deactivate_user(user.id)

    assert await kv.get(store.settings.users_key) != first


@pytest.mark.asyncio
async def test_seeds_baseline_accounts_once():
    kv = InMemoryKeyValueStore()
    settings = Settings(KV_BACKEND="memory", SEED_DEFAULT_USERS=True)

    async with UserStore(kv, settings) as first:
        assert first.get_user_count() == 3
        admin = first.get_user_by_email("admin@gearupsports.com")
        assert admin.role == UserRole.ADMIN
        assert admin.password == "admin123"

    async with UserStore(kv, settings) as second:
        assert second.get_user_count() == 3
        assert second.get_user_by_email("admin@gearupsports.com").id == admin.id


@pytest.mark.asyncio
async def test_sample_users_are_generated():
    settings = Settings(KV_BACKEND="memory", SEED_DEFAULT_USERS=True, SAMPLE_USER_COUNT=47)

    async with UserStore(InMemoryKeyValueStore(), settings) as store:
        assert store.get_user_count() == 50
        assert len(store.get_users_by_role(UserRole.USER)) == 48
        assert_indexes_consistent(store)
