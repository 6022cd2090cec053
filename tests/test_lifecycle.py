"""
End-to-end tests through the in-memory store.

Tests cover:
- Creating owned items with the creator autoset as owner
- Saving and destroying as owner, non-owner and admin
- Create rules in hard and soft failure modes
- Guarded field assignment on entities
- Per-type hooks overriding the defaults
"""

from __future__ import annotations

import pytest

from authaccess import (
    AuthorizationDenied,
    Entity,
    FailureMode,
    GateConfig,
    InMemoryStore,
    InterceptionHooks,
    Lifecycle,
    LifecycleEvent,
    accessor_context,
    configure,
    guards_saves,
)
from tests.models import AdminItem, CreatedItem, OwnedItem, PlainItem, User


@guards_saves(with_accessor_method="is_admin")
class StrictItem(Entity):
    fields = ("description",)
    hooks = InterceptionHooks(config=GateConfig(failure_mode=FailureMode.HARD))


@guards_saves(with_method="approved")
class Flagged(Entity):
    fields = ("body",)

    @property
    def approved(self) -> bool | None:
        return None


class TestOwnedItemLifecycle:
    """Tests for the create-then-edit flow of an owned item."""

    def test_creator_becomes_owner_and_others_cannot_save(self, store: InMemoryStore, user1: User, user2: User):
        with accessor_context(user1):
            item = OwnedItem(description="mine")
            assert store.save(item) is True

        assert item.id == 5
        assert item.user_id == 1
        assert store.find(OwnedItem, item.id).user_id == 1

        with accessor_context(user2):
            assert item.allowed_to_save() is False
            assert store.save(item) is False
        with accessor_context(user1):
            assert item.allowed_to_save() is True

    def test_owner_may_edit(self, store: InMemoryStore, user1: User, item3: OwnedItem):
        with accessor_context(user1):
            item3.description = "edited"
            assert store.save(item3) is True
        assert store.find(OwnedItem, 3).description == "edited"

    def test_non_owner_edits_are_dropped(self, store: InMemoryStore, user2: User, item3: OwnedItem):
        with accessor_context(user2):
            item3.description = "vandalized"
            assert item3.description == "item3"
            assert store.save(item3) is False
        assert store.find(OwnedItem, 3).description == "item3"

    def test_anonymous_create_leaves_item_unowned(self, store: InMemoryStore):
        item = OwnedItem(description="orphan")
        assert store.save(item) is True
        assert item.user_id is None

    def test_new_item_cannot_claim_another_owner(self, store: InMemoryStore, user1: User):
        """Test that autoset overwrites an owner chosen by the creator."""
        with accessor_context(user1):
            item = OwnedItem(user_id=2, description="not yours")
            assert store.save(item) is True
        assert item.user_id == 1


class TestDestroy:
    """Tests for destroy, gated by the save rules."""

    def test_non_owner_cannot_destroy(self, store: InMemoryStore, user2: User, item3: OwnedItem):
        with accessor_context(user2):
            assert store.destroy(item3) is False
        assert store.count(OwnedItem) == 2

    def test_owner_can_destroy(self, store: InMemoryStore, user1: User, item3: OwnedItem):
        with accessor_context(user1):
            assert store.destroy(item3) is True
        assert store.find(OwnedItem, 3) is None
        assert store.count(OwnedItem) == 1

    def test_hard_mode_destroy_raises(self, store: InMemoryStore, user2: User, item3: OwnedItem):
        configure({"failure_mode": "hard"})
        with accessor_context(user2):
            with pytest.raises(AuthorizationDenied):
                store.destroy(item3)
        assert store.count(OwnedItem) == 2


class TestCreateRules:
    """Tests for create rules through the store."""

    def test_soft_mode_create_is_a_no_op(self, store: InMemoryStore, user1: User):
        with accessor_context(user1):
            assert User.allowed_to_create() is False
            new_user = User(name="mallory")
            assert store.save(new_user) is False
        assert new_user.id is None
        assert store.count(User) == 3

    def test_hard_mode_create_raises(self, store: InMemoryStore, user1: User):
        configure(GateConfig(failure_mode=FailureMode.HARD))
        with accessor_context(user1):
            with pytest.raises(AuthorizationDenied) as exc_info:
                store.save(User(name="mallory"))
        assert exc_info.value.operation == "create"
        assert store.count(User) == 3

    def test_admin_may_create(self, store: InMemoryStore, admin: User):
        with accessor_context(admin):
            assert User.allowed_to_create() is True
            new_user = User(name="carol", is_admin=True)
            assert store.save(new_user) is True
        assert new_user.id == 4
        assert store.find(User, 4).is_admin is True

    def test_creation_right_required(self, store: InMemoryStore, user1: User, user2: User):
        with accessor_context(user1):
            allowed = CreatedItem(description="ok")
            assert store.save(allowed) is True
        with accessor_context(user2):
            denied = CreatedItem(description="nope")
            assert store.save(denied) is False
        assert allowed.user_id == 1
        assert store.count(CreatedItem) == 1

    def test_privilege_fields_dropped_for_non_admins(self, store: InMemoryStore, user1: User):
        with accessor_context(user1):
            user1.is_admin = True
            user1.bio = "promoted myself"
            assert store.save(user1) is True

        saved = store.find(User, 1)
        assert saved.is_admin is False
        assert saved.bio == "promoted myself"


class TestEntity:
    """Tests for the reference entity host."""

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            PlainItem(summary="x")

    def test_unrestricted_entity(self, store: InMemoryStore):
        item = PlainItem(title="t", body="b")
        item.title = "changed"
        assert store.save(item) is True
        assert store.find(PlainItem, item.id).title == "changed"

    def test_undecided_check_drops_writes(self, store: InMemoryStore, user1: User):
        """Test that a local check returning None denies without raising."""
        with accessor_context(user1):
            flagged = Flagged(body="x")
            assert flagged.allowed_to_save() is False
            assert store.save(flagged) is False
        assert flagged.body is None

    def test_non_field_attributes_unguarded(self, user2: User, item3: OwnedItem):
        with accessor_context(user2):
            item3.note = "scratch"
        assert item3.note == "scratch"

    def test_entity_queries_use_current_accessor(self, user2: User, admin: User):
        with accessor_context(admin):
            assert user2.allowed_to_write("is_admin") is True
        with accessor_context(user2):
            assert user2.allowed_to_write("is_admin") is False
            assert user2.allowed_to_write("bio") is True
        assert user2.allowed_to_save() is False

    def test_type_hooks_override_defaults(self, store: InMemoryStore, user1: User, admin: User):
        item = store.load(StrictItem, 1, {"description": "d"})
        with accessor_context(user1):
            with pytest.raises(AuthorizationDenied):
                store.save(item)
        with accessor_context(admin):
            assert store.save(item) is True

    def test_admin_item_requires_admin(self, store: InMemoryStore, user1: User, admin: User):
        item = store.load(AdminItem, 1, {"description": "d"})
        with accessor_context(user1):
            item.description = "x"
            assert store.save(item) is False
        with accessor_context(admin):
            item.description = "y"
            assert store.save(item) is True
        assert store.find(AdminItem, 1).description == "y"


class TestLifecycle:
    """Tests for lifecycle callback chains."""

    def test_chain_stops_at_false(self):
        calls = []
        lifecycle = Lifecycle()
        lifecycle.subscribe(LifecycleEvent.BEFORE_SAVE, lambda m: calls.append("a"))
        lifecycle.subscribe(LifecycleEvent.BEFORE_SAVE, lambda m: False)
        lifecycle.subscribe(LifecycleEvent.BEFORE_SAVE, lambda m: calls.append("c"))

        assert lifecycle.run(LifecycleEvent.BEFORE_SAVE, object()) is False
        assert calls == ["a"]

    def test_empty_chain_continues(self):
        assert Lifecycle().run(LifecycleEvent.BEFORE_DESTROY, object()) is True

    def test_store_clear(self, store: InMemoryStore):
        store.clear()
        assert store.count(User) == 0
        assert store.find(User, 1) is None
