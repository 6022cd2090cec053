"""
Pytest fixtures for authaccess tests.

Provides a seeded in-memory store and the accessors used across modules.
"""

from __future__ import annotations

from typing import Generator

import pytest

from authaccess import InMemoryStore, reset_default_hooks
from tests.models import OwnedItem, User


@pytest.fixture(autouse=True)
def default_hooks() -> Generator[None, None, None]:
    """Start and finish every test with fresh default hooks."""
    reset_default_hooks()
    yield
    reset_default_hooks()


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def store() -> InMemoryStore:
    """Create an in-memory store seeded with users and owned items."""
    store = InMemoryStore()
    store.load(User, 1, {"name": "user1", "is_admin": False, "can_create": True, "bio": "one"})
    store.load(User, 2, {"name": "user2", "is_admin": False, "can_create": False, "bio": "two"})
    store.load(User, 3, {"name": "admin", "is_admin": True, "can_create": True, "bio": "root"})
    store.load(OwnedItem, 3, {"user_id": 1, "description": "item3"})
    store.load(OwnedItem, 4, {"user_id": 2, "description": "item4"})
    return store


# ============================================================================
# Accessor Fixtures
# ============================================================================


@pytest.fixture
def user1(store: InMemoryStore) -> User:
    """A regular user who may create items."""
    return store.find(User, 1)


@pytest.fixture
def user2(store: InMemoryStore) -> User:
    """A regular user who may not create items."""
    return store.find(User, 2)


@pytest.fixture
def admin(store: InMemoryStore) -> User:
    """An administrator."""
    return store.find(User, 3)


@pytest.fixture
def item3(store: InMemoryStore) -> OwnedItem:
    """An item owned by user1."""
    return store.find(OwnedItem, 3)


@pytest.fixture
def item4(store: InMemoryStore) -> OwnedItem:
    """An item owned by user2."""
    return store.find(OwnedItem, 4)
