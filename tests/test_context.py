"""
Tests for context-scoped state.

Tests cover:
- Setting and restoring the current accessor
- Isolation between threads and asyncio tasks
- Isolation of write bypasses between execution contexts
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from authaccess import (
    AccessGate,
    accessor_context,
    bypass_authorization,
    get_current_accessor,
    is_bypassed,
    reset_current_accessor,
    set_current_accessor,
)
from tests.models import OwnedItem, User


class TestCurrentAccessor:
    """Tests for the current accessor."""

    def test_default_is_none(self):
        assert get_current_accessor() is None

    def test_context_manager_restores(self, user1: User, user2: User):
        with accessor_context(user1) as current:
            assert current is user1
            with accessor_context(user2):
                assert get_current_accessor() is user2
            assert get_current_accessor() is user1
        assert get_current_accessor() is None

    def test_restored_after_error(self, user1: User):
        with pytest.raises(ValueError):
            with accessor_context(user1):
                raise ValueError("request failed")
        assert get_current_accessor() is None

    def test_helpers_exported(self):
        import authaccess

        for name in ("accessor_context", "bypass_authorization", "is_bypassed"):
            assert name in authaccess.__all__

    def test_token_reset(self, user1: User):
        token = set_current_accessor(user1)
        try:
            assert get_current_accessor() is user1
        finally:
            reset_current_accessor(token)
        assert get_current_accessor() is None


class TestThreadIsolation:
    """Tests for concurrent threads."""

    def test_threads_see_their_own_accessor(self, store):
        gate = AccessGate()
        item = store.find(OwnedItem, 3)
        barrier = threading.Barrier(4)

        def check(accessor_id: int) -> tuple[int, bool]:
            accessor = store.find(User, accessor_id)
            with accessor_context(accessor):
                barrier.wait(timeout=5)
                current = get_current_accessor()
                return current.id, gate.allowed_to_save(current, item)

        with ThreadPoolExecutor(max_workers=4) as executor:
            results = list(executor.map(check, [1, 2, 1, 2]))

        assert results == [(1, True), (2, False), (1, True), (2, False)]

    def test_new_thread_starts_without_accessor(self, user1: User):
        seen = []
        with accessor_context(user1):
            thread = threading.Thread(target=lambda: seen.append(get_current_accessor()))
            thread.start()
            thread.join()
        assert seen == [None]

    def test_bypass_not_visible_to_other_threads(self, item3: OwnedItem):
        seen = []
        with bypass_authorization(item3):
            thread = threading.Thread(target=lambda: seen.append(is_bypassed(item3)))
            thread.start()
            thread.join()
            assert is_bypassed(item3) is True
        assert seen == [False]


class TestAsyncIsolation:
    """Tests for concurrent asyncio tasks."""

    def test_tasks_see_their_own_accessor(self, user1: User, user2: User):
        async def handle(accessor: User) -> int:
            with accessor_context(accessor):
                await asyncio.sleep(0)
                return get_current_accessor().id

        async def main() -> list[int]:
            return await asyncio.gather(handle(user1), handle(user2), handle(user1))

        assert asyncio.run(main()) == [1, 2, 1]

    def test_bypass_scoped_to_task(self, item3: OwnedItem):
        async def bypassing(started: asyncio.Event, done: asyncio.Event) -> bool:
            with bypass_authorization(item3):
                started.set()
                await done.wait()
                return is_bypassed(item3)

        async def observing(started: asyncio.Event, done: asyncio.Event) -> bool:
            await started.wait()
            try:
                return is_bypassed(item3)
            finally:
                done.set()

        async def main() -> list[bool]:
            started, done = asyncio.Event(), asyncio.Event()
            return await asyncio.gather(bypassing(started, done), observing(started, done))

        assert asyncio.run(main()) == [True, False]
