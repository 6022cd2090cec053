"""
Persistence lifecycle glue.

A minimal host for the interception hooks: per-type lifecycle callback
chains and an in-memory store that runs them. Callback chains stop at the
first callback returning False, and the store then skips persisting.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

from authaccess.context import get_current_accessor
from authaccess.hooks import InterceptionHooks, get_default_hooks
from authaccess.registry import HookPoint

logger = logging.getLogger(__name__)

LifecycleCallback = Callable[[Any], "bool | None"]


class LifecycleEvent(Enum):
    """Points in an entity's persistence lifecycle."""

    BEFORE_VALIDATION_ON_CREATE = "before_validation_on_create"
    BEFORE_SAVE = "before_save"
    BEFORE_CREATE = "before_create"
    BEFORE_DESTROY = "before_destroy"


class Lifecycle:
    """
    Ordered callback chains for one entity type.

    Example:
        >>> lifecycle = Lifecycle()
        >>> lifecycle.subscribe(LifecycleEvent.BEFORE_SAVE, lambda model: model.valid)
        >>> lifecycle.run(LifecycleEvent.BEFORE_SAVE, item)
        True
    """

    def __init__(self) -> None:
        self._callbacks: dict[LifecycleEvent, list[LifecycleCallback]] = defaultdict(list)

    def subscribe(self, event: LifecycleEvent, callback: LifecycleCallback) -> None:
        self._callbacks[event].append(callback)

    def callbacks(self, event: LifecycleEvent) -> list[LifecycleCallback]:
        return list(self._callbacks.get(event, []))

    def run(self, event: LifecycleEvent, model: Any) -> bool:
        """
        Run the chain for ``event``.

        Returns:
            False if a callback returned False (later callbacks are not
            run), True otherwise. Exceptions propagate.
        """
        for callback in self._callbacks.get(event, []):
            if callback(model) is False:
                logger.debug(
                    f"Lifecycle '{event.value}' halted for '{type(model).__name__}'"
                )
                return False
        return True


def hooks_for(entity_type: type) -> InterceptionHooks:
    """The entity type's own hooks, or the process-wide default."""
    hooks = getattr(entity_type, "hooks", None)
    return hooks if hooks is not None else get_default_hooks()


def attach_hook_point(entity_type: type, lifecycle: Lifecycle, point: HookPoint) -> None:
    """
    Subscribe the interception hooks for ``point`` to ``lifecycle``.

    Hooks and accessor are looked up when the event fires, so later
    configure() calls and accessor changes take effect.
    """
    if point is HookPoint.SAVE:
        lifecycle.subscribe(
            LifecycleEvent.BEFORE_SAVE,
            lambda model: hooks_for(entity_type).before_save(get_current_accessor(), model),
        )
        lifecycle.subscribe(
            LifecycleEvent.BEFORE_DESTROY,
            lambda model: hooks_for(entity_type).before_destroy(get_current_accessor(), model),
        )
    elif point is HookPoint.CREATE:
        lifecycle.subscribe(
            LifecycleEvent.BEFORE_CREATE,
            lambda model: hooks_for(entity_type).before_create(
                get_current_accessor(), type(model), model
            ),
        )
    elif point is HookPoint.AUTOSET_OWNER:
        lifecycle.subscribe(
            LifecycleEvent.BEFORE_VALIDATION_ON_CREATE,
            lambda model: hooks_for(entity_type).autoset_owner_on_create(
                get_current_accessor(), model
            ),
        )


class InMemoryStore:
    """
    In-memory persistence running entity lifecycles.

    Records are stored as snapshots of raw field values keyed by type and
    identifier; ``find`` rebuilds a fresh instance from a snapshot.

    Thread Safety:
        Record bookkeeping is guarded by an internal lock. Lifecycle
        callbacks run outside it.
    """

    def __init__(self) -> None:
        self._records: dict[type, dict[Any, dict[str, Any]]] = defaultdict(dict)
        self._last_ids: dict[type, int] = defaultdict(int)
        self._lock = threading.Lock()

    def save(self, model: Any) -> bool:
        """
        Create or update ``model``.

        Returns:
            True if the model was persisted, False if a lifecycle callback
            halted the operation.

        Raises:
            AuthorizationDenied: When a hook denies in hard failure mode.
        """
        if not model.has_persisted_identity():
            return self.create(model)

        lifecycle = _lifecycle_of(model)
        if not lifecycle.run(LifecycleEvent.BEFORE_SAVE, model):
            return False
        with self._lock:
            self._records[type(model)][model.identity()] = model.raw_fields()
        logger.debug(f"Saved '{type(model).__name__}' {model.identity()}")
        return True

    def create(self, model: Any) -> bool:
        """Persist a new ``model``. See save() for the return value."""
        lifecycle = _lifecycle_of(model)
        for event in (
            LifecycleEvent.BEFORE_VALIDATION_ON_CREATE,
            LifecycleEvent.BEFORE_SAVE,
            LifecycleEvent.BEFORE_CREATE,
        ):
            if not lifecycle.run(event, model):
                return False
        with self._lock:
            identity = self._last_ids[type(model)] + 1
            self._last_ids[type(model)] = identity
            self._records[type(model)][identity] = model.raw_fields()
        model.mark_persisted(identity)
        logger.debug(f"Created '{type(model).__name__}' {identity}")
        return True

    def destroy(self, model: Any) -> bool:
        """Remove ``model``. Returns False if a lifecycle callback halted it."""
        lifecycle = _lifecycle_of(model)
        if not lifecycle.run(LifecycleEvent.BEFORE_DESTROY, model):
            return False
        with self._lock:
            self._records[type(model)].pop(model.identity(), None)
        logger.debug(f"Destroyed '{type(model).__name__}' {model.identity()}")
        return True

    def find(self, entity_type: type, identity: Any) -> Any:
        """Load a fresh instance, or None if no such record exists."""
        with self._lock:
            snapshot = self._records[entity_type].get(identity)
        if snapshot is None:
            return None
        return entity_type.from_storage(identity, dict(snapshot))

    def load(self, entity_type: type, identity: Any, values: dict[str, Any]) -> Any:
        """
        Record a persisted instance directly, without running any lifecycle.

        Intended for seeding fixtures. Returns the loaded instance.
        """
        with self._lock:
            self._records[entity_type][identity] = dict(values)
            if isinstance(identity, int):
                self._last_ids[entity_type] = max(self._last_ids[entity_type], identity)
        return entity_type.from_storage(identity, dict(values))

    def count(self, entity_type: type) -> int:
        with self._lock:
            return len(self._records[entity_type])

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._last_ids.clear()


def _lifecycle_of(model: Any) -> Lifecycle:
    lifecycle = getattr(type(model), "lifecycle", None)
    return lifecycle if lifecycle is not None else Lifecycle()
