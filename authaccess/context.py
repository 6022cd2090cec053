"""
Context-scoped authorization state.

The current accessor and the write-bypass flag live in context variables so
that concurrent requests, threads and asyncio tasks never observe each
other's values.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

# Context variable for the current accessor
_current_accessor: contextvars.ContextVar[Any] = contextvars.ContextVar(
    "authaccess_accessor", default=None
)

# Identities of model instances whose field writes bypass authorization
_bypassed_models: contextvars.ContextVar[frozenset[int]] = contextvars.ContextVar(
    "authaccess_bypass", default=frozenset()
)


def get_current_accessor() -> Any:
    """Get the current accessor from context."""
    return _current_accessor.get()


def set_current_accessor(accessor: Any) -> contextvars.Token[Any]:
    """
    Set the current accessor for this execution context.

    Returns:
        A token that can be passed to reset_current_accessor().
    """
    return _current_accessor.set(accessor)


def reset_current_accessor(token: contextvars.Token[Any]) -> None:
    """Restore the accessor that was current before set_current_accessor()."""
    _current_accessor.reset(token)


@contextmanager
def accessor_context(accessor: Any) -> Iterator[Any]:
    """
    Context manager to set the current accessor.

    All checks within this context that are not given an explicit accessor
    will use the provided one.

    Example:
        >>> with accessor_context(alice):
        ...     store.save(item)
    """
    token = _current_accessor.set(accessor)
    try:
        yield accessor
    finally:
        _current_accessor.reset(token)


def is_bypassed(model: Any) -> bool:
    """Whether field writes on ``model`` currently skip authorization."""
    return id(model) in _bypassed_models.get()


@contextmanager
def bypass_authorization(model: Any) -> Iterator[Any]:
    """
    Let field writes on one model instance skip authorization.

    The bypass applies only to ``model`` and only within the current
    execution context. The previous state is restored on exit, including
    when the body raises.
    """
    token = _bypassed_models.set(_bypassed_models.get() | {id(model)})
    try:
        yield model
    finally:
        _bypassed_models.reset(token)
