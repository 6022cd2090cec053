"""
Class decorators for declaring entity policies.

Decorators apply bottom-up, so declare the owner below the rules that use
``allow_owner``:

    >>> @guards_saves(with_accessor_method="is_admin")
    ... @guards_saves(with_method="allow_owner")
    ... @guards_writes_to("is_admin", with_accessor_method="is_admin")
    ... @guards_creation(with_accessor_method="is_admin")
    ... @has_owner(SELF)
    ... class User(Entity):
    ...     fields = ("name", "is_admin", "bio")
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from authaccess.exceptions import ConfigurationError
from authaccess.ownership import declare_autoset_owner_on_create, declare_owner
from authaccess.registry import PolicyRegistry, registry_for
from authaccess.rules import Rule

E = TypeVar("E", bound=type)


def _registry(cls: type) -> PolicyRegistry:
    registry = registry_for(cls)
    if registry is None:
        raise ConfigurationError(
            config_key=f"{cls.__name__}.policies",
            expected="an Entity (or other type holding a PolicyRegistry)",
        )
    return registry


def guards_saves(
    *,
    with_accessor_method: str | None = None,
    with_method: str | None = None,
    options: Any = None,
) -> Callable[[E], E]:
    """
    Require a check to pass before the entity may be saved or destroyed.

    Repeated declarations build an OR-chain: if any check passes, the
    accessor is allowed. Field writes are also refused to accessors who
    may not save the entity, unless the gate is configured otherwise.
    """
    rule = Rule.from_declaration(with_accessor_method, with_method, options)

    def decorator(cls: E) -> E:
        _registry(cls).register_save_rule(rule.kind, rule.method_name, rule.options)
        return cls
    return decorator


def guards_creation(
    *,
    with_accessor_method: str | None = None,
    with_method: str | None = None,
    options: Any = None,
) -> Callable[[E], E]:
    """Require a check to pass before instances of the entity may be created."""
    rule = Rule.from_declaration(with_accessor_method, with_method, options)

    def decorator(cls: E) -> E:
        _registry(cls).register_create_rule(rule.kind, rule.method_name, rule.options)
        return cls
    return decorator


def guards_writes_to(
    field_name: str,
    *,
    with_accessor_method: str | None = None,
    with_method: str | None = None,
    options: Any = None,
) -> Callable[[E], E]:
    """
    Require a check to pass before ``field_name`` may be written.

    Writes that fail are ignored, leaving the field unchanged.
    """
    rule = Rule.from_declaration(with_accessor_method, with_method, options)

    def decorator(cls: E) -> E:
        _registry(cls).register_write_rule(field_name, rule.kind, rule.method_name, rule.options)
        return cls
    return decorator


def has_owner(source: str | None = None, *, owner_type: type | None = None) -> Callable[[E], E]:
    """
    Declare the entity's owner. See ownership.declare_owner.

    ``has_owner("user")`` reads the owner id from field ``user_id``;
    ``has_owner(SELF)`` makes the entity its own owner.
    """
    def decorator(cls: E) -> E:
        declare_owner(cls, source, owner_type=owner_type, registry=_registry(cls))
        return cls
    return decorator


def autosets_owner_on_create() -> Callable[[E], E]:
    """Make the accessor that creates an instance its owner."""
    def decorator(cls: E) -> E:
        declare_autoset_owner_on_create(cls, registry=_registry(cls))
        return cls
    return decorator
