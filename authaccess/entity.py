"""
Entity: a reference host for guarded models.

Subclasses declare their ``fields``. Every assignment to a declared field
goes through the interception hooks and is silently dropped when the
current accessor may not write it. Each subclass gets its own
PolicyRegistry (``policies``) and Lifecycle (``lifecycle``); policies are
not inherited from a parent entity.

Example:
    >>> @guards_saves(with_method="allow_owner")
    ... @has_owner("user")
    ... class OwnedItem(Entity):
    ...     fields = ("user_id", "description")
    >>>
    >>> with accessor_context(alice):
    ...     item = OwnedItem(description="mine")
    ...     store.save(item)
    True
"""

from __future__ import annotations

import functools
from typing import Any, ClassVar

from authaccess import ownership
from authaccess.context import get_current_accessor
from authaccess.exceptions import ConfigurationError
from authaccess.hooks import InterceptionHooks
from authaccess.persistence import Lifecycle, attach_hook_point, hooks_for
from authaccess.registry import PolicyRegistry


class Entity:
    """
    Base class for entities whose field writes and persistence are gated.

    Class attributes:
        fields: Names of the gated, persisted fields.
        accessor_type: Optional accessor type used to validate
            accessor-method rules when they are declared.
        hooks: Optional InterceptionHooks for this type; the process-wide
            default hooks are used when None.
    """

    fields: ClassVar[tuple[str, ...]] = ()
    accessor_type: ClassVar[type | None] = None
    hooks: ClassVar[InterceptionHooks | None] = None
    policies: ClassVar[PolicyRegistry]
    lifecycle: ClassVar[Lifecycle]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.fields = tuple(cls.fields)
        cls.lifecycle = Lifecycle()
        cls.policies = PolicyRegistry(cls, accessor_type=cls.accessor_type, fields=cls.fields)
        cls.policies.add_attach_listener(
            functools.partial(attach_hook_point, cls, cls.lifecycle)
        )

    def __init__(self, **values: Any) -> None:
        self._init_storage()
        for name, value in values.items():
            if name not in type(self).fields:
                raise TypeError(f"{type(self).__name__} has no field '{name}'")
            setattr(self, name, value)

    def _init_storage(self) -> None:
        object.__setattr__(self, "_attributes", dict.fromkeys(type(self).fields))
        object.__setattr__(self, "_id", None)

    @classmethod
    def from_storage(cls, identity: Any, values: dict[str, Any]) -> Entity:
        """Rebuild a persisted instance without going through write guards."""
        instance = cls.__new__(cls)
        instance._init_storage()
        instance._attributes.update(values)
        instance.mark_persisted(identity)
        return instance

    def __getattr__(self, name: str) -> Any:
        attributes = self.__dict__.get("_attributes")
        if attributes is not None and name in attributes:
            return attributes[name]
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in type(self).fields:
            hooks_for(type(self)).on_field_write(get_current_accessor(), self, name, value)
        else:
            object.__setattr__(self, name, value)

    def __repr__(self) -> str:
        values = ", ".join(f"{k}={v!r}" for k, v in self._attributes.items())
        return f"{type(self).__name__}(id={self._id!r}, {values})"

    # ==================== Host capabilities ====================

    def get_field_raw(self, name: str) -> Any:
        return self._attributes[name]

    def set_field_raw(self, name: str, value: Any) -> None:
        self._attributes[name] = value

    def has_persisted_identity(self) -> bool:
        return self._id is not None

    def identity(self) -> Any:
        return self._id

    def mark_persisted(self, identity: Any) -> None:
        object.__setattr__(self, "_id", identity)

    def raw_fields(self) -> dict[str, Any]:
        return dict(self._attributes)

    @property
    def id(self) -> Any:
        return self._id

    # ==================== Ownership ====================

    def _require_owner_source(self) -> None:
        spec = type(self).policies.owner
        if spec is None or spec.custom:
            raise ConfigurationError(
                config_key=f"{type(self).__name__}.owner_id",
                expected="has_owner(<source>) or an owner_id override",
            )

    @property
    def owner_id(self) -> Any:
        self._require_owner_source()
        return ownership.owner_id_of(self)

    @owner_id.setter
    def owner_id(self, value: Any) -> None:
        # custom owners override owner_id, setter included
        self._require_owner_source()
        ownership.set_owner_id(self, value)

    @property
    def owner(self) -> Any:
        return ownership.owner_of(self)

    # ==================== Authorization queries ====================

    def allowed_to_save(self) -> bool:
        """Whether the current accessor may save this entity."""
        return hooks_for(type(self)).gate.allowed_to_save(get_current_accessor(), self)

    def allowed_to_write(self, name: str) -> bool:
        """Whether the current accessor may write field ``name``."""
        return hooks_for(type(self)).gate.allowed_to_write(get_current_accessor(), self, name)

    @classmethod
    def allowed_to_create(cls) -> bool:
        """Whether the current accessor may create instances of this type."""
        return hooks_for(cls).gate.allowed_to_create(get_current_accessor(), cls)
