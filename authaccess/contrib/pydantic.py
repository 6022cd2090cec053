"""
Pydantic integration for authaccess.

Provides GuardedModel, a pydantic BaseModel whose field assignments are
gated the same way Entity's are. Requires the pydantic package:

    pip install authaccess[pydantic]

Values given to the constructor are validated by pydantic as a whole and
are not gated field by field; creation itself is governed by create rules.
Assignments after construction are gated.

Example:
    >>> @guards_writes_to("title", with_method="allow_owner")
    ... @has_owner("author")
    ... class Document(GuardedModel):
    ...     author_id: int | None = None
    ...     title: str = ""
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

try:
    from pydantic import BaseModel, PrivateAttr
except ImportError as e:
    raise ImportError(
        "Pydantic is not installed. Install with: pip install authaccess[pydantic]"
    ) from e


class GuardedModel(BaseModel):
    """
    A pydantic model with gated field assignment and persistence.

    Each subclass gets its own PolicyRegistry (``policies``) built over its
    model fields, and its own Lifecycle for use with InMemoryStore.
    """

    hooks: ClassVar[InterceptionHooks | None] = None
    policies: ClassVar[PolicyRegistry]
    lifecycle: ClassVar[Lifecycle]

    _identity: Any = PrivateAttr(default=None)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        cls.lifecycle = Lifecycle()
        cls.policies = PolicyRegistry(cls, fields=cls.model_fields.keys())
        cls.policies.add_attach_listener(
            functools.partial(attach_hook_point, cls, cls.lifecycle)
        )

    def __setattr__(self, name: str, value: Any) -> None:
        if name in type(self).model_fields:
            hooks_for(type(self)).on_field_write(get_current_accessor(), self, name, value)
        else:
            super().__setattr__(name, value)

    @classmethod
    def from_storage(cls, identity: Any, values: dict[str, Any]) -> GuardedModel:
        """Rebuild a persisted instance without validation or write guards."""
        instance = cls.model_construct(**values)
        instance.mark_persisted(identity)
        return instance

    # ==================== Host capabilities ====================

    def get_field_raw(self, name: str) -> Any:
        return getattr(self, name)

    def set_field_raw(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)

    def has_persisted_identity(self) -> bool:
        return self._identity is not None

    def identity(self) -> Any:
        return self._identity

    def mark_persisted(self, identity: Any) -> None:
        self._identity = identity

    def raw_fields(self) -> dict[str, Any]:
        return self.model_dump()

    @property
    def id(self) -> Any:
        return self._identity

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
        self._require_owner_source()
        ownership.set_owner_id(self, value)

    # ==================== Authorization queries ====================

    def allowed_to_save(self) -> bool:
        return hooks_for(type(self)).gate.allowed_to_save(get_current_accessor(), self)

    def allowed_to_write(self, name: str) -> bool:
        return hooks_for(type(self)).gate.allowed_to_write(get_current_accessor(), self, name)

    @classmethod
    def allowed_to_create(cls) -> bool:
        return hooks_for(cls).gate.allowed_to_create(get_current_accessor(), cls)
