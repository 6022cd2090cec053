"""
Core type definitions for authaccess.

This module defines the enums, value objects and protocols shared by the
rule engine, the access gate and the interception hooks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class RuleKind(Enum):
    """Target a rule's check is resolved against."""

    ACCESSOR_METHOD = "accessor"
    """Call the named method on the current accessor."""

    LOCAL_METHOD = "model"
    """Call the named method (or named check) on the model itself."""


class Operation(Enum):
    """Operations an entity may be gated on."""

    CREATE = "create"
    SAVE = "save"
    DESTROY = "destroy"
    WRITE = "write"


class FailureMode(Enum):
    """How a denied create, save or destroy is reported to the caller."""

    HARD = "hard"
    """Raise AuthorizationDenied and abort the operation."""

    SOFT = "soft"
    """Halt the lifecycle chain without persisting and without an error."""


class CreateRuleTarget(Enum):
    """What create rules are evaluated against."""

    ACCESSOR_ONLY = "accessor_only"
    """Only accessor-method rules can pass; local rules are not consulted."""

    MODEL_SNAPSHOT = "model_snapshot"
    """The about-to-be-created model is also passed to local rules."""


@runtime_checkable
class AccessorLike(Protocol):
    """
    Structural type for accessors.

    Any object with an ``id`` attribute satisfies this protocol, whether it
    is an Entity, a dataclass or a named tuple.
    """

    @property
    def id(self) -> Any: ...


@runtime_checkable
class AuthorizationCheck(Protocol):
    """
    A named predicate registered against an entity type.

    Checks receive the accessor (possibly None), the model (possibly None
    for accessor-only create checks) and the options bag declared with the
    rule, and return whether the check passes.

    Example:
        >>> def allow_same_team(accessor, model, options):
        ...     return accessor is not None and accessor.team == model.team
        >>> Document.policies.register_check("allow_same_team", allow_same_team)
    """

    def __call__(self, accessor: Any, model: Any, options: Any) -> bool: ...


@dataclass(frozen=True)
class Decision:
    """
    Result of an access gate check.

    Attributes:
        allowed: Whether the operation is permitted.
        reason: Human-readable explanation of the decision.
        rules_evaluated: Names of the rules that were consulted.
        metadata: Additional information (operation, entity, field).
    """
    allowed: bool
    reason: str | None = None
    rules_evaluated: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls, reason: str | None = None,
              rules: list[str] | None = None,
              metadata: dict[str, Any] | None = None) -> Decision:
        """Create an allowed decision."""
        return cls(
            allowed=True,
            reason=reason,
            rules_evaluated=rules or [],
            metadata=metadata or {},
        )

    @classmethod
    def deny(cls, reason: str,
             rules: list[str] | None = None,
             metadata: dict[str, Any] | None = None) -> Decision:
        """Create a denied decision."""
        return cls(
            allowed=False,
            reason=reason,
            rules_evaluated=rules or [],
            metadata=metadata or {},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "rules_evaluated": self.rules_evaluated,
            "metadata": self.metadata,
        }


@dataclass
class GateConfig:
    """
    Configuration for the access gate and interception hooks.

    Attributes:
        failure_mode: How denied create/save/destroy operations surface.
            Field writes are always dropped silently regardless of mode.
        save_gates_write: If True, an accessor who may not save an entity
            may not write any of its fields either.
        create_rule_target: Whether create rules see only the accessor or
            also the model being created.

    Example:
        >>> config = GateConfig(
        ...     failure_mode=FailureMode.HARD,
        ...     save_gates_write=False,
        ... )
    """

    failure_mode: FailureMode = FailureMode.SOFT
    save_gates_write: bool = True
    create_rule_target: CreateRuleTarget = CreateRuleTarget.ACCESSOR_ONLY

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "failure_mode": self.failure_mode.value,
            "save_gates_write": self.save_gates_write,
            "create_rule_target": self.create_rule_target.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GateConfig:
        """Create config from dictionary."""
        return cls(
            failure_mode=FailureMode(data.get("failure_mode", "soft")),
            save_gates_write=data.get("save_gates_write", True),
            create_rule_target=CreateRuleTarget(
                data.get("create_rule_target", "accessor_only")
            ),
        )


@runtime_checkable
class HostEntity(Protocol):
    """
    Capabilities the gate needs from a persisted entity.

    ``set_field_raw`` is the unguarded storage primitive; the interception
    hooks call it only after a write has been authorized.
    """

    def get_field_raw(self, name: str) -> Any: ...

    def set_field_raw(self, name: str, value: Any) -> None: ...

    def has_persisted_identity(self) -> bool: ...

    def identity(self) -> Any: ...
