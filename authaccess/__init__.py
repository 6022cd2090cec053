"""
authaccess: attribute-level authorization for persisted entities.

authaccess decides whether the current accessor may create, save, destroy
or write individual fields of an entity. Policies are declared once per
entity type as OR-chains of checks; interception hooks consult them on
every lifecycle event and field assignment.

Basic Usage:
    >>> from authaccess import (
    ...     Entity, InMemoryStore, accessor_context,
    ...     autosets_owner_on_create, guards_saves, has_owner,
    ... )
    >>>
    >>> @guards_saves(with_method="allow_owner")
    ... @autosets_owner_on_create()
    ... @has_owner("user")
    ... class OwnedItem(Entity):
    ...     fields = ("user_id", "description")
    >>>
    >>> store = InMemoryStore()
    >>> with accessor_context(alice):
    ...     item = OwnedItem(description="mine")
    ...     store.save(item)
    True
    >>> with accessor_context(bob):
    ...     item.description = "not yours"   # silently dropped
    ...     store.save(item)
    False
"""

__version__ = "0.1.0"

from authaccess.context import (
    accessor_context,
    bypass_authorization,
    get_current_accessor,
    is_bypassed,
    reset_current_accessor,
    set_current_accessor,
)
from authaccess.declarative import (
    autosets_owner_on_create,
    guards_creation,
    guards_saves,
    guards_writes_to,
    has_owner,
)
from authaccess.entity import Entity
from authaccess.exceptions import (
    AuthAccessError,
    AuthorizationDenied,
    ConfigurationError,
)
from authaccess.gate import AccessGate
from authaccess.hooks import (
    InterceptionHooks,
    configure,
    get_default_hooks,
    reset_default_hooks,
)
from authaccess.ownership import SELF, OwnerSpec, allow_owner, declare_owner
from authaccess.persistence import InMemoryStore, Lifecycle, LifecycleEvent
from authaccess.registry import HookPoint, PolicyRegistry
from authaccess.rules import Rule, RuleGroup
from authaccess.types import (
    AccessorLike,
    AuthorizationCheck,
    CreateRuleTarget,
    Decision,
    FailureMode,
    GateConfig,
    HostEntity,
    Operation,
    RuleKind,
)

__all__ = [
    # Version
    "__version__",
    # Rules and registry
    "Rule",
    "RuleGroup",
    "RuleKind",
    "PolicyRegistry",
    "HookPoint",
    # Ownership
    "SELF",
    "OwnerSpec",
    "allow_owner",
    "declare_owner",
    # Decisions
    "AccessGate",
    "Decision",
    "GateConfig",
    "FailureMode",
    "CreateRuleTarget",
    "Operation",
    # Hooks
    "InterceptionHooks",
    "configure",
    "get_default_hooks",
    "reset_default_hooks",
    # Host
    "Entity",
    "InMemoryStore",
    "Lifecycle",
    "LifecycleEvent",
    "AccessorLike",
    "AuthorizationCheck",
    "HostEntity",
    # Declarations
    "guards_saves",
    "guards_creation",
    "guards_writes_to",
    "has_owner",
    "autosets_owner_on_create",
    # Context helpers
    "accessor_context",
    "bypass_authorization",
    "is_bypassed",
    "get_current_accessor",
    "set_current_accessor",
    "reset_current_accessor",
    # Exceptions
    "AuthAccessError",
    "ConfigurationError",
    "AuthorizationDenied",
]
