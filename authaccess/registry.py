"""
Policy registry for authaccess.

Each entity type owns exactly one PolicyRegistry, held explicitly as its
``policies`` attribute. The registry maps operations (save, create) and
field names (write) to RuleGroups, and is built once while the type is
declared. Absence of a group means the operation is unrestricted.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any

from authaccess.exceptions import ConfigurationError
from authaccess.rules import Rule, RuleGroup
from authaccess.types import AuthorizationCheck, RuleKind

if TYPE_CHECKING:
    from authaccess.ownership import OwnerSpec

logger = logging.getLogger(__name__)


class HookPoint(Enum):
    """Lifecycle interception points a registry asks its host to attach."""

    SAVE = "save"
    """Before save and before destroy."""

    CREATE = "create"
    """Before create."""

    AUTOSET_OWNER = "autoset_owner"
    """Before validation on create."""


AttachListener = Callable[[HookPoint], None]


def _type_supports(cls: type, name: str) -> bool:
    """Whether instances of ``cls`` are expected to have attribute ``name``."""
    if hasattr(cls, name):
        return True
    for klass in getattr(cls, "__mro__", (cls,)):
        if name in getattr(klass, "__annotations__", {}):
            return True
    return name in (getattr(cls, "model_fields", None) or {})


class PolicyRegistry:
    """
    Per-entity-type storage of save, create and write rule groups.

    The first save or create registration asks the host to attach the
    matching interception hook. That happens once per type, not once per
    registration.

    Example:
        >>> registry = PolicyRegistry(OwnedItem)
        >>> registry.declare_owner("user")
        >>> registry.register_save_rule(RuleKind.LOCAL_METHOD, "allow_owner")
        >>> registry.register_save_rule(RuleKind.ACCESSOR_METHOD, "is_admin")
        >>> registry.save_group()
        RuleGroup('OwnedItem.save', ['model.allow_owner', 'accessor.is_admin'])

    Thread Safety:
        Registration is guarded by an internal lock. Registration is meant
        to happen at declaration time only; call freeze() once the type is
        fully declared to reject later changes.
    """

    def __init__(
        self,
        entity_type: type,
        accessor_type: type | None = None,
        fields: Iterable[str] | None = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            entity_type: The entity type whose policies this registry holds.
            accessor_type: Optional accessor type. When given, accessor-method
                rules are validated against it at declaration time.
            fields: Optional set of writable field names. When given, write
                rules on unknown fields are rejected at declaration time.
        """
        self.entity_type = entity_type
        self.accessor_type = accessor_type
        self.fields = frozenset(fields) if fields is not None else None
        self.owner: OwnerSpec | None = None
        self.autoset_owner = False

        self._save_rules: RuleGroup | None = None
        self._create_rules: RuleGroup | None = None
        self._write_rules: dict[str, RuleGroup] = {}
        self._checks: dict[str, AuthorizationCheck] = {}
        self._listeners: list[AttachListener] = []
        self._attached: set[HookPoint] = set()
        self._frozen = False
        self._lock = threading.RLock()

    @property
    def entity_name(self) -> str:
        return self.entity_type.__name__

    # ==================== Registration ====================

    def register_save_rule(
        self,
        kind: RuleKind | str | None,
        method_name: str | None,
        options: Any = None,
    ) -> Rule:
        """
        Add a rule to the save group, creating the group if needed.

        Save rules also gate destroy, and (when configured) every field
        write.
        """
        with self._lock:
            self.ensure_mutable()
            rule = self._build_rule("save_rule", kind, method_name, options)
            if self._save_rules is None:
                self._save_rules = RuleGroup(f"{self.entity_name}.save", self._checks)
            self._save_rules.add(rule)
            self._signal(HookPoint.SAVE)
        logger.debug(f"Registered save rule '{rule.label}' on '{self.entity_name}'")
        return rule

    def register_create_rule(
        self,
        kind: RuleKind | str | None,
        method_name: str | None,
        options: Any = None,
    ) -> Rule:
        """Add a rule to the create group, creating the group if needed."""
        with self._lock:
            self.ensure_mutable()
            rule = self._build_rule("create_rule", kind, method_name, options)
            if self._create_rules is None:
                self._create_rules = RuleGroup(f"{self.entity_name}.create", self._checks)
            self._create_rules.add(rule)
            self._signal(HookPoint.CREATE)
        logger.debug(f"Registered create rule '{rule.label}' on '{self.entity_name}'")
        return rule

    def register_write_rule(
        self,
        field_name: str,
        kind: RuleKind | str | None,
        method_name: str | None,
        options: Any = None,
    ) -> Rule:
        """Add a rule to the write group of ``field_name``."""
        field_name = str(field_name)
        with self._lock:
            self.ensure_mutable()
            if self.fields is not None and field_name not in self.fields:
                raise ConfigurationError(
                    config_key=f"{self.entity_name}.write_rule",
                    expected=f"one of the declared fields {sorted(self.fields)}",
                    received=field_name,
                )
            rule = self._build_rule("write_rule", kind, method_name, options)
            group = self._write_rules.get(field_name)
            if group is None:
                group = RuleGroup(f"{self.entity_name}.{field_name}", self._checks)
                self._write_rules[field_name] = group
            group.add(rule)
        logger.debug(
            f"Registered write rule '{rule.label}' on '{self.entity_name}.{field_name}'"
        )
        return rule

    def register_check(self, name: str, check: AuthorizationCheck) -> None:
        """
        Register a named local check for this entity type.

        Local-method rules naming ``name`` call ``check(accessor, model,
        options)`` instead of a method of the model.
        """
        if not callable(check):
            raise ConfigurationError(
                config_key=f"{self.entity_name}.check.{name}",
                expected="a callable (accessor, model, options) -> bool",
                received=check,
            )
        with self._lock:
            self.ensure_mutable()
            if name in self._checks:
                logger.warning(f"Overwriting check '{name}' on '{self.entity_name}'")
            self._checks[name] = check

    def declare_owner(self, source: Any = None, owner_type: type | None = None) -> OwnerSpec:
        """Declare how this type's owner is found. See ownership.declare_owner."""
        from authaccess.ownership import declare_owner

        return declare_owner(self.entity_type, source, owner_type=owner_type, registry=self)

    def declare_autoset_owner_on_create(self) -> None:
        """Make the creating accessor the owner of every new instance."""
        from authaccess.ownership import declare_autoset_owner_on_create

        declare_autoset_owner_on_create(self.entity_type, registry=self)

    def freeze(self) -> None:
        """Reject any further registration."""
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ==================== Host wiring ====================

    def add_attach_listener(self, listener: AttachListener) -> None:
        """
        Subscribe to hook attachment requests.

        Hook points already requested are replayed to the new listener.
        """
        with self._lock:
            self._listeners.append(listener)
            attached = list(self._attached)
        for point in attached:
            listener(point)

    def request_hook(self, point: HookPoint) -> None:
        """Ask the host to attach ``point`` (no-op if already attached)."""
        with self._lock:
            self._signal(point)

    def _signal(self, point: HookPoint) -> None:
        if point in self._attached:
            return
        self._attached.add(point)
        logger.debug(f"Attaching '{point.value}' hook on '{self.entity_name}'")
        for listener in self._listeners:
            listener(point)

    @property
    def attached_hooks(self) -> set[HookPoint]:
        return set(self._attached)

    # ==================== Lookups ====================

    def save_group(self) -> RuleGroup | None:
        return self._save_rules

    def create_group(self) -> RuleGroup | None:
        return self._create_rules

    def write_group(self, field_name: str) -> RuleGroup | None:
        return self._write_rules.get(str(field_name))

    def has_check(self, name: str) -> bool:
        return name in self._checks

    def describe(self) -> dict[str, Any]:
        """
        Summarize the registered rules.

        Returns:
            Dictionary of rule labels by operation and field.
        """
        with self._lock:
            return {
                "entity": self.entity_name,
                "save": [r.label for r in self._save_rules] if self._save_rules else None,
                "create": [r.label for r in self._create_rules] if self._create_rules else None,
                "write": {
                    name: [r.label for r in group]
                    for name, group in self._write_rules.items()
                },
                "checks": sorted(self._checks),
                "owner": self.owner.describe() if self.owner else None,
                "autoset_owner": self.autoset_owner,
            }

    # ==================== Validation ====================

    def ensure_mutable(self) -> None:
        if self._frozen:
            raise ConfigurationError(
                config_key=f"{self.entity_name}.policies",
                expected="registration before freeze()",
            )

    def _build_rule(
        self,
        key: str,
        kind: RuleKind | str | None,
        method_name: str | None,
        options: Any,
    ) -> Rule:
        if kind is None or not method_name:
            raise ConfigurationError(
                config_key=f"{self.entity_name}.{key}",
                expected="an accessor-method or local-method designator",
                received={"kind": kind, "method_name": method_name},
            )
        rule = Rule(kind, method_name, options)  # type: ignore[arg-type]
        self._validate_rule(rule)
        return rule

    def _validate_rule(self, rule: Rule) -> None:
        if rule.kind is RuleKind.LOCAL_METHOD:
            if rule.method_name in self._checks:
                return
            if not _type_supports(self.entity_type, rule.method_name):
                raise ConfigurationError(
                    config_key=f"{self.entity_name}.{rule.method_name}",
                    expected="a method of the entity or a registered check",
                )
        elif self.accessor_type is not None:
            if not _type_supports(self.accessor_type, rule.method_name):
                raise ConfigurationError(
                    config_key=f"{self.accessor_type.__name__}.{rule.method_name}",
                    expected="a method or attribute of the accessor type",
                )


def registry_for(entity_type: type) -> PolicyRegistry | None:
    """Return the registry held by ``entity_type``, if it has one."""
    registry = getattr(entity_type, "policies", None)
    if isinstance(registry, PolicyRegistry):
        return registry
    return None


def save_group_for(entity_type: type) -> RuleGroup | None:
    registry = registry_for(entity_type)
    return registry.save_group() if registry else None


def create_group_for(entity_type: type) -> RuleGroup | None:
    registry = registry_for(entity_type)
    return registry.create_group() if registry else None


def write_group_for(entity_type: type, field_name: str) -> RuleGroup | None:
    registry = registry_for(entity_type)
    return registry.write_group(field_name) if registry else None
