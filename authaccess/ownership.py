"""
Ownership of entities by accessors.

An ownable entity exposes ``owner_id``, the identifier of the accessor that
owns it. Declaring an owner also registers the ``allow_owner`` check, which
rules can name with ``with_method="allow_owner"``.

New records (no persisted identity yet) always pass ``allow_owner``. That
lets the not-yet-existing owner create the object and write its own id
into the owner field before there is anything to compare against. Use
create rules to restrict who may create objects at all.

Owners are compared by identifier only unless an ``owner_type`` is
declared. Without it, accessors of different types sharing an identifier
are treated as the same owner (a User with id 7 owns whatever a Group with
id 7 owns), so either use a single accessor type or declare ``owner_type``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from authaccess.exceptions import ConfigurationError
from authaccess.registry import HookPoint, PolicyRegistry, registry_for

logger = logging.getLogger(__name__)

SELF = "self"
"""Owner source for entities that own themselves (``owner_id == id``)."""


@dataclass(frozen=True)
class OwnerSpec:
    """
    How an entity type's owner is found.

    Attributes:
        source: Name of the owner reference (``"user"`` reads ``user_id``),
            SELF for self-owned entities, or None when the entity defines
            ``owner_id`` itself.
        owner_type: Optional accessor type the owner must be an instance of.
    """
    source: str | None = None
    owner_type: type | None = None

    @property
    def self_owned(self) -> bool:
        return self.source == SELF

    @property
    def custom(self) -> bool:
        return self.source is None

    @property
    def id_field(self) -> str | None:
        if self.source is None or self.self_owned:
            return None
        return f"{self.source}_id"

    @property
    def read_only(self) -> bool:
        """Self-owned entities cannot change owner."""
        return self.self_owned

    def describe(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "id_field": self.id_field,
            "owner_type": self.owner_type.__name__ if self.owner_type else None,
        }


def _require_registry(entity_type: type, registry: PolicyRegistry | None) -> PolicyRegistry:
    registry = registry or registry_for(entity_type)
    if registry is None:
        raise ConfigurationError(
            config_key=f"{entity_type.__name__}.policies",
            expected="an entity type holding a PolicyRegistry",
        )
    return registry


def _allow_owner_check(accessor: Any, model: Any, options: Any) -> bool:
    return allow_owner(accessor, model)


def declare_owner(
    entity_type: type,
    source: str | None = None,
    *,
    owner_type: type | None = None,
    registry: PolicyRegistry | None = None,
) -> OwnerSpec:
    """
    Declare how ``entity_type`` finds its owner.

    Args:
        entity_type: The entity type being declared.
        source: ``"<name>"`` to delegate ``owner_id`` to field
            ``<name>_id`` (read/write), SELF to use the entity's own
            identifier (read-only), or None when the type defines
            ``owner_id`` itself. Calling with None on a type that already
            has an owner leaves the existing declaration in place.
        owner_type: Optional accessor type; when given, an accessor must be
            an instance of it to be considered the owner.
        registry: Registry to declare on. Defaults to the type's own.

    Returns:
        The effective OwnerSpec.

    Raises:
        ConfigurationError: On conflicting declarations, on a source whose
            id field is not a declared field, or on a self-owned type that
            also autosets its owner.
    """
    registry = _require_registry(entity_type, registry)
    existing = registry.owner
    if source is None and existing is not None:
        return existing

    registry.ensure_mutable()
    if existing is not None and not existing.custom and existing.source != source:
        raise ConfigurationError(
            config_key=f"{registry.entity_name}.owner",
            expected=f"a single owner declaration (already '{existing.source}')",
            received=source,
        )

    spec = OwnerSpec(source=source, owner_type=owner_type or (existing.owner_type if existing else None))
    if spec.self_owned and registry.autoset_owner:
        raise ConfigurationError(
            config_key=f"{registry.entity_name}.owner",
            expected="a writable owner for autosets_owner_on_create",
            received=SELF,
        )
    if spec.id_field and registry.fields is not None and spec.id_field not in registry.fields:
        raise ConfigurationError(
            config_key=f"{registry.entity_name}.owner",
            expected=f"declared field '{spec.id_field}'",
            received=source,
        )

    registry.owner = spec
    if not registry.has_check("allow_owner"):
        registry.register_check("allow_owner", _allow_owner_check)
    logger.debug(f"Declared owner {spec.describe()} on '{registry.entity_name}'")
    return spec


def declare_autoset_owner_on_create(
    entity_type: type,
    *,
    registry: PolicyRegistry | None = None,
) -> None:
    """
    Make the creating accessor the owner of new instances.

    Implies ``declare_owner(entity_type)``; the owner assignment runs
    before validation on create.
    """
    registry = _require_registry(entity_type, registry)
    spec = declare_owner(entity_type, registry=registry)
    if spec.read_only:
        raise ConfigurationError(
            config_key=f"{registry.entity_name}.autoset_owner",
            expected="a writable owner",
            received=SELF,
        )
    registry.autoset_owner = True
    registry.request_hook(HookPoint.AUTOSET_OWNER)


def owner_spec_of(model: Any) -> OwnerSpec:
    registry = registry_for(type(model))
    if registry is None or registry.owner is None:
        raise ConfigurationError(
            config_key=f"{type(model).__name__}.owner",
            expected="an owner declaration (has_owner)",
        )
    return registry.owner


def owner_id_of(model: Any) -> Any:
    """Return the identifier of ``model``'s owner."""
    spec = owner_spec_of(model)
    if spec.self_owned:
        return model.identity()
    if spec.custom:
        return model.owner_id
    return model.get_field_raw(spec.id_field)


def set_owner_id(model: Any, value: Any) -> None:
    """
    Assign ``model``'s owner.

    The assignment goes through the normal field-write path, so it is
    subject to write authorization unless bypassed.

    Raises:
        ConfigurationError: For self-owned entities.
    """
    spec = owner_spec_of(model)
    if spec.read_only:
        raise ConfigurationError(
            config_key=f"{type(model).__name__}.owner_id",
            expected="a writable owner",
            received=SELF,
        )
    setattr(model, spec.id_field or "owner_id", value)


def owner_of(model: Any) -> Any:
    """Return the resolved owner reference, if the entity exposes one."""
    spec = owner_spec_of(model)
    if spec.self_owned:
        return model
    if spec.custom:
        return None
    return getattr(model, spec.source, None)


def allow_owner(accessor: Any, model: Any) -> bool:
    """
    Whether ``accessor`` owns ``model``.

    Returns:
        True for models without a persisted identity. False for a missing
        accessor, or an accessor of the wrong type when ``owner_type`` was
        declared. Otherwise whether ``accessor.id == model.owner_id``.
    """
    if not model.has_persisted_identity():
        return True
    if accessor is None:
        return False
    spec = owner_spec_of(model)
    if spec.owner_type is not None and not isinstance(accessor, spec.owner_type):
        logger.debug(
            f"allow_owner: accessor type '{type(accessor).__name__}' is not "
            f"'{spec.owner_type.__name__}'"
        )
        return False
    return getattr(accessor, "id", None) == owner_id_of(model)
