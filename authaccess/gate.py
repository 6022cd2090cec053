"""
The access gate: runtime authorization decisions.

AccessGate answers three questions for a given accessor: may it save this
model, may it create an instance of this type, and may it write this field
of this model. It never raises for a denial; denial handling belongs to
the interception hooks.
"""

from __future__ import annotations

import logging
from typing import Any

from authaccess.registry import registry_for
from authaccess.rules import RuleGroup
from authaccess.types import CreateRuleTarget, Decision, GateConfig, Operation

logger = logging.getLogger(__name__)


def _accessor_label(accessor: Any) -> Any:
    if accessor is None:
        return None
    return getattr(accessor, "id", repr(accessor))


class AccessGate:
    """
    Decision function consulted by the interception hooks.

    Every entry point takes the accessor explicitly; nothing here reads
    process-wide state.

    Example:
        >>> gate = AccessGate(GateConfig(save_gates_write=True))
        >>> gate.allowed_to_save(alice, item)
        True
        >>> gate.check_write(bob, item, "description").reason
        'accessor may not save the entity'
    """

    def __init__(self, config: GateConfig | None = None) -> None:
        self.config = config or GateConfig()

    # ==================== Boolean entry points ====================

    def allowed_to_save(self, accessor: Any, model: Any) -> bool:
        """Whether ``accessor`` may save (or destroy) ``model``."""
        return self.check_save(accessor, model).allowed

    def allowed_to_create(self, accessor: Any, entity_type: type, model: Any = None) -> bool:
        """
        Whether ``accessor`` may create an instance of ``entity_type``.

        ``model`` is only consulted when the gate is configured with
        CreateRuleTarget.MODEL_SNAPSHOT.
        """
        return self.check_create(accessor, entity_type, model).allowed

    def allowed_to_write(self, accessor: Any, model: Any, field_name: str) -> bool:
        """Whether ``accessor`` may write ``field_name`` of ``model``."""
        return self.check_write(accessor, model, field_name).allowed

    # ==================== Explained decisions ====================

    def check_save(self, accessor: Any, model: Any) -> Decision:
        registry = registry_for(type(model))
        group = registry.save_group() if registry else None
        return self._decide(
            group, accessor, model, Operation.SAVE, type(model).__name__
        )

    def check_create(self, accessor: Any, entity_type: type, model: Any = None) -> Decision:
        registry = registry_for(entity_type)
        group = registry.create_group() if registry else None
        if self.config.create_rule_target is CreateRuleTarget.ACCESSOR_ONLY:
            model = None
        return self._decide(
            group, accessor, model, Operation.CREATE, entity_type.__name__
        )

    def check_write(self, accessor: Any, model: Any, field_name: str) -> Decision:
        entity = type(model).__name__
        metadata = {"operation": Operation.WRITE.value, "entity": entity, "field": field_name}

        if self.config.save_gates_write:
            save = self.check_save(accessor, model)
            if not save.allowed:
                logger.debug(
                    f"Write to '{entity}.{field_name}' denied: accessor "
                    f"'{_accessor_label(accessor)}' may not save the entity"
                )
                return Decision.deny(
                    "accessor may not save the entity",
                    rules=save.rules_evaluated,
                    metadata=metadata,
                )

        registry = registry_for(type(model))
        group = registry.write_group(field_name) if registry else None
        return self._decide(
            group, accessor, model, Operation.WRITE, entity, field_name
        )

    def _decide(
        self,
        group: RuleGroup | None,
        accessor: Any,
        model: Any,
        operation: Operation,
        entity: str,
        field_name: str | None = None,
    ) -> Decision:
        metadata: dict[str, Any] = {"operation": operation.value, "entity": entity}
        if field_name is not None:
            metadata["field"] = field_name
        target = f"{entity}.{field_name}" if field_name else entity

        if group is None:
            return Decision.allow("no rules registered", metadata=metadata)

        labels = [rule.label for rule in group]
        if group.evaluate(accessor, model):
            logger.debug(
                f"Allowed '{operation.value}' on '{target}' for accessor "
                f"'{_accessor_label(accessor)}'"
            )
            return Decision.allow("a rule passed", rules=labels, metadata=metadata)

        logger.info(
            f"Denied '{operation.value}' on '{target}' for accessor "
            f"'{_accessor_label(accessor)}'"
        )
        reason = "no rules in group" if not labels else "no rule passed"
        return Decision.deny(reason, rules=labels, metadata=metadata)
