"""
Interception hooks for persistence lifecycles.

The host persistence layer calls these before create, before save or
destroy, and on every field write. Each hook asks the AccessGate and
enforces the answer: create, save and destroy denials either raise or halt
the lifecycle depending on the configured FailureMode, and field-write
denials are always dropped silently.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from authaccess.context import bypass_authorization, is_bypassed
from authaccess.exceptions import AuthorizationDenied, ConfigurationError
from authaccess.gate import AccessGate
from authaccess.ownership import set_owner_id
from authaccess.types import Decision, FailureMode, GateConfig, Operation

logger = logging.getLogger(__name__)


class InterceptionHooks:
    """
    Boundary adapter between a persistence layer and the access gate.

    Attributes:
        gate: The AccessGate consulted for every decision.
        config: The gate's configuration (failure mode, coupling, ...).

    Example:
        >>> hooks = InterceptionHooks(config=GateConfig(failure_mode=FailureMode.HARD))
        >>> hooks.before_save(bob, item)
        Traceback (most recent call last):
        ...
        authaccess.exceptions.AuthorizationDenied: Authorization denied: ...
    """

    def __init__(self, gate: AccessGate | None = None, config: GateConfig | None = None) -> None:
        if gate is None:
            gate = AccessGate(config)
        self.gate = gate

    @property
    def config(self) -> GateConfig:
        return self.gate.config

    def before_create(self, accessor: Any, entity_type: type, model: Any = None) -> bool:
        """
        Authorize creating an instance of ``entity_type``.

        Returns:
            True to continue. False (soft mode) to stop without persisting.

        Raises:
            AuthorizationDenied: In hard mode, when denied.
        """
        decision = self.gate.check_create(accessor, entity_type, model)
        return self._enforce(decision, accessor, Operation.CREATE, entity_type.__name__)

    def before_save(self, accessor: Any, model: Any) -> bool:
        """Authorize saving ``model``. See before_create for the return value."""
        decision = self.gate.check_save(accessor, model)
        return self._enforce(decision, accessor, Operation.SAVE, type(model).__name__)

    def before_destroy(self, accessor: Any, model: Any) -> bool:
        """Authorize destroying ``model``; governed by the save rules."""
        decision = self.gate.check_save(accessor, model)
        return self._enforce(decision, accessor, Operation.DESTROY, type(model).__name__)

    def on_field_write(self, accessor: Any, model: Any, field_name: str, value: Any) -> bool:
        """
        Apply a field write if it is authorized.

        The write is applied through ``model.set_field_raw`` when allowed or
        when authorization is bypassed for ``model``. A denied write leaves
        the field unchanged and never raises.

        Returns:
            True if the write was applied, False if it was dropped.
        """
        if is_bypassed(model) or self.gate.allowed_to_write(accessor, model, field_name):
            model.set_field_raw(field_name, value)
            return True
        logger.debug(
            f"Dropped write to '{type(model).__name__}.{field_name}' for accessor "
            f"'{getattr(accessor, 'id', accessor)}'"
        )
        return False

    def autoset_owner_on_create(self, accessor: Any, model: Any) -> bool:
        """
        Make ``accessor`` the owner of a new ``model``.

        The owner write skips write authorization for ``model`` only, and
        only for the duration of the assignment. Without an accessor the
        model is left unowned.

        Returns:
            Always True, so the lifecycle continues.

        Raises:
            ConfigurationError: If the accessor has no id to record.
        """
        if accessor is None:
            logger.debug(
                f"No accessor to autoset as owner of new '{type(model).__name__}'"
            )
            return True
        owner_id = getattr(accessor, "id", None)
        if owner_id is None:
            raise ConfigurationError(
                config_key=f"{type(model).__name__}.autoset_owner",
                expected="an accessor with an id",
                received=type(accessor).__name__,
            )
        with bypass_authorization(model):
            set_owner_id(model, owner_id)
        return True

    def _enforce(
        self,
        decision: Decision,
        accessor: Any,
        operation: Operation,
        entity: str,
    ) -> bool:
        if decision.allowed:
            return True
        if self.config.failure_mode is FailureMode.HARD:
            raise AuthorizationDenied(
                accessor=getattr(accessor, "id", None),
                operation=operation.value,
                entity=entity,
                reason=decision.reason,
            )
        return False


# Process-wide default hooks
_default_hooks: InterceptionHooks | None = None
_default_hooks_lock = threading.Lock()


def get_default_hooks() -> InterceptionHooks:
    """
    Get the default interception hooks.

    Creates them with a default GateConfig if they don't exist. Entity
    types without their own hooks use these.
    """
    global _default_hooks
    if _default_hooks is not None:
        return _default_hooks
    with _default_hooks_lock:
        if _default_hooks is None:
            _default_hooks = InterceptionHooks()
        return _default_hooks


def configure(config: GateConfig | dict[str, Any]) -> InterceptionHooks:
    """
    Replace the default hooks with ones built from ``config``.

    Example:
        >>> configure({"failure_mode": "hard", "save_gates_write": False})
    """
    global _default_hooks
    if isinstance(config, dict):
        config = GateConfig.from_dict(config)
    with _default_hooks_lock:
        _default_hooks = InterceptionHooks(config=config)
        logger.debug(f"Configured default hooks: {config.to_dict()}")
        return _default_hooks


def reset_default_hooks() -> None:
    """Drop the default hooks. Primarily useful for testing."""
    global _default_hooks
    with _default_hooks_lock:
        _default_hooks = None
