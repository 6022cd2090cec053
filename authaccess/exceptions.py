"""
Exceptions raised by authaccess.

Two things can go wrong. A policy can be declared badly, which is a
programming mistake reported as ConfigurationError, usually while the
entity class body is still being decorated. Or an accessor can be refused a
create, save or destroy under the hard failure mode, reported as
AuthorizationDenied. Refused field writes are dropped, never raised.
"""

from __future__ import annotations

from typing import Any


class AuthAccessError(Exception):
    """
    Root of the authaccess exception hierarchy.

    ``details`` holds structured context (entity, operation, declaration
    key) so callers can log a denial without parsing the message.

    Example:
        >>> try:
        ...     store.destroy(item)
        ... except AuthAccessError as e:
        ...     logger.warning(f"destroy refused: {e.to_dict()}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        context = ", ".join(
            f"{key}={value!r}" for key, value in self.details.items() if value is not None
        )
        return f"{self.message} [{context}]" if context else self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": dict(self.details),
        }


class ConfigurationError(AuthAccessError):
    """
    A policy declaration that cannot work.

    Raised by the declaration decorators and the registry (unknown field,
    unresolvable local method, conflicting owner, registration after
    freeze), and during evaluation for anything the registry should never
    have accepted. Never caught inside the package.

    Attributes:
        config_key: ``<Entity>.<declaration>`` naming what is wrong.
        expected: What a valid declaration would have supplied.
        received: What was supplied instead, if anything.

    Example:
        >>> @guards_writes_to("titel", with_accessor_method="is_editor")
        ... class Article(Entity):
        ...     fields = ("title",)
        Traceback (most recent call last):
        ...
        authaccess.exceptions.ConfigurationError: Invalid policy declaration 'Article.write_rule'; ...
    """

    def __init__(
        self,
        config_key: str,
        expected: str | None = None,
        received: Any = None,
    ) -> None:
        self.config_key = config_key
        self.expected = expected
        self.received = received

        parts = [f"Invalid policy declaration '{config_key}'"]
        if expected:
            parts.append(f"expected {expected}")
        if received is not None:
            parts.append(f"got {received!r}")

        super().__init__(
            "; ".join(parts),
            {"declaration": config_key},
        )


class AuthorizationDenied(AuthAccessError):
    """
    Raised when an accessor may not create, save or destroy an entity.

    Only raised in hard failure mode. In soft mode the same denial halts
    the lifecycle chain without an exception, and field-write denials are
    never raised at all.

    Attributes:
        accessor: Identifier of the accessor that was denied (None if absent).
        operation: The operation that was attempted ("create", "save", ...).
        entity: Name of the entity type.
        reason: Explanation of why authorization was denied.
        field: The field name for write denials.

    Example:
        >>> raise AuthorizationDenied(
        ...     accessor=7,
        ...     operation="save",
        ...     entity="OwnedItem",
        ...     reason="no save rule passed",
        ... )
    """

    def __init__(
        self,
        accessor: Any,
        operation: str,
        entity: str,
        reason: str | None = None,
        field: str | None = None,
    ) -> None:
        self.accessor = accessor
        self.operation = operation
        self.entity = entity
        self.reason = reason or "Authorization denied"
        self.field = field

        target = f"'{entity}.{field}'" if field else f"'{entity}'"
        who = f"Accessor '{accessor}'" if accessor is not None else "Anonymous accessor"
        message = (
            f"Authorization denied: {who} cannot perform "
            f"'{operation}' on {target}. Reason: {self.reason}"
        )
        details = {
            "accessor": accessor,
            "operation": operation,
            "entity": entity,
            "field": field,
            "reason": self.reason,
        }
        super().__init__(message, details)
