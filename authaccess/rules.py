"""
Rules and rule groups.

A Rule is a single named boolean check against either the accessor or the
model. A RuleGroup is an OR-chain of rules attached to one operation or
one field: it passes if any member passes, and an empty group passes
nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from authaccess.exceptions import ConfigurationError
from authaccess.types import AuthorizationCheck, RuleKind

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class Rule:
    """
    A single named check.

    Attributes:
        kind: Whether the check runs on the accessor or on the model.
        method_name: Name of the method (or registered check) to run.
        options: Optional parameter bag passed to the check.
    """
    kind: RuleKind
    method_name: str
    options: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, RuleKind):
            try:
                object.__setattr__(self, "kind", RuleKind(self.kind))
            except ValueError:
                raise ConfigurationError(
                    config_key="rule.kind",
                    expected=f"one of {[k.value for k in RuleKind]}",
                    received=self.kind,
                ) from None
        if not isinstance(self.method_name, str) or not self.method_name:
            raise ConfigurationError(
                config_key="rule.method_name",
                expected="a non-empty method name",
                received=self.method_name,
            )

    @classmethod
    def from_declaration(
        cls,
        with_accessor_method: str | None = None,
        with_method: str | None = None,
        options: Any = None,
    ) -> Rule:
        """
        Build a rule from declaration keywords.

        Exactly one of ``with_accessor_method`` or ``with_method`` must be
        given.

        Raises:
            ConfigurationError: If neither or both designators are given.
        """
        if with_accessor_method and with_method:
            raise ConfigurationError(
                config_key="rule",
                expected="only one of with_accessor_method or with_method",
                received={"with_accessor_method": with_accessor_method, "with_method": with_method},
            )
        if with_accessor_method:
            return cls(RuleKind.ACCESSOR_METHOD, with_accessor_method, options)
        if with_method:
            return cls(RuleKind.LOCAL_METHOD, with_method, options)
        raise ConfigurationError(
            config_key="rule",
            expected="either with_accessor_method or with_method",
        )

    @property
    def label(self) -> str:
        """Short description used in decisions and log lines."""
        return f"{self.kind.value}.{self.method_name}"

    def evaluate(
        self,
        accessor: Any,
        model: Any,
        checks: Mapping[str, AuthorizationCheck] | None = None,
    ) -> bool:
        """
        Run this rule's check.

        Args:
            accessor: The accessor being authorized, or None.
            model: The model being authorized, or None when it is not
                available (accessor-only create checks).
            checks: Named checks registered for the entity type.

        Returns:
            True if the check passes.

        Raises:
            ConfigurationError: If a local method cannot be resolved on the
                model, or the rule kind is not recognized.
        """
        if self.kind is RuleKind.ACCESSOR_METHOD:
            return _call_if_supported(accessor, self.method_name, self.options)

        if self.kind is RuleKind.LOCAL_METHOD:
            if model is None:
                return False
            if checks and self.method_name in checks:
                return bool(checks[self.method_name](accessor, model, self.options))
            method = getattr(model, self.method_name, _MISSING)
            if method is _MISSING:
                raise ConfigurationError(
                    config_key=f"{type(model).__name__}.{self.method_name}",
                    expected="a method or registered check on the model",
                )
            return _invoke(method, self.options)

        raise ConfigurationError(
            config_key="rule.kind",
            expected=f"one of {[k.value for k in RuleKind]}",
            received=self.kind,
        )


def _call_if_supported(target: Any, name: str, options: Any) -> bool:
    """Run ``name`` on ``target`` if it is available, otherwise return False."""
    if target is None:
        return False
    attribute = getattr(target, name, _MISSING)
    if attribute is _MISSING:
        return False
    return _invoke(attribute, options)


def _invoke(attribute: Any, options: Any) -> bool:
    if not callable(attribute):
        # plain attributes (a dataclass field, a property); None is False
        return bool(attribute)
    if options is not None:
        return bool(attribute(options))
    return bool(attribute())


class RuleGroup:
    """
    An ordered OR-chain of rules.

    A registered group with no rules denies everything. Absence of a group
    (no policy declared) means no restriction; that distinction is made by
    the registry, not here.

    Example:
        >>> group = RuleGroup("save")
        >>> group.add_rule(RuleKind.LOCAL_METHOD, "allow_owner")
        >>> group.add_rule(RuleKind.ACCESSOR_METHOD, "is_admin")
        >>> group.evaluate(admin, item)
        True
    """

    def __init__(
        self,
        name: str,
        checks: Mapping[str, AuthorizationCheck] | None = None,
    ) -> None:
        self.name = name
        self._rules: list[Rule] = []
        self._checks = checks

    def add_rule(
        self,
        kind: RuleKind | str | None,
        method_name: str | None,
        options: Any = None,
    ) -> Rule:
        """
        Append a rule to the chain.

        Raises:
            ConfigurationError: If no valid kind and method name are given.
        """
        if kind is None or not method_name:
            raise ConfigurationError(
                config_key=f"{self.name}.rule",
                expected="an accessor-method or local-method designator",
                received={"kind": kind, "method_name": method_name},
            )
        rule = Rule(kind, method_name, options)  # type: ignore[arg-type]
        self._rules.append(rule)
        return rule

    def add(self, rule: Rule) -> None:
        """Append an already-built rule."""
        self._rules.append(rule)

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"RuleGroup({self.name!r}, {[r.label for r in self._rules]})"

    def evaluate(self, accessor: Any, model: Any = None) -> bool:
        """
        Return True if any rule in the group passes.

        Evaluation stops at the first passing rule. An empty group
        returns False.
        """
        for rule in self._rules:
            if rule.evaluate(accessor, model, self._checks):
                logger.debug(f"RuleGroup '{self.name}': rule '{rule.label}' passed")
                return True
        logger.debug(f"RuleGroup '{self.name}': no rule passed ({len(self._rules)} evaluated)")
        return False
