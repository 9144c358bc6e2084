"""Attribute type validation and condition evaluation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from hbac.attribute.conditions import (
    MISSING,
    AttributePath,
    Condition,
    ConditionPath,
    ContextPath,
    compile_condition,
)
from hbac.attribute.models import AttributeDefinition
from hbac.errors import ConditionError

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda value: isinstance(value, str),
    "number": _is_number,
    "boolean": lambda value: isinstance(value, bool),
    "object": lambda value: isinstance(value, Mapping),
    "array": lambda value: isinstance(value, (list, tuple)),
}


class AttributeManager:
    """Holds attribute definitions and evaluates conditions against them.

    Definitions are keyed by a human-readable name (the config key) and
    carry a separate ID. Persistence stores values by ID; conditions refer
    to attributes by name. Lookups try the name first and fall back to the
    ID of the attribute configured under that name.
    """

    def __init__(self, attributes: Mapping[str, AttributeDefinition]) -> None:
        self._attributes = dict(attributes)
        self._by_id: dict[str, AttributeDefinition] = {
            attr.id: attr for attr in self._attributes.values()
        }

    def get_attributes(self) -> dict[str, AttributeDefinition]:
        return dict(self._attributes)

    def get_attribute(self, attribute_id: str) -> AttributeDefinition | None:
        return self._by_id.get(attribute_id)

    def validate_attribute_value(self, attribute_id: str, value: Any) -> bool:
        """Check a value against the declared type. Unknown attributes fail."""
        attribute = self.get_attribute(attribute_id)
        if attribute is None:
            return False
        check = _TYPE_CHECKS.get(attribute.type)
        if check is None:
            return False
        return check(value)

    def evaluate_condition(
        self,
        condition: Condition | Mapping[str, Any],
        attribute_values: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
    ) -> bool:
        """Return True when every clause of the condition holds.

        Accepts a compiled ``Condition`` or a raw mapping. A raw mapping
        that fails to compile evaluates to False.
        """
        if not isinstance(condition, Condition):
            try:
                condition = compile_condition(condition)
            except ConditionError as e:
                logger.warning("Rejecting malformed condition: %s", e)
                return False

        context = context or {}
        return all(
            clause.holds(self.resolve(clause.path, attribute_values, context))
            for clause in condition.clauses
        )

    def resolve(
        self,
        path: ConditionPath,
        attribute_values: Mapping[str, Any],
        context: Mapping[str, Any],
    ) -> Any:
        """Resolve a parsed path to a value, or MISSING."""
        if isinstance(path, ContextPath):
            return _get_nested(context, path.keys)
        if isinstance(path, AttributePath):
            return self._lookup_attribute(path.name, attribute_values)
        return MISSING

    def _lookup_attribute(self, name: str, attribute_values: Mapping[str, Any]) -> Any:
        if name in attribute_values:
            return attribute_values[name]
        definition = self._attributes.get(name)
        if definition is not None and definition.id in attribute_values:
            return attribute_values[definition.id]
        return MISSING


def _get_nested(obj: Any, keys: tuple[str, ...]) -> Any:
    current = obj
    for key in keys:
        if not isinstance(current, Mapping) or key not in current:
            return MISSING
        current = current[key]
    return current
