"""Compiled policy conditions.

A raw condition is a mapping of path expressions to predicates, e.g.::

    {"attributes.clearance": {"$gte": 3}, "context.resource.ownerId": "u-1"}

It is compiled once, when rules are loaded, into a ``Condition``: a tuple
of clauses, each pairing a parsed path with one or more predicates. Unknown
operators and ill-typed operands are rejected here instead of silently
failing at evaluation time.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from hbac.errors import ConditionError


class _Missing:
    """Marker for a path that resolved to nothing."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class Operator(str, Enum):
    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"
    EXISTS = "$exists"


@dataclass(frozen=True)
class AttributePath:
    """Lookup of a principal attribute by key name."""

    name: str


@dataclass(frozen=True)
class ContextPath:
    """Null-safe dotted lookup into the call context."""

    keys: tuple[str, ...]


ConditionPath = AttributePath | ContextPath


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def strict_equals(a: Any, b: Any) -> bool:
    """Equality without bool/int coercion (``True`` never equals ``1``)."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    return a == b


def _contains(operand: tuple, value: Any) -> bool:
    return any(strict_equals(value, item) for item in operand)


_OPERATOR_TESTS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQ: lambda value, operand: value is not MISSING and strict_equals(value, operand),
    Operator.NE: lambda value, operand: value is MISSING or not strict_equals(value, operand),
    Operator.GT: lambda value, operand: _is_number(value) and value > operand,
    Operator.GTE: lambda value, operand: _is_number(value) and value >= operand,
    Operator.LT: lambda value, operand: _is_number(value) and value < operand,
    Operator.LTE: lambda value, operand: _is_number(value) and value <= operand,
    Operator.IN: lambda value, operand: value is not MISSING and _contains(operand, value),
    Operator.NIN: lambda value, operand: value is not MISSING and not _contains(operand, value),
    Operator.EXISTS: lambda value, operand: (value is not MISSING) == operand,
}

_NUMERIC_OPERATORS = {Operator.GT, Operator.GTE, Operator.LT, Operator.LTE}
_LIST_OPERATORS = {Operator.IN, Operator.NIN}


@dataclass(frozen=True)
class Predicate:
    operator: Operator
    operand: Any

    def test(self, value: Any) -> bool:
        return _OPERATOR_TESTS[self.operator](value, self.operand)


@dataclass(frozen=True)
class Clause:
    """One ``path: predicate`` entry; every predicate must hold."""

    expression: str
    path: ConditionPath
    predicates: tuple[Predicate, ...]

    def holds(self, value: Any) -> bool:
        return all(predicate.test(value) for predicate in self.predicates)


@dataclass(frozen=True)
class Condition:
    """Conjunction of clauses. An empty condition always matches."""

    clauses: tuple[Clause, ...] = ()


# Longest prefix first so "$user.attributes." wins over bare names
_ATTRIBUTE_PREFIXES = ("$user.attributes.", "attributes.")
_CONTEXT_PREFIX = "context."


def parse_path(expression: str) -> ConditionPath:
    """Parse a path expression into an attribute or context path."""
    if not isinstance(expression, str) or not expression:
        raise ConditionError(str(expression), "path must be a non-empty string")

    if expression.startswith(_CONTEXT_PREFIX):
        dotted = expression[len(_CONTEXT_PREFIX):]
        keys = tuple(dotted.split("."))
        if not all(keys):
            raise ConditionError(expression, "context path has an empty segment")
        return ContextPath(keys)

    for prefix in _ATTRIBUTE_PREFIXES:
        if expression.startswith(prefix):
            name = expression[len(prefix):]
            if not name:
                raise ConditionError(expression, "attribute name is empty")
            return AttributePath(name)

    return AttributePath(expression)


def _compile_operator(expression: str, key: str, operand: Any) -> Predicate:
    try:
        operator = Operator(key)
    except ValueError:
        raise ConditionError(expression, f"unknown operator {key!r}") from None

    if operator in _NUMERIC_OPERATORS and not _is_number(operand):
        raise ConditionError(expression, f"{key} requires a numeric operand, got {operand!r}")
    if operator in _LIST_OPERATORS:
        if not isinstance(operand, (list, tuple)):
            raise ConditionError(expression, f"{key} requires a list operand, got {operand!r}")
        operand = tuple(operand)
    if operator is Operator.EXISTS and not isinstance(operand, bool):
        raise ConditionError(expression, f"$exists requires true or false, got {operand!r}")
    return Predicate(operator, operand)


def _compile_predicates(expression: str, raw: Any) -> tuple[Predicate, ...]:
    if not isinstance(raw, Mapping):
        # Literal values mean equality
        return (Predicate(Operator.EQ, raw),)
    if not raw:
        raise ConditionError(expression, "operator object is empty")
    return tuple(_compile_operator(expression, key, operand) for key, operand in raw.items())


def compile_condition(raw: Mapping[str, Any] | Condition) -> Condition:
    """Compile a raw condition mapping. Already-compiled conditions pass through."""
    if isinstance(raw, Condition):
        return raw
    if not isinstance(raw, Mapping):
        raise ConditionError(repr(raw), "condition must be a mapping")
    clauses = tuple(
        Clause(expression, parse_path(expression), _compile_predicates(expression, predicate))
        for expression, predicate in raw.items()
    )
    return Condition(clauses)
