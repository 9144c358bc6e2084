"""Attribute definitions and condition evaluation."""

from hbac.attribute.conditions import (
    MISSING,
    AttributePath,
    Clause,
    Condition,
    ContextPath,
    Operator,
    Predicate,
    compile_condition,
    parse_path,
)
from hbac.attribute.manager import AttributeManager
from hbac.attribute.models import ATTRIBUTE_TYPES, AttributeDefinition, AttributeValues

__all__ = [
    "ATTRIBUTE_TYPES",
    "MISSING",
    "AttributeDefinition",
    "AttributeManager",
    "AttributePath",
    "AttributeValues",
    "Clause",
    "Condition",
    "ContextPath",
    "Operator",
    "Predicate",
    "compile_condition",
    "parse_path",
]
