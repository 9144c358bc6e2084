"""Attribute definition models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

AttributeType = Literal["string", "number", "boolean", "object", "array"]

ATTRIBUTE_TYPES: tuple[str, ...] = ("string", "number", "boolean", "object", "array")

# Attribute values for one principal, keyed by attribute ID (or key name)
AttributeValues = dict[str, Any]


class AttributeDefinition(BaseModel):
    """Declared type of a principal attribute. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: AttributeType
    description: str | None = None
