"""Policy rule models and combination enums."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from hbac.attribute.conditions import compile_condition


class Effect(str, Enum):
    allow = "allow"
    deny = "deny"


class EvaluationStrategy(str, Enum):
    """How outcomes of several matching rules are combined."""

    first_applicable = "firstApplicable"
    all_applicable = "allApplicable"
    deny_overrides = "denyOverrides"


WILDCARD = "*"


class PolicyRule(BaseModel):
    """A resource/action-scoped condition with an allow or deny effect."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    description: str | None = None
    resource: str
    action: str
    condition: dict[str, Any]
    effect: Effect

    @field_validator("id", "resource", "action")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("cannot be empty or whitespace")
        return v

    @field_validator("condition")
    @classmethod
    def validate_condition(cls, v: dict[str, Any]) -> dict[str, Any]:
        # Compile eagerly so unknown operators fail at load time
        compile_condition(v)
        return v

    def applies_to(self, resource: str, action: str) -> bool:
        return (self.resource == resource or self.resource == WILDCARD) and (
            self.action == action or self.action == WILDCARD
        )
