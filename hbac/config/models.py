from collections import Counter
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hbac.attribute.models import AttributeDefinition
from hbac.policy.models import Effect, EvaluationStrategy, PolicyRule
from hbac.role.models import Role


class DatabaseConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["memory", "json", "sqlite"] = "memory"
    table_name: str = Field(default="user_access_map", alias="tableName")
    connection_string: str | None = Field(default=None, alias="connectionString")

    @field_validator("type", mode="before")
    @classmethod
    def _legacy_type_names(cls, v):
        # lowdb configs point at the same single-document JSON layout
        return "json" if v == "lowdb" else v


class CacheConfig(BaseModel):
    enabled: bool = True
    ttl: float = Field(default=300, gt=0)


class AuditConfig(BaseModel):
    enabled: bool = False
    level: Literal["debug", "info", "warn", "error"] = "info"


class PolicyConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    default_effect: Effect = Field(default=Effect.deny, alias="defaultEffect")
    evaluation: EvaluationStrategy = EvaluationStrategy.first_applicable


def _duplicates(ids: list[str]) -> list[str]:
    return sorted(i for i, n in Counter(ids).items() if n > 1)


class HBACConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    policies: PolicyConfig = Field(default_factory=PolicyConfig)
    roles: dict[str, Role]
    attributes: dict[str, AttributeDefinition] = Field(default_factory=dict)
    policy_rules: list[PolicyRule] = Field(default_factory=list, alias="policyRules")
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Configuration must include a version")
        return v

    @field_validator("roles")
    @classmethod
    def validate_roles(cls, v: dict[str, Role]) -> dict[str, Role]:
        if not v:
            raise ValueError("Configuration must include at least one role")
        return v

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "HBACConfig":
        checks = (
            ("role", [role.id for role in self.roles.values()]),
            ("attribute", [attr.id for attr in self.attributes.values()]),
            ("policy rule", [rule.id for rule in self.policy_rules]),
        )
        for kind, ids in checks:
            dupes = _duplicates(ids)
            if dupes:
                raise ValueError(f"Duplicate {kind} id(s): {', '.join(dupes)}")
        return self
