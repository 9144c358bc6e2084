"""Role and permission models."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator

# <resource>:<action>[:own], either segment may be "*"
PERMISSION_RE = re.compile(r"^(\*|[\w-]+):(\*|[\w-]+)(:own)?$")

SUPERUSER_PERMISSION = "*:*"


def is_valid_permission(permission: str) -> bool:
    return bool(PERMISSION_RE.fullmatch(permission))


class Role(BaseModel):
    """A named bundle of permissions. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    id: str
    description: str | None = None
    permissions: tuple[str, ...]

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("role id cannot be empty or whitespace")
        return v

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("role must have at least one permission")
        for permission in v:
            if not is_valid_permission(permission):
                raise ValueError(f"Invalid permission format: {permission}")
        return v
