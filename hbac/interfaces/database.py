"""Persistence connector interface and the stored access-map model."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class UserAccessMap(BaseModel):
    """Role assignments and attribute values stored for one user."""

    id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    role_ids: list[str] = Field(default_factory=list)
    attributes: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class DatabaseConnector(Protocol):
    """Backend storing user -> role and user -> attribute assignments.

    All operations are coroutines; failures propagate to the caller.
    """

    async def initialize(self) -> None: ...

    async def get_user_roles(self, user_id: str) -> list[str]: ...

    async def get_user_attributes(self, user_id: str) -> dict[str, Any]: ...

    async def assign_role(self, user_id: str, role_id: str) -> None: ...

    async def remove_role(self, user_id: str, role_id: str) -> None: ...

    async def set_attribute(self, user_id: str, attribute_id: str, value: Any) -> None: ...

    async def get_user_access_map(self, user_id: str) -> UserAccessMap | None: ...
