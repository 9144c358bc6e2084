"""DatabaseConnector kept entirely in process memory."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from hbac.interfaces.database import UserAccessMap

logger = logging.getLogger(__name__)


class InMemoryConnector:
    """Volatile connector for tests, demos and as a development fallback."""

    def __init__(self) -> None:
        self._users: dict[str, UserAccessMap] = {}
        logger.warning(
            "Using in-memory access storage. Data will be lost when the process exits."
        )

    async def initialize(self) -> None:
        pass

    async def get_user_roles(self, user_id: str) -> list[str]:
        record = self._users.get(user_id)
        return list(record.role_ids) if record else []

    async def get_user_attributes(self, user_id: str) -> dict[str, Any]:
        record = self._users.get(user_id)
        return dict(record.attributes) if record else {}

    async def assign_role(self, user_id: str, role_id: str) -> None:
        record = self._get_or_create(user_id)
        if role_id not in record.role_ids:
            record.role_ids.append(role_id)

    async def remove_role(self, user_id: str, role_id: str) -> None:
        record = self._users.get(user_id)
        if record is not None:
            record.role_ids = [r for r in record.role_ids if r != role_id]

    async def set_attribute(self, user_id: str, attribute_id: str, value: Any) -> None:
        self._get_or_create(user_id).attributes[attribute_id] = value

    async def get_user_access_map(self, user_id: str) -> UserAccessMap | None:
        record = self._users.get(user_id)
        return record.model_copy(deep=True) if record else None

    def _get_or_create(self, user_id: str) -> UserAccessMap:
        record = self._users.get(user_id)
        if record is None:
            record = UserAccessMap(id=str(uuid.uuid4()), user_id=user_id)
            self._users[user_id] = record
        return record
