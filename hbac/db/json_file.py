"""DatabaseConnector backed by a single local JSON document."""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from hbac.interfaces.database import UserAccessMap

logger = logging.getLogger(__name__)

DEFAULT_PATH = "hbac_access_map.json"


class JsonFileConnector:
    """Stores every user's access map in one JSON file.

    The file is re-read before every operation and rewritten after every
    mutation, so several processes see each other's writes (last writer
    wins). A missing file is created and an unparseable one is reset. Rows
    that fail validation are skipped on read but written back untouched,
    along with any other top-level keys in the document.
    """

    def __init__(self, path: str | None = None, table_name: str = "user_access_map") -> None:
        self.path = Path(path or DEFAULT_PATH)
        self.table_name = table_name
        self._document: dict[str, Any] = {}
        self._skipped: list[Any] = []

    async def initialize(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write([])
        self._read()

    async def get_user_roles(self, user_id: str) -> list[str]:
        record = self._find(self._read(), user_id)
        return list(record.role_ids) if record else []

    async def get_user_attributes(self, user_id: str) -> dict[str, Any]:
        record = self._find(self._read(), user_id)
        return dict(record.attributes) if record else {}

    async def assign_role(self, user_id: str, role_id: str) -> None:
        records = self._read()
        record = self._find(records, user_id)
        if record is None:
            records.append(UserAccessMap(id=str(uuid.uuid4()), user_id=user_id, role_ids=[role_id]))
        elif role_id not in record.role_ids:
            record.role_ids.append(role_id)
        self._write(records)

    async def remove_role(self, user_id: str, role_id: str) -> None:
        records = self._read()
        record = self._find(records, user_id)
        if record is None:
            return
        record.role_ids = [r for r in record.role_ids if r != role_id]
        self._write(records)

    async def set_attribute(self, user_id: str, attribute_id: str, value: Any) -> None:
        records = self._read()
        record = self._find(records, user_id)
        if record is None:
            records.append(
                UserAccessMap(id=str(uuid.uuid4()), user_id=user_id, attributes={attribute_id: value})
            )
        else:
            record.attributes[attribute_id] = value
        self._write(records)

    async def get_user_access_map(self, user_id: str) -> UserAccessMap | None:
        return self._find(self._read(), user_id)

    # -- helpers ---------------------------------------------------------------

    @staticmethod
    def _find(records: list[UserAccessMap], user_id: str) -> UserAccessMap | None:
        return next((r for r in records if r.user_id == user_id), None)

    def _read(self) -> list[UserAccessMap]:
        """Load valid records; keep invalid rows aside so writes preserve them."""
        try:
            document = json.loads(self.path.read_text())
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            return self._reset(e)
        rows = document.get(self.table_name, []) if isinstance(document, dict) else None
        if not isinstance(rows, list):
            return self._reset(f"expected a {self.table_name!r} list")

        records: list[UserAccessMap] = []
        skipped: list[Any] = []
        for row in rows:
            try:
                records.append(UserAccessMap.model_validate(row))
            except ValidationError as e:
                logger.warning(
                    "Skipping invalid access map row in %s: %s", self.path, e.errors()[0]["msg"]
                )
                skipped.append(row)
        self._document = document
        self._skipped = skipped
        return records

    def _reset(self, reason: Any) -> list[UserAccessMap]:
        logger.warning("Resetting unreadable access map %s: %s", self.path, reason)
        self._document = {}
        self._skipped = []
        self._write([])
        return []

    def _write(self, records: list[UserAccessMap]) -> None:
        payload = dict(self._document)
        payload[self.table_name] = [r.model_dump() for r in records] + self._skipped
        self.path.write_text(json.dumps(payload, indent=2))
